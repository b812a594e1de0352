"""Agents and their profiles."""

from mctl.agents.manager import AgentManager
from mctl.agents.profiles import AGENT_PROFILES, get_profile

__all__ = ["AGENT_PROFILES", "AgentManager", "get_profile"]
