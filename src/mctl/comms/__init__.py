"""Agent communication."""
from mctl.comms.hub import QueueCommunicationHub
from mctl.comms.protocol import AgentMessage, CommunicationHub

__all__ = ["AgentMessage", "CommunicationHub", "QueueCommunicationHub"]
