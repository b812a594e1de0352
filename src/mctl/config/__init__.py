"""Configuration management."""

from mctl.config.manager import ConfigManager
from mctl.config.schema import MissionConfig

__all__ = ["ConfigManager", "MissionConfig"]
