"""Workspace validation"""
from .protocol import ValidationGateway
from .command import CommandValidator

__all__ = [
    "ValidationGateway",
    "CommandValidator",
]
