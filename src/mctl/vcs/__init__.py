"""Version control bridge."""
from mctl.vcs.git import GitBridge
from mctl.vcs.protocol import BridgeStatus, CommandResult, MergeOutcome, VersionControlBridge

__all__ = [
    "BridgeStatus",
    "CommandResult",
    "GitBridge",
    "MergeOutcome",
    "VersionControlBridge",
]
