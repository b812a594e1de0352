"""Core orchestration logic."""
from mctl.orchestration.exceptions import (
    AgentBusyError,
    AlreadyRunningError,
    MergeConflictError,
    MissionControlError,
    NoSuitableAgentError,
    TargetBranchCheckoutError,
    WorkspaceCreationError,
    WorkspaceNotFoundError,
)
from mctl.orchestration.models import (
    Agent,
    AgentDefinition,
    MergeResult,
    MergeStrategy,
    Task,
    ValidationResult,
    Workspace,
)

__all__ = [
    "Agent",
    "AgentBusyError",
    "AgentDefinition",
    "AlreadyRunningError",
    "MergeConflictError",
    "MergeResult",
    "MergeStrategy",
    "MissionControlError",
    "NoSuitableAgentError",
    "TargetBranchCheckoutError",
    "Task",
    "ValidationResult",
    "Workspace",
    "WorkspaceCreationError",
    "WorkspaceNotFoundError",
]
