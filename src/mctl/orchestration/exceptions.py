"""Error taxonomy for mission control."""


class MissionControlError(Exception):
    """Base exception for all mission control errors."""

    pass


class VersionControlError(MissionControlError):
    """A git command exited unsuccessfully."""

    def __init__(self, command: list[str], returncode: int, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = f": {self.stderr}" if self.stderr else ""
        super().__init__(f"`{' '.join(command)}` exited with {returncode}{detail}")


class WorkspaceError(MissionControlError):
    """Base exception for workspace registry errors."""

    pass


class WorkspaceCreationError(WorkspaceError):
    """Workspace could not be created; the caller must pick a new id."""

    pass


class WorkspaceNotFoundError(WorkspaceError):
    """No workspace registered under the given id."""

    def __init__(self, workspace_id: str):
        self.workspace_id = workspace_id
        super().__init__(f"Workspace {workspace_id} not found")


class MergeConflictError(WorkspaceError):
    """Syncing a workspace left files in a conflicted state."""

    def __init__(self, workspace_id: str, files: list[str]):
        self.workspace_id = workspace_id
        self.files = files
        super().__init__(
            f"Merge conflicts detected in {workspace_id}: {', '.join(files)}"
        )


class TargetBranchCheckoutError(WorkspaceError):
    """The merge target branch could not be checked out."""

    pass


class SchedulingError(MissionControlError):
    """Base exception for task assignment failures."""

    pass


class NoSuitableAgentError(SchedulingError):
    """No agent satisfies the task's type and capability requirements."""

    pass


class AgentBusyError(SchedulingError):
    """The selected agent already holds an active task."""

    pass


class AlreadyRunningError(MissionControlError):
    """start() called while mission control is running."""

    pass


class AgentLimitError(MissionControlError):
    """Launching another agent would exceed the configured maximum."""

    pass


class AgentNotFoundError(MissionControlError):
    """No live agent registered under the given id."""

    pass
