"""Version control bridge protocol - the narrow command boundary to git."""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class CommandResult:
    """Raw result of one version control command"""
    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass
class BridgeStatus:
    """Parsed working tree status"""
    modified_files: list[str] = field(default_factory=list)
    ahead: int = 0
    behind: int = 0


@dataclass
class MergeOutcome:
    """Parsed result of a merge attempt"""
    success: bool
    conflict_files: list[str] = field(default_factory=list)
    error: str | None = None


class VersionControlBridge(ABC):
    """Issues repository commands and translates their text output.

    Implementations never let unexpected output crash the caller: they
    degrade to empty/zero results and log a warning. Only a command that
    exits unsuccessfully where the caller must know raises
    VersionControlError.
    """

    @abstractmethod
    async def current_branch(self, cwd: Path | None = None) -> str:
        """Name of the branch checked out in cwd (main repository by default)"""
        pass

    @abstractmethod
    async def create(self, branch: str, path: Path, start_point: str = "HEAD") -> None:
        """Create an isolated worktree at path on a new branch"""
        pass

    @abstractmethod
    async def status(self, path: Path, base_branch: str, branch: str) -> BridgeStatus:
        """Modified files plus ahead/behind counts of branch against base_branch"""
        pass

    @abstractmethod
    async def checkout(self, branch: str, cwd: Path | None = None) -> None:
        """Check out an existing branch"""
        pass

    @abstractmethod
    async def fetch(self, remote: str, cwd: Path | None = None) -> None:
        """Fetch from a remote"""
        pass

    @abstractmethod
    async def merge(
        self, refs: list[str], message: str, cwd: Path | None = None
    ) -> MergeOutcome:
        """Merge one or more refs into the current branch (no fast-forward)"""
        pass

    @abstractmethod
    async def abort_merge(self, cwd: Path | None = None) -> None:
        """Abort an in-progress merge, restoring the pre-merge state"""
        pass

    @abstractmethod
    async def conflict_files(self, cwd: Path | None = None) -> list[str]:
        """Files currently in unmerged state"""
        pass

    @abstractmethod
    async def remove(self, path: Path) -> None:
        """Force-remove a worktree"""
        pass
