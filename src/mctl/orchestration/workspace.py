"""Registry of isolated agent workspaces (git worktrees)."""

import asyncio
import logging
from datetime import datetime
from pathlib import Path

from mctl.orchestration.exceptions import (
    MergeConflictError,
    TargetBranchCheckoutError,
    VersionControlError,
    WorkspaceCreationError,
    WorkspaceNotFoundError,
)
from mctl.orchestration.merge import MergeCoordinator
from mctl.orchestration.models import MergeResult, MergeStrategy, Workspace, WorkspaceStatus
from mctl.validation.protocol import ValidationGateway
from mctl.vcs.protocol import VersionControlBridge

logger = logging.getLogger(__name__)


class WorkspaceRegistry:
    """Owns every agent workspace and its cached status.

    Workspaces live under `base_path/<id>`, each on its own branch forked
    from whatever branch the main repository had checked out at creation.
    """

    def __init__(
        self,
        bridge: VersionControlBridge,
        base_path: Path,
        repository: Path | None = None,
        validator: ValidationGateway | None = None,
        sync_remote: str | None = None,
    ) -> None:
        self.bridge = bridge
        self.base_path = Path(base_path)
        self.repository = repository
        self.sync_remote = sync_remote
        self.coordinator = MergeCoordinator(bridge, validator, repository)
        self._workspaces: dict[str, Workspace] = {}
        self._workspace_locks: dict[str, asyncio.Lock] = {}
        self._target_locks: dict[str, asyncio.Lock] = {}

    def workspace_lock(self, workspace_id: str) -> asyncio.Lock:
        """Lock serializing sync, validation and merge of one workspace."""
        return self._workspace_locks.setdefault(workspace_id, asyncio.Lock())

    def target_lock(self, branch: str) -> asyncio.Lock:
        """Lock serializing merges into one target branch."""
        return self._target_locks.setdefault(branch, asyncio.Lock())

    def get(self, workspace_id: str) -> Workspace:
        workspace = self._workspaces.get(workspace_id)
        if workspace is None:
            raise WorkspaceNotFoundError(workspace_id)
        return workspace

    def list_workspaces(self) -> list[Workspace]:
        return list(self._workspaces.values())

    def __len__(self) -> int:
        return len(self._workspaces)

    async def create_workspace(self, workspace_id: str, branch_name: str) -> Workspace:
        """Create a worktree on a new branch rooted at the current HEAD.

        Raises:
            WorkspaceCreationError: id or branch already in use, or git failed.
        """
        if workspace_id in self._workspaces:
            raise WorkspaceCreationError(f"Workspace {workspace_id} already exists")
        if any(w.branch_name == branch_name for w in self._workspaces.values()):
            raise WorkspaceCreationError(f"Branch {branch_name} is already in use")

        path = self.base_path / workspace_id
        try:
            base_branch = await self.bridge.current_branch(cwd=self.repository)
            await self.bridge.create(branch_name, path)
        except VersionControlError as e:
            raise WorkspaceCreationError(f"Failed to create workspace {workspace_id}: {e}") from e

        workspace = Workspace(
            id=workspace_id,
            path=str(path),
            branch_name=branch_name,
            base_branch_name=base_branch,
            status=WorkspaceStatus(),
            last_sync=datetime.now(),
        )
        self._workspaces[workspace_id] = workspace
        logger.info("Created workspace %s on %s (base %s)", workspace_id, branch_name, base_branch)
        return workspace

    async def adopt_workspace(self, workspace_id: str) -> Workspace | None:
        """Register a worktree left at `base_path/<id>` by an earlier process.

        The base branch is taken to be the branch the main repository has
        checked out now. Returns None if no such worktree directory exists.
        """
        if workspace_id in self._workspaces:
            return self._workspaces[workspace_id]

        path = self.base_path / workspace_id
        if not path.is_dir():
            return None

        branch = await self.bridge.current_branch(cwd=path)
        base_branch = await self.bridge.current_branch(cwd=self.repository)
        workspace = Workspace(
            id=workspace_id,
            path=str(path),
            branch_name=branch,
            base_branch_name=base_branch,
        )
        self._workspaces[workspace_id] = workspace
        logger.info("Adopted workspace %s on %s", workspace_id, branch)
        return workspace

    async def get_status(self, workspace_id: str) -> WorkspaceStatus:
        """Refresh and return the workspace's status against its base branch."""
        workspace = self.get(workspace_id)
        raw = await self.bridge.status(
            Path(workspace.path), workspace.base_branch_name, workspace.branch_name
        )
        status = WorkspaceStatus(
            clean=not raw.modified_files,
            ahead=raw.ahead,
            behind=raw.behind,
            conflict_files=list(workspace.status.conflict_files),
            modified_files=raw.modified_files,
        )
        workspace.status = status
        return status

    async def sync_workspace(self, workspace_id: str) -> None:
        """Merge the base branch into the workspace branch.

        Raises:
            MergeConflictError: the merge left conflicted files; they are
                recorded in the workspace status and left for the agent.
        """
        workspace = self.get(workspace_id)
        cwd = Path(workspace.path)

        async with self.workspace_lock(workspace_id):
            base_ref = workspace.base_branch_name
            if self.sync_remote:
                await self.bridge.fetch(self.sync_remote, cwd=cwd)
                base_ref = f"{self.sync_remote}/{workspace.base_branch_name}"

            outcome = await self.bridge.merge(
                [base_ref], f"Sync {base_ref} into {workspace.branch_name}", cwd=cwd
            )
            if outcome.conflict_files:
                workspace.status.conflict_files = list(outcome.conflict_files)
                raise MergeConflictError(workspace_id, outcome.conflict_files)
            if not outcome.success:
                raise VersionControlError(
                    ["git", "merge", base_ref], 1, outcome.error or ""
                )

            workspace.status.conflict_files = []
            workspace.last_sync = datetime.now()

    async def remove_workspace(self, workspace_id: str) -> None:
        """Force-remove a workspace. Never raises, even for unknown ids."""
        workspace = self._workspaces.pop(workspace_id, None)
        if workspace is None:
            return
        self._workspace_locks.pop(workspace_id, None)
        try:
            await self.bridge.remove(Path(workspace.path))
        except Exception as e:
            logger.error("Failed to remove workspace %s: %s", workspace_id, e)

    async def cleanup_all(self) -> None:
        for workspace_id in list(self._workspaces):
            await self.remove_workspace(workspace_id)

    async def merge_workspaces(
        self, workspaces: list[Workspace], target_branch: str, strategy: MergeStrategy
    ) -> MergeResult:
        """Check out target_branch in the main repository and merge per strategy.

        Raises:
            TargetBranchCheckoutError: target_branch could not be checked out.
            NotImplementedError: strategy is rebase.
        """
        async with self.target_lock(target_branch):
            try:
                await self.bridge.checkout(target_branch, cwd=self.repository)
            except VersionControlError as e:
                raise TargetBranchCheckoutError(
                    f"Could not check out {target_branch}: {e}"
                ) from e

            return await self.coordinator.merge(workspaces, target_branch, strategy)
