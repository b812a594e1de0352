"""Pytest configuration and fixtures."""

import asyncio
from pathlib import Path

import pytest

from mctl.agents.profiles import get_profile
from mctl.config.schema import MissionConfig
from mctl.orchestration.exceptions import VersionControlError
from mctl.orchestration.models import ValidationResult, Violation, Workspace
from mctl.validation.protocol import ValidationGateway
from mctl.vcs.protocol import BridgeStatus, MergeOutcome, VersionControlBridge


class FakeBridge(VersionControlBridge):
    """In-memory bridge that records every command it is asked to run."""

    def __init__(self):
        self.branch = "main"
        self.created: list[tuple[str, Path]] = []
        self.removed: list[Path] = []
        self.checkouts: list[str] = []
        self.fetches: list[str] = []
        self.merges: list[tuple[list[str], str, Path | None]] = []
        self.aborts = 0
        self.statuses: dict[str, BridgeStatus] = {}
        self.merge_outcomes: list[MergeOutcome] = []
        self.fail_create = False
        self.fail_checkout = False
        self.fail_remove = False
        # Set to an unset asyncio.Event to hold merges until it is set
        self.merge_gate: asyncio.Event | None = None
        self.active_merges = 0
        self.max_active_merges = 0

    async def current_branch(self, cwd=None):
        return self.branch

    async def create(self, branch, path, start_point="HEAD"):
        if self.fail_create:
            raise VersionControlError(["git", "worktree", "add"], 128, "fatal: already exists")
        self.created.append((branch, Path(path)))

    async def status(self, path, base_branch, branch):
        return self.statuses.get(str(path), BridgeStatus())

    async def checkout(self, branch, cwd=None):
        if self.fail_checkout:
            raise VersionControlError(["git", "checkout", branch], 1, "error: pathspec")
        self.checkouts.append(branch)

    async def fetch(self, remote, cwd=None):
        self.fetches.append(remote)

    async def merge(self, refs, message, cwd=None):
        self.merges.append((list(refs), message, cwd))
        self.active_merges += 1
        self.max_active_merges = max(self.max_active_merges, self.active_merges)
        try:
            if self.merge_gate is not None:
                await self.merge_gate.wait()
        finally:
            self.active_merges -= 1
        if self.merge_outcomes:
            return self.merge_outcomes.pop(0)
        return MergeOutcome(success=True)

    async def abort_merge(self, cwd=None):
        self.aborts += 1

    async def conflict_files(self, cwd=None):
        return []

    async def remove(self, path):
        if self.fail_remove:
            raise VersionControlError(["git", "worktree", "remove"], 1, "error")
        self.removed.append(Path(path))


class FakeValidator(ValidationGateway):
    """Passes every workspace unless a failing result is queued for it."""

    def __init__(self):
        self.results: dict[str, ValidationResult] = {}
        self.calls: list[str] = []

    async def validate(self, workspace):
        self.calls.append(workspace.id)
        result = self.results.get(workspace.id)
        if result is not None:
            return result
        return ValidationResult(passed=True, workspace_id=workspace.id)

    def fail(self, workspace_id: str, file: str = "src/app.py") -> ValidationResult:
        result = ValidationResult(
            passed=False,
            violations=[Violation(file=file, severity="error", message="E501 line too long", line=3)],
            workspace_id=workspace_id,
        )
        self.results[workspace_id] = result
        return result


@pytest.fixture
def bridge():
    return FakeBridge()


@pytest.fixture
def validator():
    return FakeValidator()


@pytest.fixture
def config(tmp_path):
    """Config rooted in a temporary repository with tmux disabled."""
    return MissionConfig.model_validate({
        "global": {"repository": str(tmp_path), "worktree_base_path": str(tmp_path / "worktrees")},
        "tmux": {"enabled": False},
    })


@pytest.fixture
def make_workspace(tmp_path):
    def _make(workspace_id: str, branch: str | None = None) -> Workspace:
        return Workspace(
            id=workspace_id,
            path=str(tmp_path / workspace_id),
            branch_name=branch or f"agent/{workspace_id}",
            base_branch_name="main",
        )
    return _make


@pytest.fixture
def ui_definition():
    return get_profile("ui-specialist")


@pytest.fixture
def validator_definition():
    return get_profile("validator")
