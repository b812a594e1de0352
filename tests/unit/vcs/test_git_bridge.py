"""Tests for the git version control bridge"""
import shutil
import subprocess
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from mctl.orchestration.exceptions import VersionControlError
from mctl.vcs.git import GitBridge, parse_conflict_paths, parse_left_right_counts, parse_porcelain
from mctl.vcs.protocol import CommandResult


def ok(stdout: str = "") -> CommandResult:
    return CommandResult(args=["git"], returncode=0, stdout=stdout)


def failed(stderr: str = "fatal", returncode: int = 1) -> CommandResult:
    return CommandResult(args=["git"], returncode=returncode, stderr=stderr)


# --- parsing ---


def test_parse_porcelain_extracts_paths():
    output = " M src/app.py\n?? notes.txt\nA  new.py\n"
    assert parse_porcelain(output) == ["src/app.py", "notes.txt", "new.py"]


def test_parse_porcelain_uses_new_name_for_renames():
    assert parse_porcelain("R  old.py -> new.py\n") == ["new.py"]


def test_parse_porcelain_strips_quotes():
    assert parse_porcelain('?? "with space.txt"\n') == ["with space.txt"]


def test_parse_porcelain_skips_garbage():
    assert parse_porcelain("garbage\n\n M ok.py\n") == ["ok.py"]


def test_parse_porcelain_empty_output():
    assert parse_porcelain("") == []


def test_parse_left_right_counts():
    assert parse_left_right_counts("2\t5\n") == (2, 5)


def test_parse_left_right_counts_unexpected_output():
    assert parse_left_right_counts("") == (0, 0)
    assert parse_left_right_counts("x y") == (0, 0)
    assert parse_left_right_counts("1 2 3") == (0, 0)


# --- command handling with a mocked runner ---


@pytest.mark.asyncio
async def test_current_branch():
    bridge = GitBridge()
    bridge.run = AsyncMock(return_value=ok("feature/x\n"))

    assert await bridge.current_branch() == "feature/x"


@pytest.mark.asyncio
async def test_current_branch_detached_head_falls_back_to_commit():
    bridge = GitBridge()
    bridge.run = AsyncMock(side_effect=[ok(""), ok("abc123\n")])

    assert await bridge.current_branch() == "abc123"


@pytest.mark.asyncio
async def test_create_raises_on_failure(tmp_path):
    bridge = GitBridge(tmp_path)
    bridge.run = AsyncMock(return_value=failed("fatal: 'agent/ui' already exists", 128))

    with pytest.raises(VersionControlError) as exc_info:
        await bridge.create("agent/ui", tmp_path / "wt" / "agent-ui")

    assert exc_info.value.returncode == 128
    assert "already exists" in exc_info.value.stderr


@pytest.mark.asyncio
async def test_status_combines_porcelain_and_counts(tmp_path):
    bridge = GitBridge(tmp_path)
    bridge.run = AsyncMock(side_effect=[ok(" M a.py\n"), ok("1\t2\n")])

    status = await bridge.status(tmp_path, "main", "agent/ui")

    assert status.modified_files == ["a.py"]
    assert status.behind == 1
    assert status.ahead == 2


@pytest.mark.asyncio
async def test_status_degrades_when_commands_fail(tmp_path):
    bridge = GitBridge(tmp_path)
    bridge.run = AsyncMock(side_effect=[failed(), failed("unknown revision")])

    status = await bridge.status(tmp_path, "main", "agent/ui")

    assert status.modified_files == []
    assert (status.ahead, status.behind) == (0, 0)


@pytest.mark.asyncio
async def test_merge_reports_conflict_files():
    bridge = GitBridge()
    bridge.run = AsyncMock(side_effect=[failed("CONFLICT (content)"), ok("a.py\nb.py\n")])

    outcome = await bridge.merge(["agent/ui"], "msg")

    assert outcome.success is False
    assert outcome.conflict_files == ["a.py", "b.py"]
    args = bridge.run.call_args_list[0].args
    assert args == ("merge", "--no-ff", "-m", "msg", "agent/ui")


@pytest.mark.asyncio
async def test_merge_success():
    bridge = GitBridge()
    bridge.run = AsyncMock(side_effect=[ok("Merge made"), ok("")])

    outcome = await bridge.merge(["agent/a", "agent/b"], "octopus")

    assert outcome.success is True
    assert outcome.conflict_files == []


@pytest.mark.asyncio
async def test_abort_merge_falls_back_to_reset():
    bridge = GitBridge()
    bridge.run = AsyncMock(side_effect=[failed("no merge to abort"), ok()])

    await bridge.abort_merge()

    assert bridge.run.call_args_list[1].args == ("reset", "--merge")


@pytest.mark.asyncio
async def test_merge_falls_back_to_conflicts_named_in_output():
    bridge = GitBridge()
    bridge.run = AsyncMock(side_effect=[
        CommandResult(
            args=["git"],
            returncode=2,
            stdout="Auto-merging f.txt\nERROR: content conflict in f.txt\n",
            stderr="Merge with strategy octopus failed.\n",
        ),
        ok(""),
    ])

    outcome = await bridge.merge(["agent/a", "agent/b", "agent/c"], "octopus")

    assert outcome.success is False
    assert outcome.conflict_files == ["f.txt"]


def test_parse_conflict_paths():
    output = (
        "Auto-merging src/app.py\n"
        "CONFLICT (content): Merge conflict in src/app.py\n"
        "CONFLICT (modify/delete): docs/old.md deleted in HEAD and modified in agent/ui.\n"
        "ERROR: content conflict in src/app.py\n"
        "Automatic merge failed; fix conflicts and then commit the result.\n"
    )

    assert parse_conflict_paths(output) == ["src/app.py", "docs/old.md"]
    assert parse_conflict_paths("fatal: refusing to merge unrelated histories") == []

# --- against a real repository ---

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=cwd, check=True, capture_output=True, text=True
    )
    return result.stdout


@pytest.fixture
def repo(tmp_path):
    path = tmp_path / "repo"
    path.mkdir()
    git(path, "init")
    git(path, "checkout", "-b", "main")
    git(path, "config", "user.email", "dev@example.com")
    git(path, "config", "user.name", "Dev")
    git(path, "config", "commit.gpgsign", "false")
    (path / "shared.txt").write_text("base\n")
    git(path, "add", ".")
    git(path, "commit", "-m", "initial")
    return path


@requires_git
@pytest.mark.asyncio
async def test_new_worktree_is_clean(repo, tmp_path):
    bridge = GitBridge(repo)
    path = tmp_path / "worktrees" / "agent-ui"

    await bridge.create("agent/ui", path)
    status = await bridge.status(path, "main", "agent/ui")

    assert path.is_dir()
    assert await bridge.current_branch(cwd=path) == "agent/ui"
    assert status.modified_files == []
    assert (status.ahead, status.behind) == (0, 0)


@requires_git
@pytest.mark.asyncio
async def test_status_tracks_edits_and_commits(repo, tmp_path):
    bridge = GitBridge(repo)
    path = tmp_path / "worktrees" / "agent-ui"
    await bridge.create("agent/ui", path)

    (path / "feature.py").write_text("x = 1\n")
    status = await bridge.status(path, "main", "agent/ui")
    assert status.modified_files == ["feature.py"]

    git(path, "add", ".")
    git(path, "commit", "-m", "feature")
    status = await bridge.status(path, "main", "agent/ui")
    assert status.modified_files == []
    assert status.ahead == 1


@requires_git
@pytest.mark.asyncio
async def test_conflicting_merge_and_abort(repo, tmp_path):
    bridge = GitBridge(repo)
    path = tmp_path / "worktrees" / "agent-ui"
    await bridge.create("agent/ui", path)

    (path / "shared.txt").write_text("from agent\n")
    git(path, "commit", "-am", "agent change")
    (repo / "shared.txt").write_text("from main\n")
    git(repo, "commit", "-am", "main change")

    outcome = await bridge.merge(["agent/ui"], "Merge agent/ui", cwd=repo)
    assert outcome.success is False
    assert outcome.conflict_files == ["shared.txt"]

    await bridge.abort_merge(cwd=repo)
    assert await bridge.conflict_files(cwd=repo) == []
    assert (repo / "shared.txt").read_text() == "from main\n"


@requires_git
@pytest.mark.asyncio
async def test_remove_worktree(repo, tmp_path):
    bridge = GitBridge(repo)
    path = tmp_path / "worktrees" / "agent-ui"
    await bridge.create("agent/ui", path)
    (path / "dirty.txt").write_text("uncommitted\n")

    await bridge.remove(path)

    assert not path.exists()


@requires_git
@pytest.mark.asyncio
async def test_octopus_conflict_names_the_file(repo, tmp_path):
    bridge = GitBridge(repo)
    branches = ["agent/a", "agent/b", "agent/c"]
    for branch in branches:
        path = tmp_path / "worktrees" / branch.replace("/", "-")
        await bridge.create(branch, path)
        (path / "shared.txt").write_text(f"from {branch}\n")
        git(path, "commit", "-am", f"{branch} change")

    outcome = await bridge.merge(branches, "Merge agents", cwd=repo)

    assert outcome.success is False
    assert outcome.conflict_files == ["shared.txt"]
