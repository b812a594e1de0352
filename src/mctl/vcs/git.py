"""git implementation of the version control bridge."""

import asyncio
import logging
import re
from pathlib import Path

from mctl.orchestration.exceptions import VersionControlError
from mctl.vcs.protocol import BridgeStatus, CommandResult, MergeOutcome, VersionControlBridge

logger = logging.getLogger(__name__)

_CONFLICT_PATTERNS = [
    re.compile(r"^CONFLICT \([^)]*\): Merge conflict in (.+)$"),
    re.compile(r"^CONFLICT \([^)]*\): (\S+) deleted in "),
    re.compile(r"^ERROR: \S+ conflict in (.+)$"),
]


class GitBridge(VersionControlBridge):
    """Runs git through asyncio subprocesses rooted at a repository."""

    def __init__(self, repository: Path | str = ".", executable: str = "git") -> None:
        self.repository = Path(repository)
        self.executable = executable

    async def run(self, *args: str, cwd: Path | None = None) -> CommandResult:
        """Run a git command and capture its output.

        Never raises for a non-zero exit; callers inspect the result.
        """
        cmd = [self.executable, *args]
        logger.debug("Running %s (cwd=%s)", " ".join(cmd), cwd or self.repository)
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd or self.repository),
        )
        stdout_bytes, stderr_bytes = await proc.communicate()
        return CommandResult(
            args=cmd,
            returncode=proc.returncode or 0,
            stdout=stdout_bytes.decode("utf-8", errors="replace"),
            stderr=stderr_bytes.decode("utf-8", errors="replace"),
        )

    async def _check(self, *args: str, cwd: Path | None = None) -> CommandResult:
        result = await self.run(*args, cwd=cwd)
        if not result.ok:
            raise VersionControlError(result.args, result.returncode, result.stderr)
        return result

    async def current_branch(self, cwd: Path | None = None) -> str:
        result = await self._check("branch", "--show-current", cwd=cwd)
        branch = result.stdout.strip()
        if not branch:
            # Detached HEAD; fall back to the commit so the base stays addressable
            head = await self._check("rev-parse", "HEAD", cwd=cwd)
            branch = head.stdout.strip()
            logger.warning("Repository HEAD is detached; using %s as base", branch)
        return branch

    async def create(self, branch: str, path: Path, start_point: str = "HEAD") -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        await self._check("worktree", "add", "-b", branch, str(path), start_point)

    async def status(self, path: Path, base_branch: str, branch: str) -> BridgeStatus:
        status_result = await self.run("status", "--porcelain", cwd=path)
        if status_result.ok:
            modified_files = parse_porcelain(status_result.stdout)
        else:
            logger.warning(
                "git status failed in %s: %s", path, status_result.stderr.strip()
            )
            modified_files = []

        counts = await self.run(
            "rev-list", "--left-right", "--count", f"{base_branch}...{branch}", cwd=path
        )
        if counts.ok:
            behind, ahead = parse_left_right_counts(counts.stdout)
        else:
            logger.warning(
                "git rev-list failed in %s: %s", path, counts.stderr.strip()
            )
            behind, ahead = 0, 0

        return BridgeStatus(modified_files=modified_files, ahead=ahead, behind=behind)

    async def checkout(self, branch: str, cwd: Path | None = None) -> None:
        await self._check("checkout", branch, cwd=cwd)

    async def fetch(self, remote: str, cwd: Path | None = None) -> None:
        await self._check("fetch", remote, cwd=cwd)

    async def merge(
        self, refs: list[str], message: str, cwd: Path | None = None
    ) -> MergeOutcome:
        result = await self.run("merge", "--no-ff", "-m", message, *refs, cwd=cwd)
        conflicts = await self.conflict_files(cwd=cwd)
        if result.ok and not conflicts:
            return MergeOutcome(success=True)
        if not result.ok and not conflicts:
            # Octopus restores the tree on conflict, leaving only its messages
            conflicts = parse_conflict_paths(result.stdout + "\n" + result.stderr)
        error = (result.stderr or result.stdout).strip() or None
        return MergeOutcome(success=False, conflict_files=conflicts, error=error)

    async def abort_merge(self, cwd: Path | None = None) -> None:
        result = await self.run("merge", "--abort", cwd=cwd)
        if not result.ok:
            # Octopus failures can leave no MERGE_HEAD; reset the index instead
            logger.warning("git merge --abort failed: %s", result.stderr.strip())
            await self._check("reset", "--merge", cwd=cwd)

    async def conflict_files(self, cwd: Path | None = None) -> list[str]:
        result = await self.run("diff", "--name-only", "--diff-filter=U", cwd=cwd)
        if not result.ok:
            logger.warning("Could not list unmerged files: %s", result.stderr.strip())
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    async def remove(self, path: Path) -> None:
        await self._check("worktree", "remove", "--force", str(path))


def parse_porcelain(output: str) -> list[str]:
    """Extract file paths from `git status --porcelain` (v1) output."""
    files: list[str] = []
    for line in output.splitlines():
        if len(line) < 4 or line[2] != " ":
            if line.strip():
                logger.warning("Unexpected porcelain line: %r", line)
            continue
        path = line[3:]
        if " -> " in path:
            # Renames report "old -> new"
            path = path.split(" -> ", 1)[1]
        files.append(path.strip('"'))
    return files


def parse_left_right_counts(output: str) -> tuple[int, int]:
    """Parse `rev-list --left-right --count` output into (behind, ahead)."""
    parts = output.split()
    if len(parts) != 2:
        logger.warning("Unexpected rev-list output: %r", output)
        return 0, 0
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        logger.warning("Unexpected rev-list output: %r", output)
        return 0, 0


def parse_conflict_paths(output: str) -> list[str]:
    """Conflicting paths named in `git merge` output, in order, each once."""
    paths: list[str] = []
    for line in output.splitlines():
        for pattern in _CONFLICT_PATTERNS:
            match = pattern.match(line.strip())
            if match and match.group(1) not in paths:
                paths.append(match.group(1))
                break
    return paths
