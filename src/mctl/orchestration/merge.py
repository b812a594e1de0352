"""Merge strategies for reconciling agent branches into a target branch."""

import logging
from pathlib import Path

from mctl.orchestration.models import ConflictInfo, MergeResult, MergeStrategy, Workspace
from mctl.validation.protocol import ValidationGateway
from mctl.vcs.protocol import MergeOutcome, VersionControlBridge

logger = logging.getLogger(__name__)


class MergeCoordinator:
    """Runs the configured strategy against the checked-out target branch.

    The caller checks out the target first; every merge command runs in
    the main repository.
    """

    def __init__(
        self,
        bridge: VersionControlBridge,
        validator: ValidationGateway | None = None,
        repository: Path | None = None,
    ) -> None:
        self.bridge = bridge
        self.validator = validator
        self.repository = repository

    async def merge(
        self, workspaces: list[Workspace], target_branch: str, strategy: MergeStrategy
    ) -> MergeResult:
        if strategy.type == "octopus":
            return await self.octopus_merge(workspaces, target_branch, strategy)
        if strategy.type == "sequential":
            return await self.sequential_merge(workspaces, target_branch, strategy)
        if strategy.type == "rebase":
            return await self.rebase_merge(workspaces, target_branch, strategy)
        raise ValueError(f"Unknown merge strategy: {strategy.type}")

    async def octopus_merge(
        self, workspaces: list[Workspace], target_branch: str, strategy: MergeStrategy
    ) -> MergeResult:
        """Merge every branch in one command.

        A multi-parent merge cannot pin a conflict on one branch, so every
        participating branch is reported for each conflicting file.
        """
        branches = [w.branch_name for w in workspaces]
        outcome = await self.bridge.merge(
            branches,
            f"Octopus merge of {len(branches)} agent branches into {target_branch}",
            cwd=self.repository,
        )
        if outcome.success:
            return MergeResult(success=True, merged_branch=target_branch)

        conflicts = self._conflicts(outcome, branches)
        await self._resolve(strategy)
        return MergeResult(success=False, conflicts=conflicts)

    async def sequential_merge(
        self, workspaces: list[Workspace], target_branch: str, strategy: MergeStrategy
    ) -> MergeResult:
        """Merge branches one at a time in the given order.

        Stops at the first failing test or conflict. Branches merged before
        the failure stay merged.
        """
        for workspace in workspaces:
            if strategy.test_before_merge and self.validator is not None:
                test_result = await self.validator.validate(workspace)
                if not test_result.passed:
                    if strategy.require_all_tests_pass:
                        logger.warning(
                            "Pre-merge validation failed for %s; stopping",
                            workspace.branch_name,
                        )
                        return MergeResult(success=False, test_results=[test_result])
                    logger.warning(
                        "Pre-merge validation failed for %s; merging anyway",
                        workspace.branch_name,
                    )

            outcome = await self.bridge.merge(
                [workspace.branch_name],
                f"Merge {workspace.branch_name} into {target_branch}",
                cwd=self.repository,
            )
            if not outcome.success:
                conflicts = self._conflicts(outcome, [workspace.branch_name])
                await self._resolve(strategy)
                return MergeResult(success=False, conflicts=conflicts)

            logger.info("Merged %s into %s", workspace.branch_name, target_branch)

        return MergeResult(success=True, merged_branch=target_branch)

    async def rebase_merge(
        self, workspaces: list[Workspace], target_branch: str, strategy: MergeStrategy
    ) -> MergeResult:
        raise NotImplementedError("Rebase merge strategy is not implemented")

    def _conflicts(self, outcome: MergeOutcome, branches: list[str]) -> list[ConflictInfo]:
        if outcome.conflict_files:
            return [
                ConflictInfo(file=f, conflict_type="content", branches=list(branches))
                for f in outcome.conflict_files
            ]
        # The command failed without leaving unmerged files
        return [
            ConflictInfo(
                file="merge",
                conflict_type="content",
                branches=list(branches),
                resolution=outcome.error or "merge failed",
            )
        ]

    async def _resolve(self, strategy: MergeStrategy) -> None:
        if strategy.conflict_resolution == "abort":
            await self.bridge.abort_merge(cwd=self.repository)
            return
        if strategy.conflict_resolution == "assisted":
            logger.warning("Assisted conflict resolution is not available; leaving merge for manual resolution")
        logger.info("Merge left in conflicted state for manual resolution")
