"""Mission control - coordinates parallel agents working in isolated worktrees"""
import asyncio
import contextlib
import logging
import re
from pathlib import Path

from mctl.agents.manager import AgentManager
from mctl.comms.hub import QueueCommunicationHub
from mctl.comms.protocol import CommunicationHub
from mctl.config.schema import MissionConfig
from mctl.orchestration.events import EventChannel, OrchestratorEvent
from mctl.orchestration.exceptions import (
    AgentBusyError,
    AgentLimitError,
    AlreadyRunningError,
    NoSuitableAgentError,
    SchedulingError,
    TargetBranchCheckoutError,
    WorkspaceNotFoundError,
)
from mctl.orchestration.metrics import MetricsCollector
from mctl.orchestration.models import (
    Agent,
    AgentDefinition,
    AgentState,
    MergeResult,
    Task,
    TaskState,
    ValidationResult,
    Workspace,
)
from mctl.orchestration.scheduler import TaskScheduler
from mctl.orchestration.workspace import WorkspaceRegistry
from mctl.tmux.protocol import PaneProvider
from mctl.validation.command import CommandValidator
from mctl.validation.protocol import ValidationGateway
from mctl.vcs.git import GitBridge
from mctl.vcs.protocol import VersionControlBridge

logger = logging.getLogger(__name__)


def branch_slug(name: str) -> str:
    """Make an agent name safe to use in a branch name"""
    slug = re.sub(r"[^a-z0-9._-]+", "-", name.lower()).strip("-.")
    return slug or "agent"


class MissionControl:
    """Top-level controller for agents, tasks, validation and merges.

    Every collaborator can be injected; anything left out is built from
    the config, so independent instances never share state.
    """

    def __init__(
        self,
        config: MissionConfig | None = None,
        *,
        bridge: VersionControlBridge | None = None,
        registry: WorkspaceRegistry | None = None,
        scheduler: TaskScheduler | None = None,
        validator: ValidationGateway | None = None,
        comms: CommunicationHub | None = None,
        panes: PaneProvider | None = None,
        events: EventChannel | None = None,
        metrics: MetricsCollector | None = None,
    ):
        self.config = config or MissionConfig.default()
        settings = self.config.global_
        repository = settings.repository_path()

        self.bridge = bridge or GitBridge(repository)
        self.validator = validator or CommandValidator(self.config.validation.pre_commit_checks)
        self.registry = registry or WorkspaceRegistry(
            self.bridge,
            settings.worktree_path(),
            repository=repository,
            validator=self.validator,
            sync_remote=settings.sync_remote,
        )
        self.scheduler = scheduler or TaskScheduler(
            type_compatibility=self.config.scheduling.type_compatibility,
            component_capabilities=self.config.scheduling.component_capabilities,
            type_capabilities=self.config.scheduling.type_capabilities,
            max_retries=self.config.scheduling.max_task_retries,
        )
        self.comms = comms or QueueCommunicationHub(self.config.comms.queue_size)
        self.panes = panes
        log_file = self.config.events.log_file
        self.events = events or EventChannel(
            queue_size=self.config.events.queue_size,
            log_file=Path(log_file).expanduser() if log_file else None,
        )
        self.metrics = metrics or MetricsCollector()
        self.agents = AgentManager()
        self.running = False

    # === Lifecycle ===

    async def start(self) -> None:
        """Start mission control.

        Raises:
            AlreadyRunningError: start() was already called.
        """
        if self.running:
            raise AlreadyRunningError("Mission control is already running")

        self.running = True
        try:
            if self.panes is not None:
                try:
                    self.panes.initialize_layout()
                except Exception as e:
                    logger.warning("Could not initialize pane layout: %s", e)
            await self.comms.start()
            self.metrics.start_collection()
        except Exception:
            self.running = False
            raise
        logger.info("Mission control started")

    async def shutdown(self) -> None:
        """Stop every agent and close collaborators. No-op when not running."""
        if not self.running:
            return

        for agent in self.agents.get_live_agents():
            await self.stop_agent(agent.id, remove_workspace=False)

        await self.comms.stop()
        self.metrics.stop_collection()

        if self.config.global_.cleanup_on_shutdown:
            await self.registry.cleanup_all()

        if self.panes is not None:
            try:
                self.panes.close()
            except Exception as e:
                logger.warning("Could not close pane layout: %s", e)

        self.running = False
        logger.info("Mission control shut down")

    # === Agents ===

    async def launch_agent(self, definition: AgentDefinition) -> Agent:
        """Create a workspace, pane and comms registration for a new agent."""
        max_agents = self.config.global_.max_agents
        if len(self.agents) >= max_agents:
            raise AgentLimitError(f"Already running the maximum of {max_agents} agents")

        workspace = await self.registry.create_workspace(
            f"agent-{definition.id}",
            f"{self.config.global_.branch_prefix}/{branch_slug(definition.name)}",
        )
        pane_id = self._create_pane(definition.name, workspace)
        agent = self.agents.create_agent(definition, workspace, pane_id)

        try:
            await self.comms.register_agent(agent)
        except Exception:
            self.agents.stop_agent(agent.id)
            await self.registry.remove_workspace(workspace.id)
            raise

        self.agents.activate(agent.id)
        self._emit(
            "agent-started",
            agent_id=agent.id,
            payload={"type": definition.type, "branch": workspace.branch_name},
        )
        return agent

    async def reattach_agent(self, definition: AgentDefinition) -> Agent | None:
        """Pick up an agent whose workspace survives from an earlier run.

        Returns None when the agent has no workspace on disk.
        """
        existing = self.agents.find(definition.id)
        if existing is not None:
            return existing

        workspace = await self.registry.adopt_workspace(f"agent-{definition.id}")
        if workspace is None:
            return None

        agent = self.agents.create_agent(definition, workspace)
        await self.comms.register_agent(agent)
        self.agents.activate(agent.id)
        self._emit(
            "agent-started",
            agent_id=agent.id,
            payload={"type": definition.type, "branch": workspace.branch_name, "reattached": True},
        )
        return agent

    def _create_pane(self, name: str, workspace: Workspace) -> str | None:
        if self.panes is None:
            return None
        try:
            return self.panes.create_agent_pane(name, workspace.path)
        except Exception as e:
            logger.warning("Could not create pane for %s: %s", name, e)
            return None

    def _send_to_pane(self, agent: Agent, task: Task) -> bool:
        """Type the task into the agent's pane. Returns whether it was delivered."""
        if self.panes is None or agent.pane_id is None:
            return False
        text = " ".join(task.requirements) or f"Work on task {task.id} ({task.type})"
        try:
            self.panes.send_to_pane(agent.definition.name, text)
        except Exception as e:
            logger.warning("Could not send task %s to pane of %s: %s", task.id, agent.id, e)
            return False
        return True

    def pause_agent(self, agent_id: str) -> Agent:
        agent = self.agents.pause_agent(agent_id)
        self._emit("agent-paused", agent_id=agent_id, severity="warning")
        return agent

    def resume_agent(self, agent_id: str) -> Agent:
        agent = self.agents.activate(agent_id)
        self._emit("agent-resumed", agent_id=agent_id)
        return agent

    async def stop_agent(self, agent_id: str, remove_workspace: bool = True) -> None:
        """Stop an agent; its active task goes back to pending.

        In-flight validations for the agent run to completion and their
        results are discarded.
        """
        agent = self.agents.get_agent(agent_id)
        released = self.scheduler.release_agent(agent.id)
        self.agents.stop_agent(agent.id)
        await self.comms.unregister_agent(agent.id)
        if remove_workspace:
            await self.registry.remove_workspace(agent.workspace.id)
        self._emit(
            "agent-stopped",
            agent_id=agent.id,
            payload={"released_task": released.id if released else None},
        )

    # === Tasks ===

    async def assign_task(self, task: Task) -> Agent | None:
        """Dispatch a task to the best idle agent.

        Tasks with unfinished dependencies stay pending and return None;
        they are dispatched when their dependencies complete.

        Raises:
            NoSuitableAgentError: no active agent qualifies for the task.
            AgentBusyError: qualified agents exist but all hold a task.
        """
        record = self.scheduler.submit(task)
        if record.state is not TaskState.PENDING:
            raise SchedulingError(f"Task {task.id} is already {record.state.value}")

        if not self.scheduler.is_ready(task.id):
            self._emit(
                "task-deferred",
                task_id=task.id,
                payload={"reason": "dependencies", "dependencies": list(task.dependencies)},
            )
            return None

        return await self._dispatch(task)

    async def _dispatch(self, task: Task) -> Agent:
        candidates = self.agents.get_active_agents()
        idle = [a for a in candidates if not self.scheduler.is_busy(a)]

        agent = self.scheduler.find_best_agent(task, idle)
        if agent is None:
            if self.scheduler.find_best_agent(task, candidates) is not None:
                raise AgentBusyError(f"Every agent able to take task {task.id} is busy")
            raise NoSuitableAgentError(f"No suitable agent found for task {task.id}")

        self.scheduler.assign_task(task, agent)
        agent.current_task_id = task.id
        self.metrics.record_task_started(task)
        await self.comms.send_task_to_agent(agent.id, task)
        delivered = self._send_to_pane(agent, task)
        self._emit("task-assigned", agent_id=agent.id, task_id=task.id, payload={"pane": delivered})
        return agent

    async def _try_dispatch(self, task: Task) -> Agent | None:
        try:
            return await self._dispatch(task)
        except SchedulingError as e:
            logger.warning("Task %s stays pending: %s", task.id, e)
            self._emit("task-deferred", task_id=task.id, payload={"reason": str(e)})
            return None

    async def dispatch_pending(self) -> list[Agent]:
        """Try to dispatch every ready pending task, e.g. after resuming agents."""
        assigned = []
        for task in self.scheduler.get_pending_tasks():
            if self.scheduler.is_ready(task.id):
                agent = await self._try_dispatch(task)
                if agent is not None:
                    assigned.append(agent)
        return assigned

    async def handle_task_completion(self, agent_id: str, task_id: str) -> ValidationResult | None:
        """Validate an agent's work after it reports a task done.

        Returns:
            The validation result, or None if the agent is gone.
        """
        agent = self.agents.find(agent_id)
        if agent is None:
            logger.warning("Completion of %s from unknown agent %s ignored", task_id, agent_id)
            return None
        if self.scheduler.active_task_for(agent_id) != task_id:
            raise SchedulingError(f"Agent {agent_id} is not working on task {task_id}")

        task = self.scheduler.get_record(task_id).task
        result = await self._validate(agent.workspace)

        if self.agents.find(agent_id) is None:
            logger.info("Agent %s stopped during validation; discarding result", agent_id)
            return None

        if not result.passed:
            await self._handle_failed_task(agent, task, result)
            return result

        self.scheduler.complete_task(task_id)
        agent.current_task_id = None
        self.metrics.record_task_completion(agent_id, task, success=True)
        self._emit(
            "task-completed",
            agent_id=agent_id,
            task_id=task_id,
            payload={"validation": result.to_dict()},
        )

        for dependent in self.scheduler.get_dependent_tasks(task_id):
            if self.scheduler.is_ready(dependent.id):
                await self._try_dispatch(dependent)

        return result

    async def _handle_failed_task(self, agent: Agent, task: Task, result: ValidationResult) -> None:
        await self.comms.send_validation_feedback(agent.id, result)
        state = self.scheduler.fail_task(task.id)
        agent.current_task_id = None
        self.metrics.record_task_completion(agent.id, task, success=False)
        record = self.scheduler.get_record(task.id)
        self._emit(
            "task-failed",
            agent_id=agent.id,
            task_id=task.id,
            payload={"attempts": record.attempts, "state": state.value},
            severity="warning",
        )

        await self.handle_validation_failure(result)

        if state is not TaskState.PENDING:
            return
        # The agent keeps the task to act on the feedback unless it was paused
        # or picked up other work while containment ran
        if agent.state is not AgentState.ACTIVE or self.scheduler.is_busy(agent):
            self._emit("task-deferred", task_id=task.id, payload={"reason": "retry pending"})
            return
        self.scheduler.assign_task(task, agent)
        agent.current_task_id = task.id
        self._emit(
            "task-assigned",
            agent_id=agent.id,
            task_id=task.id,
            payload={"retry": record.attempts},
        )

    # === Validation ===

    async def _validate(self, workspace: Workspace) -> ValidationResult:
        async with self.registry.workspace_lock(workspace.id):
            return await self.validator.validate(workspace)

    async def handle_validation_failure(self, result: ValidationResult) -> list[str]:
        """Log the failure and, if it has errors, pause agents touching violated files.

        Returns:
            Ids of the agents that were paused.
        """
        self._emit(
            "validation-failed",
            payload={"result": result.to_dict()},
            severity="error",
        )
        if not result.error_violations:
            return []
        return await self._pause_affected_agents(result)

    async def _pause_affected_agents(self, result: ValidationResult) -> list[str]:
        affected_files = {v.file for v in result.violations if v.file}
        paused = []
        for agent in self.agents.get_active_agents():
            try:
                status = await self.registry.get_status(agent.workspace.id)
            except WorkspaceNotFoundError:
                continue
            if affected_files.intersection(status.modified_files):
                self.pause_agent(agent.id)
                paused.append(agent.id)
        if paused:
            logger.warning("Paused %s after validation failure", ", ".join(paused))
        return paused

    async def _touched_workspaces(self) -> list[Workspace]:
        touched = []
        for agent in self.agents.get_live_agents():
            status = await self.registry.get_status(agent.workspace.id)
            if status.has_changes:
                touched.append(agent.workspace)
        return touched

    async def validate_all_changes(self) -> list[ValidationResult]:
        """Validate every workspace with uncommitted or unmerged work."""
        touched = await self._touched_workspaces()
        results = await asyncio.gather(*(self._validate(w) for w in touched))
        for result in results:
            if not result.passed:
                await self.handle_validation_failure(result)
        return list(results)

    # === Merging ===

    async def merge_all_worktrees(self, target_branch: str) -> MergeResult:
        """Re-validate every touched workspace, then merge them into target_branch.

        Workspace locks are held for the whole operation so no new
        validation or sync starts against a workspace being merged.
        """
        workspaces = sorted(
            (a.workspace for a in self.agents.get_live_agents()), key=lambda w: w.id
        )
        async with contextlib.AsyncExitStack() as stack:
            for workspace in workspaces:
                await stack.enter_async_context(self.registry.workspace_lock(workspace.id))

            self._emit("merge-started", payload={"target": target_branch})

            touched = []
            for workspace in workspaces:
                status = await self.registry.get_status(workspace.id)
                if status.has_changes:
                    touched.append(workspace)

            results = await asyncio.gather(*(self.validator.validate(w) for w in touched))
            failed = [r for r in results if not r.passed]
            if failed:
                for result in failed:
                    await self.handle_validation_failure(result)
                return MergeResult(success=False, validation_results=failed[0])

            mergeable = [w for w in touched if w.status.ahead > 0]
            if not mergeable:
                logger.info("Nothing to merge into %s", target_branch)
                self._emit("merge-completed", payload={"target": target_branch, "branches": []})
                return MergeResult(success=True, merged_branch=target_branch)

            strategy = self.config.merge.to_strategy()
            try:
                result = await self.registry.merge_workspaces(mergeable, target_branch, strategy)
            except (TargetBranchCheckoutError, NotImplementedError) as e:
                self._emit("system-error", payload={"error": str(e)}, severity="error")
                raise

            branches = [w.branch_name for w in mergeable]
            if result.success:
                self._emit(
                    "merge-completed",
                    payload={"target": target_branch, "branches": branches},
                )
            else:
                self._emit(
                    "merge-conflict",
                    payload={"target": target_branch, "result": result.to_dict()},
                    severity="error",
                )
            return result

    # === Status ===

    def _emit(self, type: str, **kwargs) -> OrchestratorEvent:
        event = self.events.emit(type, **kwargs)
        self.metrics.record_event(event)
        return event

    def get_status(self) -> dict:
        return {
            "running": self.running,
            "agents": self.agents.get_agent_statuses(),
            "active_tasks": self.scheduler.get_active_tasks(),
            "metrics": self.metrics.get_summary(),
            "uptime": self.metrics.get_uptime(),
        }
