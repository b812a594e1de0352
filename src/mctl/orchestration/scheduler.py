"""Capability-based task scheduling with a dependency graph."""

import logging
from dataclasses import dataclass

from mctl.config.defaults import (
    DEFAULT_COMPONENT_CAPABILITIES,
    DEFAULT_MAX_TASK_RETRIES,
    DEFAULT_TYPE_CAPABILITIES,
    DEFAULT_TYPE_COMPATIBILITY,
    PROFICIENCY_THRESHOLD,
)
from mctl.orchestration.exceptions import AgentBusyError
from mctl.orchestration.models import Agent, Task, TaskState

logger = logging.getLogger(__name__)


@dataclass
class TaskRecord:
    """Scheduler bookkeeping for one task"""
    task: Task
    state: TaskState = TaskState.PENDING
    agent_id: str | None = None
    attempts: int = 0


class TaskScheduler:
    """Matches tasks to agents and tracks task state.

    Task lifecycle: pending -> assigned -> completed | failed. A failed task
    goes back to pending until it has failed `max_retries` times.
    """

    def __init__(
        self,
        type_compatibility: dict[str, list[str]] | None = None,
        component_capabilities: dict[str, list[str]] | None = None,
        type_capabilities: dict[str, list[str]] | None = None,
        max_retries: int = DEFAULT_MAX_TASK_RETRIES,
    ) -> None:
        self.type_compatibility = (
            type_compatibility if type_compatibility is not None else DEFAULT_TYPE_COMPATIBILITY
        )
        self.component_capabilities = (
            component_capabilities
            if component_capabilities is not None
            else DEFAULT_COMPONENT_CAPABILITIES
        )
        self.type_capabilities = (
            type_capabilities if type_capabilities is not None else DEFAULT_TYPE_CAPABILITIES
        )
        self.max_retries = max_retries
        self._tasks: dict[str, TaskRecord] = {}
        self._active: dict[str, str] = {}  # agent_id -> task_id

    # --- matching ---

    def accepts(self, agent: Agent, task: Task) -> bool:
        """Whether the agent's type may work on the task's type."""
        return task.type in self.type_compatibility.get(agent.definition.type, [])

    def required_capabilities(self, task: Task) -> list[str]:
        """Declared capabilities, or those implied by the task's component and type."""
        if task.required_capabilities:
            return list(task.required_capabilities)

        required: list[str] = []
        component = task.component.lower()
        for fragment, capabilities in self.component_capabilities.items():
            if fragment in component:
                required.extend(c for c in capabilities if c not in required)
        for capability in self.type_capabilities.get(task.type, []):
            if capability not in required:
                required.append(capability)
        return required

    def qualifies(self, agent: Agent, task: Task) -> bool:
        """Type-compatible and proficient enough in every required capability."""
        if not self.accepts(agent, task):
            return False
        for capability in self.required_capabilities(task):
            proficiency = agent.definition.proficiency(capability)
            if proficiency is None or proficiency < PROFICIENCY_THRESHOLD:
                return False
        return True

    def _score(self, agent: Agent, required: list[str]) -> float:
        if not required:
            return 0.0
        return sum(agent.definition.proficiency(c) or 0 for c in required) / len(required)

    def find_best_agent(self, task: Task, candidates: list[Agent]) -> Agent | None:
        """Best qualified candidate, or None when nothing qualifies.

        Higher mean proficiency over the required capabilities wins; ties go
        to the earlier candidate so scheduling is reproducible.
        """
        required = self.required_capabilities(task)
        best: Agent | None = None
        best_score = -1.0
        for agent in candidates:
            if not self.qualifies(agent, task):
                continue
            score = self._score(agent, required)
            if score > best_score:
                best, best_score = agent, score
        return best

    # --- task state ---

    def submit(self, task: Task) -> TaskRecord:
        """Register a task as pending. Re-submitting a known task is a no-op."""
        record = self._tasks.get(task.id)
        if record is None:
            record = TaskRecord(task=task)
            self._tasks[task.id] = record
        return record

    def is_ready(self, task_id: str) -> bool:
        """All dependencies are completed."""
        task = self._record(task_id).task
        for dep in task.dependencies:
            dep_record = self._tasks.get(dep)
            if dep_record is None or dep_record.state is not TaskState.COMPLETED:
                return False
        return True

    def is_busy(self, agent: Agent) -> bool:
        return agent.id in self._active

    def assign_task(self, task: Task, agent: Agent) -> None:
        """Bind the task to the agent.

        Raises:
            AgentBusyError: the agent already holds an active task.
        """
        current = self._active.get(agent.id)
        if current is not None and current != task.id:
            raise AgentBusyError(f"Agent {agent.id} is busy with task {current}")

        record = self.submit(task)
        record.state = TaskState.ASSIGNED
        record.agent_id = agent.id
        self._active[agent.id] = task.id
        logger.info("Task %s assigned to %s", task.id, agent.id)

    def complete_task(self, task_id: str) -> TaskRecord:
        record = self._record(task_id)
        record.state = TaskState.COMPLETED
        self._release(record)
        return record

    def fail_task(self, task_id: str) -> TaskState:
        """Record a failed attempt; the task returns to pending while retries remain."""
        record = self._record(task_id)
        record.attempts += 1
        self._release(record)
        if record.attempts < self.max_retries:
            record.state = TaskState.PENDING
        else:
            record.state = TaskState.FAILED
            logger.warning(
                "Task %s failed %d times; giving up", task_id, record.attempts
            )
        return record.state

    def release_agent(self, agent_id: str) -> Task | None:
        """Return a stopped agent's active task to pending."""
        task_id = self._active.get(agent_id)
        if task_id is None:
            return None
        record = self._record(task_id)
        record.state = TaskState.PENDING
        self._release(record)
        return record.task

    def _release(self, record: TaskRecord) -> None:
        if record.agent_id is not None and self._active.get(record.agent_id) == record.task.id:
            del self._active[record.agent_id]
        record.agent_id = None

    def get_dependent_tasks(self, task_id: str) -> list[Task]:
        """Pending tasks that list task_id as a dependency, each once."""
        dependents: list[Task] = []
        seen: set[str] = set()
        for record in self._tasks.values():
            task = record.task
            if task.id == task_id or task.id in seen:
                continue
            if record.state is TaskState.PENDING and task_id in task.dependencies:
                dependents.append(task)
                seen.add(task.id)
        return dependents

    def get_task_state(self, task_id: str) -> TaskState:
        return self._record(task_id).state

    def get_record(self, task_id: str) -> TaskRecord | None:
        return self._tasks.get(task_id)

    def active_task_for(self, agent_id: str) -> str | None:
        return self._active.get(agent_id)

    def get_active_tasks(self) -> dict[str, str]:
        """Mapping of agent id to the task it is working on."""
        return dict(self._active)

    def get_pending_tasks(self) -> list[Task]:
        """Pending tasks, highest priority first, then in submission order."""
        pending = [r.task for r in self._tasks.values() if r.state is TaskState.PENDING]
        return sorted(pending, key=lambda t: -t.priority)

    def _record(self, task_id: str) -> TaskRecord:
        record = self._tasks.get(task_id)
        if record is None:
            raise KeyError(f"Unknown task {task_id}")
        return record
