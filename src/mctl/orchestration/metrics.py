"""Metrics collection for agents, tasks and events"""
import time
from collections import defaultdict
from dataclasses import dataclass

from mctl.orchestration.events import OrchestratorEvent
from mctl.orchestration.models import Task


@dataclass
class AgentMetrics:
    """Per-agent performance counters"""
    tasks_completed: int = 0
    tasks_failed: int = 0
    validation_failures: int = 0
    total_task_time: float = 0.0

    @property
    def success_rate(self) -> float:
        attempts = self.tasks_completed + self.tasks_failed
        return self.tasks_completed / attempts if attempts else 0.0

    @property
    def average_task_time(self) -> float:
        return self.total_task_time / self.tasks_completed if self.tasks_completed else 0.0


class MetricsCollector:
    """Aggregates task outcomes and event counts"""

    def __init__(self):
        self.agents: dict[str, AgentMetrics] = defaultdict(AgentMetrics)
        self.events_by_type: dict[str, int] = defaultdict(int)
        self.events_by_severity: dict[str, int] = defaultdict(int)
        self._started_at: float | None = None
        self._stopped_at: float | None = None
        self._task_started: dict[str, float] = {}

    def start_collection(self) -> None:
        self._started_at = time.monotonic()
        self._stopped_at = None

    def stop_collection(self) -> None:
        if self._started_at is not None:
            self._stopped_at = time.monotonic()

    def record_event(self, event: OrchestratorEvent) -> None:
        self.events_by_type[event.type] += 1
        self.events_by_severity[event.severity] += 1

    def record_task_started(self, task: Task) -> None:
        self._task_started[task.id] = time.monotonic()

    def record_task_completion(self, agent_id: str, task: Task, success: bool) -> None:
        metrics = self.agents[agent_id]
        started = self._task_started.pop(task.id, None)
        if success:
            metrics.tasks_completed += 1
            if started is not None:
                metrics.total_task_time += time.monotonic() - started
        else:
            metrics.tasks_failed += 1
            metrics.validation_failures += 1

    def get_uptime(self) -> float:
        """Seconds since collection started (0 if never started)"""
        if self._started_at is None:
            return 0.0
        end = self._stopped_at if self._stopped_at is not None else time.monotonic()
        return end - self._started_at

    def get_summary(self) -> dict:
        completed = sum(m.tasks_completed for m in self.agents.values())
        failed = sum(m.tasks_failed for m in self.agents.values())
        return {
            "tasks_completed": completed,
            "tasks_failed": failed,
            "validation_failures": sum(m.validation_failures for m in self.agents.values()),
            "events_by_type": dict(self.events_by_type),
            "events_by_severity": dict(self.events_by_severity),
            "agents": {
                agent_id: {
                    "tasks_completed": m.tasks_completed,
                    "tasks_failed": m.tasks_failed,
                    "success_rate": m.success_rate,
                    "average_task_time": m.average_task_time,
                }
                for agent_id, m in self.agents.items()
            },
        }
