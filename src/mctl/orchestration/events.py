"""Typed, bounded event channel for orchestrator transitions"""
import asyncio
import itertools
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

EVENT_TYPES = {
    "agent-started",
    "agent-paused",
    "agent-resumed",
    "agent-stopped",
    "task-assigned",
    "task-deferred",
    "task-completed",
    "task-failed",
    "validation-failed",
    "merge-started",
    "merge-completed",
    "merge-conflict",
    "system-error",
}


@dataclass
class OrchestratorEvent:
    """One lifecycle, task, validation or merge transition"""
    id: int
    type: str
    timestamp: datetime = field(default_factory=datetime.now)
    agent_id: str | None = None
    task_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    severity: str = "info"  # "info" | "warning" | "error" | "critical"

    def to_dict(self) -> dict:
        """Convert to dict for JSON serialization"""
        return {
            "id": self.id,
            "type": self.type,
            "timestamp": self.timestamp.isoformat(),
            "agent_id": self.agent_id,
            "task_id": self.task_id,
            "payload": self.payload,
            "severity": self.severity,
        }


class EventChannel:
    """Append-only event log with a bounded queue for consumers.

    Producers call emit(); consumers poll() or await receive(). History is
    never rewritten. When consumers fall behind the queue drops its oldest
    entry, which stays available in history.
    """

    def __init__(self, queue_size: int = 1000, log_file: Path | None = None):
        self._ids = itertools.count(1)
        self._queue: asyncio.Queue[OrchestratorEvent] = asyncio.Queue(maxsize=queue_size)
        self._history: list[OrchestratorEvent] = []
        self.log_file = log_file
        if self.log_file is not None:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)

    def emit(
        self,
        type: str,
        agent_id: str | None = None,
        task_id: str | None = None,
        payload: dict[str, Any] | None = None,
        severity: str = "info",
    ) -> OrchestratorEvent:
        if type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {type}")

        event = OrchestratorEvent(
            id=next(self._ids),
            type=type,
            agent_id=agent_id,
            task_id=task_id,
            payload=payload or {},
            severity=severity,
        )
        self._history.append(event)

        if self._queue.full():
            dropped = self._queue.get_nowait()
            logger.warning("Event queue full; dropped event %d (%s)", dropped.id, dropped.type)
        self._queue.put_nowait(event)

        if self.log_file is not None:
            self._append(event)
        return event

    def poll(self) -> OrchestratorEvent | None:
        """Next unconsumed event, or None"""
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    async def receive(self) -> OrchestratorEvent:
        """Block until the next event arrives"""
        return await self._queue.get()

    def history(self, type: str | None = None) -> list[OrchestratorEvent]:
        if type is None:
            return list(self._history)
        return [e for e in self._history if e.type == type]

    def _append(self, event: OrchestratorEvent) -> None:
        with open(self.log_file, 'a') as f:
            json.dump(event.to_dict(), f, default=str)
            f.write('\n')
