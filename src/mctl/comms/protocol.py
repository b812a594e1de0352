"""Communication hub protocol - the channel between mission control and agents."""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from mctl.orchestration.models import Agent, Task, ValidationResult

MESSAGE_TYPES = {
    "task-assignment",
    "task-update",
    "validation-result",
    "status-update",
    "error",
    "heartbeat",
}


@dataclass
class AgentMessage:
    """Envelope for everything sent to an agent"""
    id: str
    sender: str
    recipient: str
    type: str
    payload: Any
    timestamp: datetime = field(default_factory=datetime.now)


class CommunicationHub(ABC):
    """Fire-and-forget delivery of tasks and feedback to agents.

    Delivery confirmation is out of scope: send methods return once the
    message is handed to the transport.
    """

    async def start(self) -> None:
        """Open the transport. Default is a no-op."""

    async def stop(self) -> None:
        """Close the transport. Default is a no-op."""

    @abstractmethod
    async def register_agent(self, agent: Agent) -> None:
        ...

    async def unregister_agent(self, agent_id: str) -> None:
        """Forget an agent. Default is a no-op."""

    @abstractmethod
    async def send_task_to_agent(self, agent_id: str, task: Task) -> None:
        ...

    @abstractmethod
    async def send_validation_feedback(
        self, agent_id: str, result: ValidationResult
    ) -> None:
        ...
