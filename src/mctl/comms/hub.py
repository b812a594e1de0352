"""In-process communication hub backed by bounded asyncio queues."""

import asyncio
import itertools
import logging

from mctl.comms.protocol import AgentMessage, CommunicationHub
from mctl.orchestration.models import Agent, Task, ValidationResult

logger = logging.getLogger(__name__)

SENDER = "mission-control"


class QueueCommunicationHub(CommunicationHub):
    """Delivers messages into one bounded queue per registered agent.

    Agent-side adapters consume with `receive()` (blocking) or `poll()`.
    When a queue is full the oldest message is dropped so that a stalled
    agent never blocks mission control.
    """

    def __init__(self, queue_size: int = 100) -> None:
        self.queue_size = queue_size
        self._queues: dict[str, asyncio.Queue[AgentMessage]] = {}
        self._ids = itertools.count(1)
        self.running = False

    async def start(self) -> None:
        self.running = True

    async def stop(self) -> None:
        self.running = False
        self._queues.clear()

    async def register_agent(self, agent: Agent) -> None:
        self._queues.setdefault(agent.id, asyncio.Queue(maxsize=self.queue_size))
        logger.debug("Agent %s registered with communication hub", agent.id)

    async def unregister_agent(self, agent_id: str) -> None:
        self._queues.pop(agent_id, None)

    async def send_task_to_agent(self, agent_id: str, task: Task) -> None:
        self._deliver(self._message(agent_id, "task-assignment", task))

    async def send_validation_feedback(
        self, agent_id: str, result: ValidationResult
    ) -> None:
        self._deliver(self._message(agent_id, "validation-result", result, sender="validator"))

    async def broadcast(self, type: str, payload, exclude: str | None = None) -> None:
        """Send the same message to every registered agent."""
        for agent_id in list(self._queues):
            if agent_id != exclude:
                self._deliver(self._message(agent_id, type, payload))

    async def receive(self, agent_id: str) -> AgentMessage:
        """Block until a message for the agent arrives."""
        return await self._queue(agent_id).get()

    def poll(self, agent_id: str) -> AgentMessage | None:
        """Return the next message for the agent, or None if there is none."""
        try:
            return self._queue(agent_id).get_nowait()
        except asyncio.QueueEmpty:
            return None

    def pending(self, agent_id: str) -> int:
        queue = self._queues.get(agent_id)
        return queue.qsize() if queue else 0

    def _queue(self, agent_id: str) -> asyncio.Queue[AgentMessage]:
        queue = self._queues.get(agent_id)
        if queue is None:
            raise KeyError(f"Agent {agent_id} is not registered")
        return queue

    def _message(self, recipient: str, type: str, payload, sender: str = SENDER) -> AgentMessage:
        return AgentMessage(
            id=f"msg-{next(self._ids)}",
            sender=sender,
            recipient=recipient,
            type=type,
            payload=payload,
        )

    def _deliver(self, message: AgentMessage) -> None:
        queue = self._queues.get(message.recipient)
        if queue is None:
            logger.warning(
                "Dropping %s for unregistered agent %s", message.type, message.recipient
            )
            return
        if queue.full():
            dropped = queue.get_nowait()
            logger.warning(
                "Message queue for %s full; dropped %s %s",
                message.recipient, dropped.type, dropped.id,
            )
        queue.put_nowait(message)
