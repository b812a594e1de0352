"""Agent records and lifecycle state transitions."""

import logging

from mctl.orchestration.exceptions import AgentNotFoundError
from mctl.orchestration.models import Agent, AgentDefinition, AgentState, Workspace

logger = logging.getLogger(__name__)

# Allowed lifecycle transitions; stopped is terminal
TRANSITIONS = {
    AgentState.STARTING: {AgentState.ACTIVE, AgentState.STOPPED},
    AgentState.ACTIVE: {AgentState.PAUSED, AgentState.STOPPED},
    AgentState.PAUSED: {AgentState.ACTIVE, AgentState.STOPPED},
    AgentState.STOPPED: set(),
}


class AgentManager:
    """Keeps agents in launch order and enforces lifecycle transitions."""

    def __init__(self) -> None:
        self._agents: dict[str, Agent] = {}

    def create_agent(
        self, definition: AgentDefinition, workspace: Workspace, pane_id: str | None = None
    ) -> Agent:
        agent = Agent(
            id=definition.id,
            definition=definition,
            workspace=workspace,
            pane_id=pane_id,
        )
        self._agents[agent.id] = agent
        return agent

    def get_agent(self, agent_id: str) -> Agent:
        agent = self._agents.get(agent_id)
        if agent is None or not agent.is_live:
            raise AgentNotFoundError(f"Agent {agent_id} not found")
        return agent

    def find(self, agent_id: str) -> Agent | None:
        """Live agent by id, or None"""
        agent = self._agents.get(agent_id)
        return agent if agent is not None and agent.is_live else None

    def get_active_agents(self) -> list[Agent]:
        """Agents eligible for new work, in launch order"""
        return [a for a in self._agents.values() if a.state is AgentState.ACTIVE]

    def get_live_agents(self) -> list[Agent]:
        """Agents that are not stopped (active, paused or starting)"""
        return [a for a in self._agents.values() if a.is_live]

    def activate(self, agent_id: str) -> Agent:
        return self._transition(agent_id, AgentState.ACTIVE)

    def pause_agent(self, agent_id: str) -> Agent:
        return self._transition(agent_id, AgentState.PAUSED)

    def stop_agent(self, agent_id: str) -> Agent:
        agent = self._transition(agent_id, AgentState.STOPPED)
        agent.current_task_id = None
        return agent

    def _transition(self, agent_id: str, target: AgentState) -> Agent:
        agent = self.get_agent(agent_id)
        if agent.state is target:
            return agent
        if target not in TRANSITIONS[agent.state]:
            raise ValueError(
                f"Agent {agent_id} cannot go from {agent.state.value} to {target.value}"
            )
        logger.info("Agent %s: %s -> %s", agent_id, agent.state.value, target.value)
        agent.state = target
        return agent

    def get_agent_statuses(self) -> list[dict]:
        return [agent.to_dict() for agent in self._agents.values()]

    def __len__(self) -> int:
        return len(self.get_live_agents())
