"""Presentation interface for agent terminal panes."""
from abc import ABC, abstractmethod


class PaneProvider(ABC):
    """Opens a visual pane per agent. Purely presentational."""

    def initialize_layout(self) -> None:
        """Prepare the mission control layout. Default is a no-op."""

    @abstractmethod
    def create_agent_pane(self, name: str, path: str) -> str:
        """Open a pane for an agent working in path and return its id."""
        ...

    def send_to_pane(self, name: str, text: str) -> None:
        """Type text into an agent's pane. Default is a no-op."""

    def close(self) -> None:
        """Tear down the layout. Default is a no-op."""
