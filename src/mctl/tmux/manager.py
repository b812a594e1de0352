"""tmux session management for agent panes."""

import shutil
import subprocess
from typing import Any

import libtmux

from mctl.config.schema import TmuxConfig
from mctl.tmux.protocol import PaneProvider


class TmuxManager(PaneProvider):
    """Gives every agent its own pane in one mission control tmux session."""

    def __init__(self, config: TmuxConfig | None = None) -> None:
        self.config = config or TmuxConfig()
        self._server: libtmux.Server | None = None
        self._session: libtmux.Session | None = None
        self._agent_panes: dict[str, libtmux.Pane] = {}

    @staticmethod
    def is_available() -> bool:
        """True when a tmux binary is on PATH."""
        return shutil.which("tmux") is not None

    @property
    def server(self) -> libtmux.Server:
        """Lazily connected libtmux server."""
        if self._server is None:
            self._server = libtmux.Server()
        return self._server

    def get_session(self, create: bool = True) -> libtmux.Session | None:
        """Return the cached or running mission control session.

        With create=True a missing session is started; otherwise None.
        """
        if self._session is not None:
            return self._session

        session = self.server.sessions.get(
            session_name=self.config.session_name, default=None
        )
        if session is not None:
            self._session = session
            return session

        if create:
            return self.create_session()
        return None

    def create_session(self) -> libtmux.Session:
        """Create a fresh mission control tmux session."""
        existing = self.server.sessions.get(
            session_name=self.config.session_name, default=None
        )
        if existing is not None:
            existing.kill()

        self._session = self.server.new_session(
            session_name=self.config.session_name,
            attach=False,
        )
        self._agent_panes.clear()
        return self._session

    def initialize_layout(self) -> None:
        """Reuse the running session, or start one whose first pane is mission control."""
        if self.get_session(create=False) is not None:
            return
        session = self.create_session()
        session.active_window.rename_window("mission-control")

    def create_agent_pane(self, name: str, path: str) -> str:
        """Split a pane for an agent, cd into its workspace and start it.

        Returns:
            The tmux pane id (e.g. "%3").
        """
        session = self.get_session(create=True)
        if session is None:
            raise RuntimeError("Failed to create tmux session")

        window = session.active_window
        pane = window.split(start_directory=path)
        window.select_layout(self.config.layout)

        pane.cmd("select-pane", "-T", f"Agent: {name}")
        if self.config.agent_command:
            pane.send_keys(self.config.agent_command, enter=True)

        self._agent_panes[name] = pane
        return pane.pane_id

    def send_to_pane(self, name: str, command: str) -> None:
        """Type a command into an agent's pane."""
        pane = self._agent_panes.get(name)
        if pane is None:
            raise KeyError(f"No pane for agent {name}")
        pane.send_keys(command, enter=True)

    def close(self) -> None:
        self.kill_session()

    def attach(self) -> None:
        """Hand the terminal over to the mission control session."""
        session = self.get_session(create=False)
        if session is None:
            raise RuntimeError("No mctl session to attach to")

        subprocess.run(["tmux", "attach-session", "-t", self.config.session_name])

    def kill_session(self) -> None:
        """Kill the mission control tmux session."""
        session = self.get_session(create=False)
        if session is not None:
            session.kill()
        self._session = None
        self._agent_panes.clear()

    def list_sessions(self) -> list[dict[str, Any]]:
        """Summaries of every session on the tmux server, not just ours."""
        sessions = []
        for session in self.server.sessions:
            sessions.append({
                "name": session.name,
                "windows": len(session.windows),
                "attached": session.session_attached not in (None, "0"),
            })
        return sessions
