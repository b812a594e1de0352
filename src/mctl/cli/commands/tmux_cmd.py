"""tmux-related CLI commands."""

import click

from mctl.config.manager import ConfigManager
from mctl.output.formatter import get_formatter


@click.group()
def tmux() -> None:
    """tmux session holding the agent panes."""
    pass


def _manager():
    from mctl.tmux.manager import TmuxManager

    if not TmuxManager.is_available():
        get_formatter().print_error("tmux is not installed")
        raise SystemExit(1)
    return TmuxManager(ConfigManager.get_config().tmux)


@tmux.command("attach")
def tmux_attach() -> None:
    """Attach to the mission control tmux session."""
    manager = _manager()

    if manager.get_session(create=False) is None:
        get_formatter().print_error("No mctl tmux session running")
        raise SystemExit(1)

    manager.attach()


@tmux.command("kill")
def tmux_kill() -> None:
    """Kill the mission control tmux session (worktrees are kept)."""
    formatter = get_formatter()
    manager = _manager()

    if manager.get_session(create=False) is None:
        formatter.print_info("No mctl tmux session running")
        return

    manager.kill_session()
    formatter.print_success("tmux session killed")


@tmux.command("list")
def tmux_list() -> None:
    """List all tmux sessions."""
    from rich.table import Table

    formatter = get_formatter()
    sessions = _manager().list_sessions()

    if not sessions:
        formatter.print_info("No tmux sessions running")
        return

    table = Table(title="tmux Sessions")
    table.add_column("Name", style="cyan")
    table.add_column("Windows", justify="right")
    table.add_column("Attached")

    for session in sessions:
        attached = "[green]Yes[/green]" if session["attached"] else "No"
        table.add_row(session["name"], str(session["windows"]), attached)

    formatter.console.print(table)
