"""Output formatting using Rich for terminal output."""

from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

from mctl.orchestration.models import AgentDefinition, MergeResult, ValidationResult

MCTL_THEME = Theme(
    {
        "state.active": "green",
        "state.paused": "yellow",
        "state.starting": "blue",
        "state.stopped": "dim",
        "success": "green",
        "error": "red bold",
        "warning": "yellow",
        "info": "blue",
        "metadata": "dim",
    }
)


class OutputFormatter:
    """Handles all output formatting for mctl."""

    def __init__(self, color: bool = True, verbose: bool = False) -> None:
        self.console = Console(theme=MCTL_THEME, no_color=not color)
        self.verbose = verbose

    def print_error(self, message: str, agent_id: str | None = None) -> None:
        """Print an error message."""
        prefix = f"[{agent_id}] " if agent_id else ""
        self.console.print(f"[error]{prefix}Error: {message}[/error]")

    def print_success(self, message: str) -> None:
        self.console.print(f"[success]{message}[/success]")

    def print_info(self, message: str) -> None:
        self.console.print(f"[info]{message}[/info]")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[warning]{message}[/warning]")

    def print_agent_table(self, agents: list[dict[str, Any]]) -> None:
        """Print agents as returned by AgentManager.get_agent_statuses()."""
        table = Table(title="Agents")
        table.add_column("ID", style="cyan")
        table.add_column("Type")
        table.add_column("State", justify="center")
        table.add_column("Branch")
        table.add_column("Task")

        for agent in agents:
            state = agent["state"]
            table.add_row(
                agent["id"],
                agent["type"],
                f"[state.{state}]{state}[/state.{state}]",
                agent["branch"],
                agent["task"] or "-",
            )

        self.console.print(table)

    def print_status(self, status: dict[str, Any]) -> None:
        """Print a MissionControl.get_status() snapshot."""
        running = "[success]running[/success]" if status["running"] else "[warning]stopped[/warning]"
        metrics = status["metrics"]
        self.console.print(Panel(
            f"Mission control: {running}\n"
            f"Uptime: {status['uptime']:.1f}s\n"
            f"Tasks completed: {metrics['tasks_completed']}  "
            f"failed: {metrics['tasks_failed']}",
            title="Status",
            border_style="info",
        ))

        if status["agents"]:
            self.print_agent_table(status["agents"])
        else:
            self.print_info("No agents running")

        if self.verbose and status["active_tasks"]:
            self._print_metadata(status["active_tasks"])

    def print_validation_result(self, result: ValidationResult) -> None:
        """Print one workspace's validation outcome and its violations."""
        name = result.workspace_id or "workspace"
        if result.passed:
            self.print_success(f"{name}: passed ({result.duration:.1f}s)")
        else:
            self.print_error(f"{name}: failed ({result.duration:.1f}s)")

        if not result.violations:
            return

        table = Table(show_header=True, box=None, padding=(0, 1))
        table.add_column("Severity")
        table.add_column("Location", style="cyan")
        table.add_column("Rule", style="metadata")
        table.add_column("Message")
        for v in result.violations:
            style = "error" if v.severity == "error" else "warning"
            location = f"{v.file}:{v.line}" if v.line is not None else v.file
            table.add_row(f"[{style}]{v.severity}[/{style}]", location, v.rule or "", v.message)
        self.console.print(table)

    def print_merge_result(self, result: MergeResult) -> None:
        if result.success:
            target = result.merged_branch or "target"
            self.print_success(f"Merged into {target}")
            return

        if result.validation_results is not None:
            self.print_error("Merge blocked by failing validation")
            self.print_validation_result(result.validation_results)
        for test_result in result.test_results or []:
            self.print_error("Pre-merge validation failed")
            self.print_validation_result(test_result)

        if result.conflicts:
            table = Table(title="Merge Conflicts")
            table.add_column("File", style="cyan")
            table.add_column("Branches")
            table.add_column("Detail", style="metadata")
            for conflict in result.conflicts:
                table.add_row(conflict.file, ", ".join(conflict.branches), conflict.resolution or "")
            self.console.print(table)

    def print_profiles(self, profiles: dict[str, AgentDefinition]) -> None:
        """Print built-in agent profiles and their capabilities."""
        table = Table(title="Agent Profiles")
        table.add_column("Type", style="cyan")
        table.add_column("Name")
        table.add_column("Capabilities")

        for agent_type, definition in profiles.items():
            caps = ", ".join(f"{c.name} ({c.proficiency})" for c in definition.capabilities)
            table.add_row(agent_type, definition.name, caps)

        self.console.print(table)

    def _print_metadata(self, metadata: dict[str, Any]) -> None:
        parts = [f"{k}={v}" for k, v in metadata.items()]
        self.console.print(f"[metadata]({', '.join(parts)})[/metadata]")


# Global formatter instance
_formatter: OutputFormatter | None = None


def get_formatter(color: bool = True, verbose: bool = False) -> OutputFormatter:
    """Get or create the global formatter instance."""
    global _formatter
    if _formatter is None:
        _formatter = OutputFormatter(color=color, verbose=verbose)
    return _formatter
