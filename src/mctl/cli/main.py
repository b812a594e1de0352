"""Main CLI entry point for mctl.

Every command runs in its own process: it builds a MissionControl from the
loaded config, picks up agent worktrees left by earlier commands and acts
on them.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any, TypeVar

import click
import toml
from pydantic import ValidationError
from rich.logging import RichHandler

from mctl.agents.profiles import AGENT_PROFILES, get_profile
from mctl.config.manager import ConfigManager
from mctl.config.schema import MissionConfig
from mctl.orchestration.exceptions import MissionControlError
from mctl.orchestration.mission import MissionControl
from mctl.orchestration.models import TASK_TYPES, Agent, Task
from mctl.output.formatter import get_formatter

T = TypeVar("T")


def build_mission_control(config: MissionConfig, with_panes: bool = False) -> MissionControl:
    """Wire a MissionControl for one CLI command.

    Panes are only attached for commands that start agents, and only when
    tmux is enabled and installed.
    """
    panes = None
    if with_panes and config.tmux.enabled:
        from mctl.tmux.manager import TmuxManager

        if TmuxManager.is_available():
            panes = TmuxManager(config.tmux)
        else:
            get_formatter().print_warning("tmux is not installed; agents run without panes")
    return MissionControl(config, panes=panes)


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine, turning mission control errors into exit code 1."""
    try:
        return asyncio.run(coro)
    except (MissionControlError, NotImplementedError) as e:
        get_formatter().print_error(str(e))
        raise SystemExit(1)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=verbose, show_path=False)],
        force=True,
    )


async def _reattach_all(mission: MissionControl) -> list[Agent]:
    agents = []
    for agent_type in AGENT_PROFILES:
        agent = await mission.reattach_agent(get_profile(agent_type))
        if agent is not None:
            agents.append(agent)
    return agents


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
@click.option("--no-color", is_flag=True, help="Disable colors")
@click.version_option(package_name="mctl")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, no_color: bool) -> None:
    """mctl - run parallel coding agents in isolated git worktrees.

    \b
    Examples:
        mctl start -a ui-specialist -a test-specialist
        mctl launch-agent validator --task "Audit the plugin loader"
        mctl validate
        mctl merge main
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["no_color"] = no_color

    _setup_logging(verbose)
    get_formatter(color=not no_color, verbose=verbose)


@cli.command()
@click.option(
    "-a", "--agent", "agent_types", multiple=True,
    type=click.Choice(sorted(AGENT_PROFILES)), help="Agent profile to launch",
)
@click.option("--attach", is_flag=True, help="Attach to the tmux session afterwards")
def start(agent_types: tuple[str, ...], attach: bool) -> None:
    """Start a fresh mission control session and launch agents."""
    config = ConfigManager.get_config()
    formatter = get_formatter()
    mission = build_mission_control(config, with_panes=True)

    async def run() -> list[Agent]:
        if mission.panes is not None:
            mission.panes.kill_session()
        await mission.start()
        return [await mission.launch_agent(get_profile(t)) for t in agent_types]

    agents = _run(run())
    formatter.print_success("Mission control started")
    if agents:
        formatter.print_agent_table([a.to_dict() for a in agents])

    if attach and mission.panes is not None:
        mission.panes.attach()


@cli.command("launch-agent")
@click.argument("agent_type", type=click.Choice(sorted(AGENT_PROFILES)))
@click.option("-n", "--name", help="Agent name (used for the branch)")
@click.option("-t", "--task", "task_text", help="Task to assign right away")
@click.option("-c", "--component", default="", help="Component the task touches")
@click.option(
    "--task-type", default="feature", type=click.Choice(sorted(TASK_TYPES)),
    help="Type of the assigned task",
)
def launch_agent(
    agent_type: str,
    name: str | None,
    task_text: str | None,
    component: str,
    task_type: str,
) -> None:
    """Launch one agent in its own worktree."""
    config = ConfigManager.get_config()
    formatter = get_formatter()
    mission = build_mission_control(config, with_panes=True)

    async def run() -> tuple[Agent, Agent | None]:
        await mission.start()
        agent = await mission.launch_agent(get_profile(agent_type, name=name))
        assigned = None
        if task_text:
            task = Task(
                id=f"task-{agent.id}",
                type=task_type,
                component=component,
                requirements=[task_text],
            )
            assigned = await mission.assign_task(task)
        return agent, assigned

    agent, assigned = _run(run())
    formatter.print_success(f"Agent launched: {agent.id}")
    formatter.print_info(f"Worktree: {agent.workspace.path}")
    formatter.print_info(f"Branch: {agent.workspace.branch_name}")
    if agent.pane_id:
        formatter.print_info(f"Pane: {agent.pane_id}")
    if assigned is not None:
        if assigned.pane_id:
            formatter.print_info(f"Task sent to {assigned.id} in pane {assigned.pane_id}")
        else:
            formatter.print_warning(
                f"Task matched {assigned.id}, but the agent has no pane to receive it"
            )


@cli.command()
def status() -> None:
    """Show agents with worktrees and their state."""
    config = ConfigManager.get_config()
    mission = build_mission_control(config)

    async def run() -> dict[str, Any]:
        await mission.start()
        for agent in await _reattach_all(mission):
            await mission.registry.get_status(agent.workspace.id)
        return mission.get_status()

    get_formatter().print_status(_run(run()))


@cli.command()
def validate() -> None:
    """Validate every agent worktree with changes."""
    config = ConfigManager.get_config()
    formatter = get_formatter()
    mission = build_mission_control(config)

    async def run():
        await mission.start()
        await _reattach_all(mission)
        return await mission.validate_all_changes()

    results = _run(run())
    if not results:
        formatter.print_info("No worktrees with changes to validate")
        return

    for result in results:
        formatter.print_validation_result(result)

    if not all(r.passed for r in results):
        raise SystemExit(1)


@cli.command()
@click.argument("target")
def merge(target: str) -> None:
    """Validate all agent worktrees and merge them into TARGET."""
    config = ConfigManager.get_config()
    formatter = get_formatter()
    mission = build_mission_control(config)

    async def run():
        await mission.start()
        await _reattach_all(mission)
        formatter.print_info(f"Merging to {target} ({config.merge.type})")
        return await mission.merge_all_worktrees(target)

    result = _run(run())
    formatter.print_merge_result(result)
    if not result.success:
        raise SystemExit(1)


@cli.command()
@click.option("--keep-worktrees", is_flag=True, help="Leave agent worktrees on disk")
def stop(keep_worktrees: bool) -> None:
    """Stop all agents, remove their worktrees and close the tmux session."""
    config = ConfigManager.get_config()
    formatter = get_formatter()
    mission = build_mission_control(config, with_panes=True)

    async def run() -> list[str]:
        await mission.start()
        stopped = []
        for agent in await _reattach_all(mission):
            await mission.stop_agent(agent.id, remove_workspace=not keep_worktrees)
            stopped.append(agent.id)
        await mission.shutdown()
        return stopped

    stopped = _run(run())
    if stopped:
        formatter.print_success(f"Stopped {', '.join(stopped)}")
    else:
        formatter.print_info("No agents running")


@cli.command()
def profiles() -> None:
    """List built-in agent profiles."""
    get_formatter().print_profiles(AGENT_PROFILES)


# --- Config ---


@cli.group()
def config() -> None:
    """Manage configuration."""
    pass


@config.command("show")
def config_show() -> None:
    """Show current configuration."""
    import json

    config = ConfigManager.get_config()
    config_dict = config.model_dump(by_alias=True)
    get_formatter().console.print_json(json.dumps(config_dict, indent=2))


@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Set a value by dotted KEY, e.g. `mctl config set merge.type octopus`."""
    try:
        parsed = toml.loads(f"value = {value}")["value"]
    except toml.TomlDecodeError:
        parsed = value

    try:
        ConfigManager.set_value(key, parsed)
    except ValidationError as e:
        get_formatter().print_error(f"Invalid value for {key}: {e}")
        raise SystemExit(1)
    get_formatter().print_success(f"{key} = {parsed!r}")


@config.command("edit")
def config_edit() -> None:
    """Open config file in editor."""
    import os
    import subprocess

    from mctl.config.schema import get_config_file

    config_file = get_config_file()

    # Create default config if it doesn't exist
    if not config_file.exists():
        ConfigManager.save_user_config(ConfigManager.get_config())

    editor = os.environ.get("EDITOR", "vim")
    subprocess.run([editor, str(config_file)])


# Register tmux commands
from mctl.cli.commands.tmux_cmd import tmux

cli.add_command(tmux)


if __name__ == "__main__":
    cli()
