"""Configuration schema using Pydantic."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from mctl.config import defaults
from mctl.orchestration.models import MergeStrategy


class GlobalConfig(BaseModel):
    """Global mission control configuration."""

    repository: str = "."
    worktree_base_path: str = defaults.DEFAULT_WORKTREE_BASE_PATH
    branch_prefix: str = defaults.DEFAULT_BRANCH_PREFIX
    max_agents: int = Field(default=defaults.DEFAULT_MAX_AGENTS, ge=1)
    cleanup_on_shutdown: bool = False
    sync_remote: str | None = None  # e.g. "origin"; None merges the local base branch
    color: bool = True
    verbose: bool = False

    def repository_path(self) -> Path:
        return Path(self.repository).expanduser().resolve()

    def worktree_path(self) -> Path:
        base = Path(self.worktree_base_path).expanduser()
        if not base.is_absolute():
            base = self.repository_path() / base
        return base


class MergeConfig(BaseModel):
    """Merge strategy configuration."""

    type: Literal["octopus", "sequential", "rebase"] = "sequential"
    test_before_merge: bool = True
    require_all_tests_pass: bool = True
    conflict_resolution: Literal["abort", "manual", "assisted"] = "abort"

    def to_strategy(self) -> MergeStrategy:
        """Build the immutable strategy value used by the merge coordinator."""
        return MergeStrategy(
            type=self.type,
            test_before_merge=self.test_before_merge,
            require_all_tests_pass=self.require_all_tests_pass,
            conflict_resolution=self.conflict_resolution,
        )


class ValidationConfig(BaseModel):
    """Workspace validation configuration."""

    pre_commit_checks: list[str] = Field(
        default_factory=lambda: list(defaults.DEFAULT_PRE_COMMIT_CHECKS)
    )


class SchedulingConfig(BaseModel):
    """Task scheduling configuration."""

    max_task_retries: int = Field(default=defaults.DEFAULT_MAX_TASK_RETRIES, ge=0)
    type_compatibility: dict[str, list[str]] = Field(
        default_factory=lambda: {
            k: list(v) for k, v in defaults.DEFAULT_TYPE_COMPATIBILITY.items()
        }
    )
    component_capabilities: dict[str, list[str]] = Field(
        default_factory=lambda: {
            k: list(v) for k, v in defaults.DEFAULT_COMPONENT_CAPABILITIES.items()
        }
    )
    type_capabilities: dict[str, list[str]] = Field(
        default_factory=lambda: {
            k: list(v) for k, v in defaults.DEFAULT_TYPE_CAPABILITIES.items()
        }
    )


class EventsConfig(BaseModel):
    """Event channel configuration."""

    queue_size: int = Field(default=defaults.DEFAULT_EVENT_QUEUE_SIZE, ge=1)
    log_file: str | None = None  # JSONL sink, appended to


class CommsConfig(BaseModel):
    """Agent communication configuration."""

    queue_size: int = Field(default=defaults.DEFAULT_MESSAGE_QUEUE_SIZE, ge=1)


class TmuxConfig(BaseModel):
    """tmux integration configuration."""

    enabled: bool = True
    session_name: str = defaults.DEFAULT_TMUX_SESSION_NAME
    layout: str = defaults.DEFAULT_TMUX_LAYOUT  # tiled, even-horizontal, even-vertical
    agent_command: str | None = None  # started in each agent pane


class MissionConfig(BaseModel):
    """Root configuration model for mctl."""

    model_config = ConfigDict(populate_by_name=True)

    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    merge: MergeConfig = Field(default_factory=MergeConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    scheduling: SchedulingConfig = Field(default_factory=SchedulingConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)
    comms: CommsConfig = Field(default_factory=CommsConfig)
    tmux: TmuxConfig = Field(default_factory=TmuxConfig)

    @classmethod
    def default(cls) -> "MissionConfig":
        """Create default configuration."""
        return cls()


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_dir = Path.home() / ".config" / "mctl"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_file() -> Path:
    """Get the main configuration file path."""
    return get_config_dir() / "config.toml"
