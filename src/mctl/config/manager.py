"""Configuration manager for loading and merging configs."""

from pathlib import Path
from typing import Any

import toml

from mctl.config.schema import MissionConfig, get_config_file

PROJECT_CONFIG_NAME = ".mctl.toml"


class ConfigManager:
    """Loads, merges and caches configuration for the CLI.

    Library code never reads from here; MissionControl receives its
    config as a constructor argument.
    """

    _config: MissionConfig | None = None

    @classmethod
    def get_config(cls) -> MissionConfig:
        """Get the current configuration, loading if necessary."""
        if cls._config is None:
            cls._config = cls.load_config()
        return cls._config

    @classmethod
    def load_config(cls, start: Path | None = None) -> MissionConfig:
        """Load configuration from all sources.

        Priority (highest to lowest):
        1. Project-level config (.mctl.toml in cwd or parents)
        2. User config (~/.config/mctl/config.toml)
        3. Default config
        """
        config_dict: dict[str, Any] = {}

        user_config_file = get_config_file()
        if user_config_file.exists():
            config_dict = cls._deep_merge(config_dict, toml.load(user_config_file))

        project_config_file = cls._find_project_config(start)
        if project_config_file is not None:
            config_dict = cls._deep_merge(config_dict, toml.load(project_config_file))

        if config_dict:
            return MissionConfig.model_validate(config_dict)
        return MissionConfig.default()

    @classmethod
    def reload(cls) -> MissionConfig:
        """Force reload configuration from disk."""
        cls._config = cls.load_config()
        return cls._config

    @classmethod
    def _find_project_config(cls, start: Path | None = None) -> Path | None:
        """Find project-level config file by searching up from cwd."""
        cwd = start or Path.cwd()
        for parent in [cwd, *cwd.parents]:
            config_file = parent / PROJECT_CONFIG_NAME
            if config_file.exists():
                return config_file
            if parent == Path.home():
                break
        return None

    @classmethod
    def _deep_merge(
        cls, base: dict[str, Any], override: dict[str, Any]
    ) -> dict[str, Any]:
        """Deep merge two dictionaries, with override taking precedence."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = cls._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    @classmethod
    def save_user_config(cls, config: MissionConfig) -> Path:
        """Save configuration to user config file."""
        config_file = get_config_file()
        config_dict = config.model_dump(by_alias=True, exclude_none=True)
        with open(config_file, "w") as f:
            toml.dump(config_dict, f)
        return config_file

    @classmethod
    def set_value(cls, key_path: str, value: Any) -> None:
        """Set a value in the user config file by dot-separated path.

        Only the user file is rewritten, so project-level overrides never
        leak into it. Raises pydantic.ValidationError before writing if the
        value is invalid.

        Example: set_value("merge.type", "octopus")
        """
        config_file = get_config_file()
        user_dict: dict[str, Any] = toml.load(config_file) if config_file.exists() else {}

        keys = key_path.split(".")
        current = user_dict
        for key in keys[:-1]:
            current = current.setdefault(key, {})
        current[keys[-1]] = value

        MissionConfig.model_validate(user_dict)
        with open(config_file, "w") as f:
            toml.dump(user_dict, f)
        cls._config = None

    @classmethod
    def get_value(cls, key_path: str, default: Any = None) -> Any:
        """Get a configuration value by dot-separated path."""
        current: Any = cls.get_config().model_dump(by_alias=True)
        for key in key_path.split("."):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current
