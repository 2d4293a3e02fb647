"""Configuration management for note search."""

import copy
import os
from dataclasses import fields
from pathlib import Path
from typing import Any, TypeVar

import yaml

T = TypeVar("T")

DEFAULT_CONFIG: dict[str, Any] = {
    "root": None,
    "search": {
        "limit": 20,
        "snippet_length": 200,
        "snippet_context": 10,
    },
    "weights": {},
    "fuzzy": {},
    "advanced": {},
}


class Config:
    """Configuration loading from YAML files."""

    @staticmethod
    def from_file(path: Path) -> dict[str, Any]:
        """Load configuration from a YAML file."""
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file: {e}") from e
        except OSError as e:
            raise ValueError(f"Error reading config file: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        return data

    @staticmethod
    def get_config_paths() -> list[Path]:
        """Get the default configuration file paths to check."""
        paths = []

        # User config
        xdg_config_home = Path(
            os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
        )
        paths.append(xdg_config_home / "notesearch" / "config.yaml")

        # Project config
        paths.append(Path(".notesearch.yaml"))
        paths.append(Path("notesearch.yaml"))

        return paths

    @staticmethod
    def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
        """Merge multiple configuration dictionaries."""
        result: dict[str, Any] = {}
        for config in configs:
            result = _deep_merge(result, config)
        return result


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration from defaults, files and environment variables.

    Later sources win: built-in defaults, then the default config paths
    in order, then ``path`` if given, then environment variables.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    for config_path in Config.get_config_paths():
        if config_path.exists():
            config = Config.merge_configs(config, Config.from_file(config_path))

    if path is not None:
        config = Config.merge_configs(config, Config.from_file(path))

    env_overrides: dict[str, Any] = {}
    if root := os.environ.get("NOTESEARCH_ROOT"):
        env_overrides["root"] = root

    return Config.merge_configs(config, env_overrides)


def section_to_dataclass(cls: type[T], values: dict[str, Any] | None, section: str) -> T:
    """Build a settings dataclass from a config section.

    Raises:
        ValueError: If the section names a setting ``cls`` does not have
    """
    values = values or {}
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown {section} setting(s): {', '.join(unknown)}")
    return cls(**values)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result
