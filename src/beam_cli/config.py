# Beam - Terminal Command Launcher
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Filesystem layout and configuration loading for Beam.

Handles:
- Data/state/config root resolution (BEAM_*_HOME, XDG-style defaults)
- Packaged YAML defaults loading (beam_cli/defaults/config.yaml)
- User config.yaml merged over the defaults
- ANSI coloring constants used by page rendering
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from importlib import resources as importlib_resources
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError, ManifestError
from .manifest import RootItem

# -----------------------
# UI constants
# -----------------------

ANSI_COLORS: dict[str, str] = {
    "cyan": "\033[38;5;69;1m",
    "pink": "\033[38;5;169;1m",
    "magenta": "\033[38;5;126;1m",
    "yellow": "\033[38;5;226;1m",
    "reset": "\033[0m",
    "dim": "\033[2m",
    "bold": "\033[1m",
    "reverse": "\033[7m",
    "green": "\033[32m",
    "red": "\033[31m",
}

APP_NAME = "beam"


# -----------------------
# Paths
# -----------------------


@dataclass(frozen=True)
class AppPaths:
    """Per-user directories Beam reads from and writes to."""

    data_dir: Path
    state_dir: Path
    config_dir: Path
    log_file: Path | None = None

    @property
    def history_path(self) -> Path:
        return self.state_dir / "history.json"

    @property
    def log_path(self) -> Path:
        return self.log_file or self.state_dir / "beam.log"

    @property
    def extensions_dir(self) -> Path:
        return self.data_dir / "extensions"

    @property
    def config_path(self) -> Path:
        return self.config_dir / "config.yaml"


def _root_from_env(
    env: Mapping[str, str], var: str, *fallback: str
) -> Path:
    value = env.get(var)
    if value:
        return Path(value).expanduser()
    home = Path(env.get("HOME") or Path.home())
    return home.joinpath(*fallback, APP_NAME)


def resolve_paths(env: Mapping[str, str] | None = None) -> AppPaths:
    """Resolve Beam's directories.

    Resolution order for each root:
    1. BEAM_DATA_HOME / BEAM_STATE_HOME / BEAM_CONFIG_HOME (if set)
    2. ~/.local/share/beam, ~/.local/state/beam, ~/.config/beam

    Directories are not created here; writers create what they need.
    """
    env = os.environ if env is None else env
    log_file = env.get("BEAM_LOG_FILE")
    return AppPaths(
        data_dir=_root_from_env(env, "BEAM_DATA_HOME", ".local", "share"),
        state_dir=_root_from_env(env, "BEAM_STATE_HOME", ".local", "state"),
        config_dir=_root_from_env(env, "BEAM_CONFIG_HOME", ".config"),
        log_file=Path(log_file).expanduser() if log_file else None,
    )


# -----------------------
# Config model wrapper
# -----------------------


class YAMLConfig:
    """Merged configuration plus the paths it was resolved against."""

    def __init__(self, config_dict: dict[str, Any], paths: AppPaths):
        self._config = config_dict
        self.paths = paths

    @property
    def extensions(self) -> dict[str, str]:
        """Extension name -> origin path declared in config.yaml."""
        raw = self._config.get("extensions") or {}
        if not isinstance(raw, dict):
            raise ConfigError("'extensions' must be a mapping of name to path")
        return {str(name): str(origin) for name, origin in raw.items()}

    @property
    def root_items(self) -> list[RootItem]:
        raw = self._config.get("root_items") or []
        if not isinstance(raw, list):
            raise ConfigError("'root_items' must be a list")
        try:
            return [RootItem.from_dict(item) for item in raw]
        except ManifestError as e:
            raise ConfigError(f"invalid root item: {e}") from e

    @property
    def ui(self) -> dict[str, Any]:
        ui_cfg = self._config.get("ui", {})
        return ui_cfg if isinstance(ui_cfg, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def get_path(self, path: str, default: Any = None) -> Any:
        """
        Nested lookup using dot-separated path.
        Example: get_path("ui.height", 0)
        """
        if not path:
            return default

        cur: Any = self._config
        for part in path.split("."):
            if not isinstance(cur, dict):
                return default
            if part not in cur:
                return default
            cur = cur[part]
        return cur


# -----------------------
# YAML loading
# -----------------------


def _defaults_dir() -> Path:
    """Return the installed path to the packaged defaults directory."""
    return Path(
        importlib_resources.files("beam_cli.defaults")
    )  # type: ignore[arg-type]


def _read_yaml_mapping(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"could not parse {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must load to a mapping/dict.")
    return data


def load_defaults_yaml(filename: str = "config.yaml") -> dict[str, Any]:
    """Load a YAML file from beam_cli/defaults/."""
    defaults_dir = _defaults_dir()
    path = defaults_dir / filename
    if not path.exists():
        raise FileNotFoundError(
            f"Missing defaults YAML: {filename} "
            f"(looked in {defaults_dir})"
        )
    return _read_yaml_mapping(path)


def merge_config(
    base: dict[str, Any], override: dict[str, Any]
) -> dict[str, Any]:
    """Merge override into base; nested mappings merge key by key."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = value
    return merged


def load_config(paths: AppPaths | None = None) -> YAMLConfig:
    """
    Load packaged defaults, overlay the user's config.yaml if present and
    return a YAMLConfig wrapper.
    """
    paths = paths or resolve_paths()
    data = load_defaults_yaml()
    if paths.config_path.exists():
        data = merge_config(data, _read_yaml_mapping(paths.config_path))
    return YAMLConfig(data, paths)
