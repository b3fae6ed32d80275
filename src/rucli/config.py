# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Configuration and filesystem locations for rucli.

Handles:
- Packaged YAML defaults loading (rucli.defaults/system.yaml)
- Dotted-path config access (YAMLConfig)
- Data root resolution (RUCLI_DATA_HOME, ~/.local/share)
- History file resolution (RUCLI_HISTFILE, history.file)
- ANSI coloring constants for the interactive prompt and banner
"""

from __future__ import annotations

import os
from importlib import resources as importlib_resources
from pathlib import Path
from typing import Any

import yaml

# -----------------------
# UI constants
# -----------------------

ANSI_COLORS: dict[str, str] = {
    "cyan": "\033[38;5;69;1m",
    "pink": "\033[38;5;169;1m",
    "magenta": "\033[38;5;126;1m",
    "yellow": "\033[38;5;226;1m",
    "green": "\033[32m",
    "red": "\033[31m",
    "dim": "\033[2m",
    "reset": "\033[0m",
}

DEFAULT_HISTFILE = ".rucli_history"
HISTFILE_ENV = "RUCLI_HISTFILE"


def colorize(text: str, color: str) -> str:
    """Wrap text in an ANSI color; unknown colors leave text unchanged."""
    code = ANSI_COLORS.get(color)
    if not code:
        return text
    return f"{code}{text}{ANSI_COLORS['reset']}"


# -----------------------
# Config model wrapper
# -----------------------


class YAMLConfig:
    """Simple config wrapper that implements the ConfigModel protocol."""

    def __init__(self, config_dict: dict[str, Any] | None = None):
        self._config = config_dict or {}

    @property
    def system(self) -> dict[str, Any]:
        return self._section("system")

    @property
    def prompt(self) -> dict[str, Any]:
        return self._section("prompt")

    @property
    def history(self) -> dict[str, Any]:
        return self._section("history")

    @property
    def limits(self) -> dict[str, Any]:
        return self._section("limits")

    @property
    def ui(self) -> dict[str, Any]:
        return self._section("ui")

    def _section(self, key: str) -> dict[str, Any]:
        value = self._config.get(key, {})
        return value if isinstance(value, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def get_path(self, path: str, default: Any = None) -> Any:
        """
        Nested lookup using dot-separated path.
        Example: get_path("prompt.primary", "> ") -> primary prompt text
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
# Data root + history file
# -----------------------


def get_data_root() -> Path:
    """Get the data root directory for rucli.

    Resolution order:
    1. RUCLI_DATA_HOME environment variable (if set)
    2. ~/.local/share (default)
    """
    data_home = os.getenv("RUCLI_DATA_HOME")
    if data_home:
        root = Path(data_home)
    else:
        root = Path.home() / ".local" / "share"

    root.mkdir(parents=True, exist_ok=True)
    return root


def history_file_path(cfg: Any = None, cwd: Path | None = None) -> Path:
    """Resolve the history file location.

    Resolution order:
    1. The environment variable named by history.env_override
       (RUCLI_HISTFILE by default)
    2. history.file from config (default .rucli_history)

    Relative paths are taken from cwd (the working directory by default).
    """
    env_name = HISTFILE_ENV
    filename = DEFAULT_HISTFILE
    if cfg is not None and hasattr(cfg, "get_path"):
        env_name = cfg.get_path("history.env_override", HISTFILE_ENV)
        filename = cfg.get_path("history.file", DEFAULT_HISTFILE)

    override = os.getenv(str(env_name))
    path = Path(os.path.expanduser(override or str(filename)))
    if not path.is_absolute():
        path = (cwd or Path.cwd()) / path
    return path


# -----------------------
# Packaged defaults loading
# -----------------------


def _defaults_dir() -> Path:
    """Return the installed path to the packaged defaults directory."""
    return Path(
        importlib_resources.files("rucli.defaults")
    )  # type: ignore[arg-type]


def load_defaults_yaml(filename: str) -> dict[str, Any]:
    """
    Load a YAML file from rucli/defaults/.
    """
    defaults_dir = _defaults_dir()
    path = defaults_dir / filename
    if not path.exists():
        raise FileNotFoundError(
            f"Missing defaults YAML: {filename} "
            f"(looked in {defaults_dir})"
        )

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(
            f"Defaults YAML {filename} must load to a mapping/dict."
        )
    return data


def load_system_config() -> YAMLConfig:
    """
    Load system.yaml from packaged defaults and return a YAMLConfig wrapper.
    """
    return YAMLConfig(load_defaults_yaml("system.yaml"))
