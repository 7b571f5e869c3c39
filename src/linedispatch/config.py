# LineDispatch — Command Dispatch and Line-Interpreter Core
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Configuration and data root resolution for LineDispatch.

Handles:
- Data root resolution (LINEDISPATCH_DATA_HOME, ~/.local/share)
- History file / history DB path helpers
- Packaged YAML defaults loading (linedispatch/defaults/*.yaml)
- ANSI coloring constants + UI_CLEAR semantic sentinel
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
    "reset": "\033[0m",
    "dim": "\033[2m",
    "green": "\033[32m",
    "red": "\033[31m",
}

TAG_COLORS: dict[str, str] = {
    "ERR": "red",
    "HIST": "cyan",
    "WORKING": "yellow",
}

# Semantic UI intent for clear screen operations
UI_CLEAR = "__UI_CLEAR__"

DATA_HOME_ENV = "LINEDISPATCH_DATA_HOME"


# -----------------------
# Config model wrapper
# -----------------------


class YAMLConfig:
    """Config wrapper that implements the ConfigModel protocol."""

    def __init__(self, config_dict: dict[str, Any]):
        self._config = config_dict

    def _section(self, key: str) -> dict[str, Any]:
        value = self._config.get(key, {})
        return value if isinstance(value, dict) else {}

    @property
    def system(self) -> dict[str, Any]:
        return self._section("system")

    @property
    def history(self) -> dict[str, Any]:
        return self._section("history")

    @property
    def completion(self) -> dict[str, Any]:
        return self._section("completion")

    @property
    def ui(self) -> dict[str, Any]:
        return self._section("ui")

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def get_path(self, path: str, default: Any = None) -> Any:
        """
        Nested lookup using dot-separated path.
        Example: get_path("history.max_entries", 50)
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


def cfg_get_path(config: Any, path: str, default: Any) -> Any:
    """get_path() that tolerates a missing or partial config object."""
    if config is None or not hasattr(config, "get_path"):
        return default
    try:
        value = config.get_path(path, default)
    except Exception:
        return default
    return default if value is None else value


# -----------------------
# Data root + file helpers
# -----------------------


def get_data_root() -> Path:
    """Get the data root directory for LineDispatch.

    Resolution order:
    1. LINEDISPATCH_DATA_HOME environment variable (if set)
    2. ~/.local/share (default, XDG_DATA_HOME is ignored)
    """
    data_home = os.getenv(DATA_HOME_ENV)
    if data_home:
        root = Path(data_home)
    else:
        root = Path.home() / ".local" / "share"

    root.mkdir(parents=True, exist_ok=True)
    return root


def history_file_path(
    data_root: Path, filename: str = "command.history"
) -> Path:
    """<data_root>/linedispatch/<filename>"""
    return data_root / "linedispatch" / filename


def history_db_path(data_root: Path) -> Path:
    """<data_root>/linedispatch/history.db"""
    return data_root / "linedispatch" / "history.db"


def crash_log_path(data_root: Path) -> Path:
    """<data_root>/linedispatch/logs/crash.log"""
    return data_root / "linedispatch" / "logs" / "crash.log"


# -----------------------
# Packaged defaults loading
# -----------------------


def _defaults_dir() -> Path:
    """Return the installed path to the packaged defaults directory."""
    return Path(
        importlib_resources.files("linedispatch.defaults")
    )  # type: ignore[arg-type]


def load_defaults_yaml(filename: str) -> dict[str, Any]:
    """
    Load a YAML file from linedispatch/defaults/.
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
