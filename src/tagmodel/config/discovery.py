"""Config file discovery and loading.

Walk-up finder locates ``tagmodel.toml`` or a ``pyproject.toml`` carrying a
``[tool.tagmodel]`` table, similar to how git finds ``.git/``.  The
``TAGMODEL_CONFIG`` env var overrides discovery.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from tagmodel.errors import ConfigError

CONFIG_FILENAME = "tagmodel.toml"
PYPROJECT_FILENAME = "pyproject.toml"
CONFIG_ENV_VAR = "TAGMODEL_CONFIG"
TOOL_TABLE = "tagmodel"


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for a config file.

    In each directory ``tagmodel.toml`` wins over ``pyproject.toml``; a
    ``pyproject.toml`` only counts when it has a ``[tool.tagmodel]`` table.
    Checks ``TAGMODEL_CONFIG`` first.

    Returns the path to the config file, or None if not found.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        if p.is_file():
            return p
        return None

    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        pyproject = current / PYPROJECT_FILENAME
        if pyproject.is_file() and _has_tool_table(pyproject):
            return pyproject
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


def _has_tool_table(path: Path) -> bool:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError:
        return False
    return isinstance(data.get("tool", {}).get(TOOL_TABLE), dict)


def read_config_table(path: Path) -> dict[str, Any]:
    """Return the tagmodel table of *path*.

    ``pyproject.toml`` files yield their ``[tool.tagmodel]`` table; any
    other file is read whole.

    Raises:
        ConfigError: The file is not valid TOML.
    """
    raw = path.read_text(encoding="utf-8")
    try:
        data: dict[str, Any] = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    if path.name == PYPROJECT_FILENAME:
        table = data.get("tool", {}).get(TOOL_TABLE, {})
        return table if isinstance(table, dict) else {}
    return data
