# topmark:header:start
#
#   project      : CgpLens
#   file         : loaders.py
#   file_relpath : src/cgplens/config/loaders.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Load and discover TOML configuration sources.

This module reads `cgplens.toml` and the `[tool.cgplens]` table of `pyproject.toml`.
Parsing is done with `tomlkit` and returned as plain `dict` structures.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, cast

import tomlkit
from tomlkit.exceptions import ParseError as TomlkitParseError

from cgplens.config.keys import Toml
from cgplens.config.logging import get_logger
from cgplens.constants import CGPLENS_TOML_NAME, PYPROJECT_TOML_NAME

if TYPE_CHECKING:
    from cgplens.config.logging import CgpLensLogger

logger: CgpLensLogger = get_logger(__name__)

TomlTable = dict[str, Any]


class ConfigLoadError(Exception):
    """Raised when a configuration file exists but cannot be read or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path: Path = path
        self.reason: str = reason


def load_toml_dict(path: Path) -> TomlTable:
    """Load and parse a TOML file from the filesystem.

    Args:
        path (Path): Path to a TOML document.

    Returns:
        TomlTable: The parsed TOML content as plain Python values.

    Raises:
        ConfigLoadError: If the file cannot be read or is not valid TOML.
    """
    try:
        text: str = path.read_text(encoding="utf-8")
        doc: tomlkit.TOMLDocument = tomlkit.parse(text)
    except OSError as e:
        logger.error("Error loading TOML from %s: %s", path, e)
        raise ConfigLoadError(path, str(e)) from e
    except TomlkitParseError as e:
        logger.error("Error decoding TOML from %s: %s", path, e)
        raise ConfigLoadError(path, str(e)) from e
    data_any: Any = doc.unwrap()
    return cast("TomlTable", data_any) if isinstance(data_any, dict) else {}


def extract_cgplens_table(path: Path, data: TomlTable) -> TomlTable | None:
    """Return the CgpLens settings table of a loaded document.

    For `pyproject.toml` this is `[tool.cgplens]` (``None`` when absent). For
    `cgplens.toml` the settings live at the top level, optionally nested under a
    `[cgplens]` table.
    """
    if path.name == PYPROJECT_TOML_NAME:
        tool: Any = data.get(Toml.SECTION_TOOL, {})
        if not isinstance(tool, dict):
            return None
        section: Any = cast("TomlTable", tool).get(Toml.SECTION_CGPLENS)
        return cast("TomlTable", section) if isinstance(section, dict) else None
    nested: Any = data.get(Toml.SECTION_CGPLENS)
    if isinstance(nested, dict):
        return cast("TomlTable", nested)
    return data


def discover_config_files(start: Path) -> list[Path]:
    """Return config files discovered by walking upward from ``start``.

    Files are ordered root-most first and nearest last so that a later merge
    gives precedence to the nearest file. Within one directory `pyproject.toml`
    precedes `cgplens.toml`. A `pyproject.toml` without a `[tool.cgplens]` table is
    skipped. Traversal stops after a directory whose config sets ``root = true``.

    Args:
        start (Path): Directory (or file) where discovery starts.

    Returns:
        list[Path]: Discovered config paths in merge order.
    """
    per_dir: list[list[Path]] = []
    cur: Path = start.resolve()
    if cur.is_file():
        cur = cur.parent

    while True:
        stop_here = False
        dir_entries: list[Path] = []
        for name in (PYPROJECT_TOML_NAME, CGPLENS_TOML_NAME):
            p: Path = cur / name
            if not p.is_file():
                continue
            try:
                table: TomlTable | None = extract_cgplens_table(p, load_toml_dict(p))
            except ConfigLoadError as e:
                if name == PYPROJECT_TOML_NAME:
                    # Foreign pyproject files are not ours to validate.
                    logger.debug("Ignoring unreadable %s: %s", p, e)
                    continue
                raise
            if table is None:
                continue
            logger.debug("Discovered config file: %s", p)
            dir_entries.append(p)
            if bool(table.get(Toml.KEY_ROOT, False)):
                stop_here = True

        if dir_entries:
            per_dir.append(dir_entries)

        parent: Path = cur.parent
        if parent == cur:
            break
        if stop_here:
            logger.debug("Stopping upward config discovery at %s due to root=true", cur)
            break
        cur = parent

    ordered: list[Path] = []
    for dir_list in reversed(per_dir):
        ordered.extend(dir_list)
    return ordered
