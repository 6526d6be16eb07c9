# topmark:header:start
#
#   project      : CgpLens
#   file         : keys.py
#   file_relpath : src/cgplens/config/keys.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Canonical TOML and CLI key names for CgpLens configuration.

Keys defined in `Toml` are the external configuration API as it appears in
`cgplens.toml` and in `[tool.cgplens]` inside `pyproject.toml`. Renaming or removing
a key is a breaking change. CLI argument keys live in `ArgKey` and are kept separate.
"""

from __future__ import annotations

from typing import Final


class Toml:
    """TOML keys used by CgpLens configuration."""

    # pyproject.toml nesting
    SECTION_TOOL: Final[str] = "tool"
    SECTION_CGPLENS: Final[str] = "cgplens"

    # Discovery
    KEY_ROOT: Final[str] = "root"

    # Toolchain
    KEY_CARGO: Final[str] = "cargo"
    KEY_CHECK_ARGS: Final[str] = "check_args"

    # Simplification
    KEY_STRIP_PREFIXES: Final[str] = "strip_prefixes"
    KEY_MAX_NOTE_LENGTH: Final[str] = "max_note_length"

    # Output
    KEY_COLOR: Final[str] = "color"
    KEY_FORMAT: Final[str] = "format"


class ArgKey:
    """Keys of the argument mapping passed from the CLI to `MutableConfig.apply_cli_args`."""

    CARGO: Final[str] = "cargo"
    CHECK_ARGS: Final[str] = "check_args"
    COLOR: Final[str] = "color"
    FORMAT: Final[str] = "format"
    VERBOSITY: Final[str] = "verbosity"
    CONFIG_FILES: Final[str] = "config_files"

    # Click context object keys
    CONSOLE: Final[str] = "console"
    CONFIG: Final[str] = "config"
