# topmark:header:start
#
#   project      : CgpLens
#   file         : formats.py
#   file_relpath : src/cgplens/core/formats.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Shared output format and color-mode definitions used across CgpLens frontends.

This module centralizes the `OutputFormat` and `ColorMode` enums so CLI commands,
the pipeline runner and the emitters agree on the same vocabulary without
introducing `Click` or console dependencies.

Machine formats (JSON) are intended to be stable and colorless.
"""

from __future__ import annotations

import os
import sys
from enum import Enum


class OutputFormat(str, Enum):
    """Output format for re-rendered diagnostics.

    Attributes:
        DEFAULT: Decorated output (box drawing, ANSI color if enabled) on a terminal,
            plain output otherwise.
        PLAIN: ASCII layout, never colored.
        JSON: One JSON object per line: transformed CGP diagnostics and
            passed-through cargo messages (machine-readable).
    """

    DEFAULT = "default"
    PLAIN = "plain"
    JSON = "json"


class ColorMode(str, Enum):
    """User intent for colorized terminal output.

    Attributes:
        AUTO: Enable color only when appropriate (typically when stdout is a TTY).
        ALWAYS: Force-enable color regardless of TTY status.
        NEVER: Disable color entirely.
    """

    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"


def is_machine_format(fmt: OutputFormat | None) -> bool:
    """Return True for formats intended for machine consumption."""
    return fmt == OutputFormat.JSON


def resolve_color_mode(
    *,
    color_mode_override: ColorMode | None,
    output_format: OutputFormat | None,
    stdout_isatty: bool | None = None,
) -> bool:
    """Determine whether decorated, colored output should be enabled.

    Decision precedence:
        1. **Machine / plain formats**: `JSON` and `PLAIN` return False.
        2. **CLI override**: `ALWAYS` → True; `NEVER` → False.
        3. **Environment**:
            - `FORCE_COLOR` (set and not equal to `"0"`) → True
            - `NO_COLOR` (set to any value) → False
        4. **Auto**: If none of the above decide, return `stdout.isatty()`.

    Args:
        color_mode_override: Parsed `ColorMode` value from `--color`;
            `None` means “not provided”.
        output_format: Selected output format.
        stdout_isatty: Optional override for TTY detection. When `None`, the function
            calls `sys.stdout.isatty()` and falls back to `False` on error.

    Returns:
        True if the decorated renderer with ANSI color should be used; False otherwise.
    """
    if output_format in (OutputFormat.JSON, OutputFormat.PLAIN):
        return False

    if color_mode_override == ColorMode.ALWAYS:
        return True
    if color_mode_override == ColorMode.NEVER:
        return False

    force_color: str | None = os.getenv("FORCE_COLOR")
    if force_color and force_color != "0":
        return True
    if os.getenv("NO_COLOR") is not None:
        return False

    if stdout_isatty is None:
        try:
            stdout_isatty = sys.stdout.isatty()
        except (OSError, ValueError):
            stdout_isatty = False
    return bool(stdout_isatty)
