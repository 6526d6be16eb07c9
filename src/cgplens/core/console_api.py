# topmark:header:start
#
#   project      : CgpLens
#   file         : console_api.py
#   file_relpath : src/cgplens/core/console_api.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Framework-agnostic console interface for program output.

This protocol defines the small surface used by the pipeline and the CLI
commands to emit user-facing output, separate from internal logging.
"""

from __future__ import annotations

from typing import Protocol


class ConsoleLike(Protocol):
    """Minimal interface for a console used by CLI commands and the pipeline.

    Implementations may use Click or plain stdlib streams. The purpose is to
    decouple program output from the logging subsystem.
    """

    enable_color: bool

    def print(self, text: str = "", *, nl: bool = True) -> None:
        """Write a message to stdout."""
        ...

    def progress(self, text: str, *, nl: bool = True) -> None:
        """Write a build progress line to stderr."""
        ...

    def warn(self, text: str, *, nl: bool = True) -> None:
        """Write a warning message to stderr."""
        ...

    def error(self, text: str, *, nl: bool = True) -> None:
        """Write an error message to stderr."""
        ...

    def styled(self, text: str, **style_kwargs: object) -> str:
        """Return a styled string (no-op if styling is disabled)."""
        ...
