# topmark:header:start
#
#   project      : CgpLens
#   file         : errors.py
#   file_relpath : src/cgplens/cli/errors.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Exceptions for CgpLens CLI.

Usage:
    Raise these exceptions in CLI commands or in the pipeline runner to signal
    errors with standardized messages and exit codes.

Styling:
    Exceptions prefer the project console if available (see `show()`); if no console
    is present in the Click context, they fall back to Click's default styling.
"""

from __future__ import annotations

from typing import IO, Any

import click

from cgplens.config.keys import ArgKey
from cgplens.core.exit_codes import ExitCode


class CgpLensError(click.ClickException):
    """Base class for all CgpLens CLI errors."""

    exit_code = ExitCode.FAILURE

    def format_message(self) -> str:  # pragma: no cover - trivial
        """Return the plain error message text.

        Notes:
            - Unlike Click's default, this method does not add color.
            - Colorization is applied in `show()` when a project console is present.
        """
        return str(getattr(self, "message", ""))

    def show(self, file: IO[Any] | None = None) -> None:
        """Display the error using the project console if available.

        Falls back to Click's default error display when no console is present.
        """
        ctx: click.Context | None = click.get_current_context(silent=True)
        if ctx is not None and isinstance(ctx.obj, dict):
            console = ctx.obj.get(ArgKey.CONSOLE)
            if console is not None:
                console.error(console.styled(f"error: {self.format_message()}", fg="bright_red"))
                return
        super().show(file)


class CgpLensUsageError(CgpLensError):
    """Error for command-line invocation errors (invalid flags/args)."""

    exit_code = ExitCode.USAGE_ERROR


class CgpLensConfigError(CgpLensError):
    """Error for configuration errors (unreadable or unparsable config file)."""

    exit_code = ExitCode.CONFIG_ERROR


class CgpLensFileNotFoundError(CgpLensError):
    """Error when an input path does not exist."""

    exit_code = ExitCode.FILE_NOT_FOUND


class CgpLensIOError(CgpLensError):
    """Error for I/O errors reading a diagnostic stream."""

    exit_code = ExitCode.IO_ERROR


class CgpLensToolchainError(CgpLensError):
    """Error when the toolchain executable cannot be spawned."""

    exit_code = ExitCode.TOOLCHAIN_UNAVAILABLE


class CgpLensStreamError(CgpLensError):
    """Error for a malformed compiler message in the diagnostic stream."""

    exit_code = ExitCode.STREAM_ERROR
