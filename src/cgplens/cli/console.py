# topmark:header:start
#
#   project      : CgpLens
#   file         : console.py
#   file_relpath : src/cgplens/cli/console.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Console abstraction for user-facing program output.

This module provides a `ClickConsole` class that separates CLI output from
internal logging. Re-rendered diagnostics and passed-through compiler output go
to stdout; build progress, warnings and errors go to stderr.
"""

from __future__ import annotations

import sys
from typing import Any, TextIO

import click


class ClickConsole:
    """Program-output console, independent from the logger.

    Args:
        enable_color (bool): If True, keeps ANSI color codes in the output.
            Otherwise they are stripped by `click.echo`.
        out (TextIO | None): The text stream to use for standard output.
            Defaults to `sys.stdout`.
        err (TextIO | None): The text stream to use for error output.
            Defaults to `sys.stderr`.
    """

    enable_color: bool
    out: TextIO
    err: TextIO

    def __init__(
        self,
        *,
        enable_color: bool = True,
        out: TextIO | None = None,
        err: TextIO | None = None,
    ) -> None:
        self.enable_color = enable_color
        self.out = out or sys.stdout
        self.err = err or sys.stderr

    def print(self, text: str = "", *, nl: bool = True) -> None:
        """Write a message to stdout.

        Args:
            text (str): Message text.
            nl (bool): If True, append a newline.
        """
        click.echo(text, nl=nl, file=self.out, color=self.enable_color)

    def progress(self, text: str, *, nl: bool = True) -> None:
        """Write a build progress line to stderr, the way cargo does."""
        click.echo(text, nl=nl, file=self.err, color=self.enable_color)

    def warn(self, text: str, *, nl: bool = True) -> None:
        """Write a warning message to stderr.

        Args:
            text (str): Warning text.
            nl (bool): If True, append a newline.
        """
        click.secho(text, nl=nl, file=self.err, color=self.enable_color, fg="yellow")

    def error(self, text: str, *, nl: bool = True) -> None:
        """Write an error message to stderr.

        Args:
            text (str): Error text.
            nl (bool): If True, append a newline.
        """
        click.secho(text, nl=nl, file=self.err, color=self.enable_color, fg="bright_red")

    def styled(self, text: str, **style_kwargs: Any) -> str:
        """Return a styled string using click.style (plain text if color is disabled)."""
        if not self.enable_color:
            return text
        return click.style(text, **style_kwargs)
