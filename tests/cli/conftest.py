# topmark:header:start
#
#   project      : CgpLens
#   file         : conftest.py
#   file_relpath : tests/cli/conftest.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""CLI test helpers for running CgpLens in a controlled working directory.

`run_cli_in()` changes the process working directory to the given directory before
invoking the Click CLI. Config discovery and source snippets are resolved against
the working directory, so this keeps a test independent of the repository it runs in.
"""

from __future__ import annotations

import os
from typing import IO, TYPE_CHECKING, Any

from click.testing import CliRunner, Result

from cgplens.cli.main import cli
from cgplens.core.exit_codes import ExitCode

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


def run_cli_in(
    cwd_path: Path,
    argv: str | Sequence[str] | None,
    *,
    input_text: str | bytes | IO[Any] | None = None,
) -> Result:
    """Invoke the CLI with ``cwd_path`` as the working directory.

    Args:
        cwd_path (Path): Directory used as the CWD for the command invocation.
        argv (str | Sequence[str] | None): CLI argument vector, e.g. ``["explain", "-"]``.
        input_text (str | bytes | IO[Any] | None): Optional standard input for the command.

    Returns:
        Result: The `click.testing.Result` produced by `click.testing.CliRunner.invoke`.

    Example:
        ```python
        res = run_cli_in(tmp_path, ["explain", "messages.json"])
        assert res.exit_code == ExitCode.FAILURE
        ```
    """
    cwd: str = os.getcwd()
    try:
        os.chdir(cwd_path)
        return run_cli(argv, input_text=input_text)
    finally:
        os.chdir(cwd)


def run_cli(
    argv: str | Sequence[str] | None,
    *,
    input_text: str | bytes | IO[Any] | None = None,
) -> Result:
    """Invoke the CLI without changing the working directory.

    Use this helper for commands that do not depend on the working directory
    (e.g. ``version``), or from a test that already uses the ``isolation`` fixture.

    Args:
        argv (str | Sequence[str] | None): CLI argument vector, e.g. ``["--help"]``.
        input_text (str | bytes | IO[Any] | None): Optional standard input for the command.

    Returns:
        Result: The `click.testing.Result` produced by `click.testing.CliRunner.invoke`.
    """
    runner = CliRunner()
    return runner.invoke(cli, argv, input=input_text)


def assert_SUCCESS(result: Result) -> None:
    """Assert that the command exited successfully (code 0).

    Args:
        result (Result): The Result object returned by `run_cli` or `run_cli_in`.
    """
    assert result.exit_code == ExitCode.SUCCESS, result.output


def assert_FAILURE(result: Result) -> None:
    """Assert that the command exited with FAILURE (code 1): errors were reported.

    Args:
        result (Result): The Result object returned by `run_cli` or `run_cli_in`.
    """
    assert result.exit_code == ExitCode.FAILURE, result.output


def assert_USAGE_ERROR(result: Result) -> None:
    """Assert that the command exited with USAGE_ERROR (code 64).

    Args:
        result (Result): The Result object returned by `run_cli` or `run_cli_in`.
    """
    assert result.exit_code == ExitCode.USAGE_ERROR, result.output
