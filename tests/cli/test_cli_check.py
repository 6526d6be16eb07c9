# topmark:header:start
#
#   project      : CgpLens
#   file         : test_cli_check.py
#   file_relpath : tests/cli/test_cli_check.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Tests for `cgplens check` and the `cargo-cgplens` entry point.

A small shell script stands in for cargo: it records its arguments and replays a
saved message stream.
"""

from __future__ import annotations

import stat
import sys
from typing import TYPE_CHECKING

import pytest

from cgplens.cli.main import cargo_cli
from cgplens.constants import CGPLENS_VERSION
from cgplens.core.exit_codes import ExitCode
from tests.cli.conftest import run_cli
from tests.conftest import fixture_path, mark_cli

if TYPE_CHECKING:
    from pathlib import Path

    from click.testing import Result

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script as cargo")


def _replaying_cargo(directory: Path, fixture: str, status: int = 101) -> Path:
    script: Path = directory / "fake-cargo"
    script.write_text(
        "#!/bin/sh\n"
        'printf \'%s\\n\' "$@" > args.txt\n'
        f"cat '{fixture_path(fixture)}'\n"
        f"exit {status}\n",
        encoding="utf-8",
    )
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@mark_cli
def test_check_missing_toolchain(isolation: Path) -> None:
    """It should exit with TOOLCHAIN_UNAVAILABLE when cargo cannot be spawned."""
    result: Result = run_cli(["check", "--cargo", "cgplens-no-such-cargo"])

    assert result.exit_code == ExitCode.TOOLCHAIN_UNAVAILABLE, result.output
    assert "failed to spawn `cgplens-no-such-cargo`" in result.stderr


@posix_only
@mark_cli
def test_check_returns_cargo_status(isolation: Path) -> None:
    """It should explain cargo's output and exit with cargo's status."""
    script: Path = _replaying_cargo(isolation, "base_area")
    result: Result = run_cli(["check", "--cargo", str(script), "--format", "plain"])

    assert result.exit_code == 101, result.output
    assert "missing field" in result.stdout
    assert "Build failed" in result.stderr


@posix_only
@mark_cli
def test_check_forwards_cargo_arguments(isolation: Path) -> None:
    """It should pass configured and command-line arguments on to cargo check."""
    (isolation / "cgplens.toml").write_text(
        'root = true\ncheck_args = ["--all-targets"]\n', encoding="utf-8"
    )
    script: Path = _replaying_cargo(isolation, "density", status=0)
    result: Result = run_cli(["check", "--cargo", str(script), "--", "-p", "demo"])

    assert result.exit_code == 0, result.output
    forwarded: list[str] = (isolation / "args.txt").read_text(encoding="utf-8").splitlines()
    assert forwarded == ["check", "--message-format=json", "--all-targets", "-p", "demo"]


@posix_only
@mark_cli
def test_check_cargo_from_config(isolation: Path) -> None:
    """It should run the toolchain named by ``cargo`` in `cgplens.toml`."""
    script: Path = _replaying_cargo(isolation, "plain_error")
    (isolation / "cgplens.toml").write_text(
        f"root = true\ncargo = '{script}'\n", encoding="utf-8"
    )
    result: Result = run_cli(["check"])

    assert result.exit_code == 101, result.output
    assert "error[E0425]" in result.stdout


@mark_cli
def test_cargo_subcommand_drops_repeated_name(
    isolation: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """It should accept the extra subcommand name cargo passes to ``cargo-cgplens``."""
    with pytest.raises(SystemExit) as excinfo:
        cargo_cli(["cgplens", "version"])

    assert excinfo.value.code == 0
    assert capsys.readouterr().out.strip() == CGPLENS_VERSION
