# topmark:header:start
#
#   project      : CgpLens
#   file         : test_runner.py
#   file_relpath : tests/pipeline/test_runner.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Tests for whole-stream processing and the cargo subprocess runner."""

from __future__ import annotations

import json
import stat
import sys
from typing import TYPE_CHECKING, Any

import pytest

from cgplens.cli.errors import CgpLensIOError, CgpLensStreamError, CgpLensToolchainError
from cgplens.core.formats import OutputFormat
from cgplens.pipeline.runner import (
    StreamSummary,
    cargo_command,
    explain_stream,
    process_stream,
    run_check,
)
from tests.conftest import (
    fixture_path,
    make_config,
    make_console,
    mark_pipeline,
    read_fixture_lines,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

REDACTED_NAME = "heig\N{REPLACEMENT CHARACTER}t"

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script as cargo")


def _fake_cargo(tmp_path: Path, body: str) -> Path:
    script: Path = tmp_path / "fake-cargo"
    script.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@mark_pipeline
def test_human_output_for_base_area(tmp_path: Path) -> None:
    """It should pass through non-CGP output and render the CGP explanation last."""
    console, out, err = make_console()
    summary: StreamSummary = process_stream(
        read_fixture_lines("base_area"), make_config(), console, source_root=tmp_path
    )

    assert summary == StreamSummary(
        cgp_diagnostics=1, suppressed=0, passthrough_errors=1, build_success=False
    )
    assert summary.has_errors

    printed: str = out.getvalue()
    assert "error: aborting due to 1 previous error" in printed
    assert (
        f"error[E0277]: missing field `{REDACTED_NAME}` (possibly incomplete) "
        "in the context `Rectangle`"
    ) in printed
    assert "  --> src/base_area.rs:41:9" in printed
    assert "41 |         AreaCalculatorComponent," in printed
    assert "the trait bound `Rectangle: CanUseComponent" not in printed
    assert printed.index("aborting due to") < printed.index("missing field")

    assert "Fresh cgp" in err.getvalue()
    assert "Build failed" in err.getvalue()


@mark_pipeline
def test_json_output_is_one_record_per_line(tmp_path: Path) -> None:
    """It should write valid JSON only, with one record per explanation."""
    console, out, _err = make_console()
    process_stream(
        read_fixture_lines("base_area"),
        make_config(output_format=OutputFormat.JSON),
        console,
        source_root=tmp_path,
    )

    records: list[dict[str, Any]] = [json.loads(line) for line in out.getvalue().splitlines()]
    assert len(records) == 5
    assert [r["reason"] for r in records].count("cgp-diagnostic") == 1
    assert records[-1]["reason"] == "cgp-diagnostic"
    assert records[-1]["location"] == {"file": "src/base_area.rs", "line": 41, "column": 9}


@mark_pipeline
def test_non_cgp_stream(tmp_path: Path) -> None:
    """It should count passed-through errors and explain nothing."""
    console, out, err = make_console()
    summary: StreamSummary = process_stream(
        read_fixture_lines("plain_error"), make_config(), console, source_root=tmp_path
    )

    assert summary.cgp_diagnostics == 0
    assert summary.passthrough_errors == 2
    assert summary.has_errors
    assert "error[E0425]" in out.getvalue()
    assert "Compiling itoa" in err.getvalue()


@mark_pipeline
def test_suppressed_entries_are_counted(tmp_path: Path) -> None:
    """It should report coalesced entries as suppressed."""
    console, out, _err = make_console()
    summary: StreamSummary = process_stream(
        read_fixture_lines("density_3"), make_config(), console, source_root=tmp_path
    )
    assert (summary.cgp_diagnostics, summary.suppressed) == (1, 1)
    assert out.getvalue().count("error[E0277]") == 1


@mark_pipeline
def test_default_format_with_color_uses_graphical_emitter(tmp_path: Path) -> None:
    """It should draw the framed layout when the console emits color."""
    console, out, _err = make_console(enable_color=True)
    process_stream(read_fixture_lines("base_area"), make_config(), console, source_root=tmp_path)
    assert "╭─[src/base_area.rs:41:9]" in out.getvalue()


def test_clean_stream_has_no_errors() -> None:
    """It should report success for a stream without errors."""
    console, _out, _err = make_console()
    summary: StreamSummary = process_stream(
        ['{"reason": "build-finished", "success": true}'], make_config(), console
    )
    assert summary == StreamSummary(0, 0, 0, True)
    assert not summary.has_errors


def test_malformed_stream() -> None:
    """It should report a malformed compiler message as a stream error."""
    console, _out, _err = make_console()
    with pytest.raises(CgpLensStreamError) as excinfo:
        process_stream(
            ['{"reason": "compiler-message", "message": "oops"}'], make_config(), console
        )
    assert "line 1" in excinfo.value.format_message()


def test_explain_stream_read_failure() -> None:
    """It should turn a failing input stream into an I/O error."""

    def broken() -> Iterator[str]:
        yield '{"reason": "build-finished", "success": true}'
        raise OSError("device went away")

    console, _out, _err = make_console()
    with pytest.raises(CgpLensIOError):
        explain_stream(broken(), make_config(), console)


def test_cargo_command() -> None:
    """It should put configured arguments before the ones given on the command line."""
    cfg = make_config(cargo="cargo-nightly", check_args=["--all-targets"])
    assert cargo_command(["-p", "demo"], cfg) == [
        "cargo-nightly",
        "check",
        "--message-format=json",
        "--all-targets",
        "-p",
        "demo",
    ]


def test_run_check_missing_toolchain(tmp_path: Path) -> None:
    """It should raise when cargo cannot be spawned."""
    console, _out, _err = make_console()
    with pytest.raises(CgpLensToolchainError):
        run_check([], make_config(cargo="cgplens-no-such-cargo"), console, cwd=tmp_path)


@posix_only
@mark_pipeline
def test_run_check_explains_cargo_output(tmp_path: Path) -> None:
    """It should process cargo's stdout and return its exit status."""
    script: Path = _fake_cargo(tmp_path, f"cat '{fixture_path('base_area')}'\nexit 101\n")
    console, out, err = make_console()

    status: int = run_check([], make_config(cargo=str(script)), console, cwd=tmp_path)

    assert status == 101
    assert "missing field" in out.getvalue()
    assert "Build failed" in err.getvalue()


@posix_only
def test_run_check_shows_stderr_when_build_never_ran(tmp_path: Path) -> None:
    """It should show cargo's own error when no build took place."""
    script: Path = _fake_cargo(tmp_path, "echo 'error: could not find Cargo.toml' >&2\nexit 101\n")
    console, out, err = make_console()

    status: int = run_check([], make_config(cargo=str(script)), console, cwd=tmp_path)

    assert status == 101
    assert out.getvalue() == ""
    assert "error: could not find Cargo.toml" in err.getvalue()
