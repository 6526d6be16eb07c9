# topmark:header:start
#
#   project      : CgpLens
#   file         : conftest.py
#   file_relpath : tests/conftest.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Pytest configuration for the CgpLens test suite.

This file sets up global fixtures and customizes the logging configuration for test runs,
ensuring consistent and verbose logging output during testing.

Notes:
    Message streams used by the tests live in ``tests/fixtures/`` as NDJSON files,
    one cargo message per line, exactly as ``cargo check --message-format=json``
    writes them. Source files named by their spans do not exist on disk, so
    rendering falls back to the snippets embedded in the spans.
"""

from __future__ import annotations

import io
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar, cast

import pytest

from cgplens.analysis.database import DiagnosticDatabase
from cgplens.cli.console import ClickConsole
from cgplens.config import logging
from cgplens.config.model import MutableConfig
from cgplens.diagnostic.model import (
    DiagnosticChild,
    DiagnosticLevel,
    DiagnosticSpan,
    RawDiagnostic,
    SpanLine,
)
from cgplens.diagnostic.wire import CompilerMessage, parse_stream

if TYPE_CHECKING:
    from cgplens.config.model import Config

F = TypeVar("F", bound=Callable[..., object])

# This defines the type for the decorator function itself:
# It takes a Callable (F) and returns the same Callable (F).
DecoratorType = Callable[[F], F]

FIXTURES_DIR: Path = Path(__file__).parent / "fixtures"


def as_typed_mark(mark: Any) -> DecoratorType[Any]:
    """Wrap a pytest mark so static type checkers preserve the function type.

    Args:
        mark (Any): A pytest mark decorator such as `pytest.mark.cli`.

    Returns:
        DecoratorType[Any]: A decorator that preserves the wrapped function's type.
    """

    def _decorator(func: F) -> F:
        return cast("F", mark(func))

    return _decorator


mark_cli: DecoratorType[Any] = as_typed_mark(pytest.mark.cli)
mark_pipeline: DecoratorType[Any] = as_typed_mark(pytest.mark.pipeline)


def parametrize(*args: Any, **kwargs: Any) -> Callable[[F], F]:
    """Typed wrapper for `pytest.mark.parametrize`.

    Args:
        *args (Any): Positional arguments forwarded to `pytest.mark.parametrize`.
        **kwargs (Any): Keyword arguments forwarded to `pytest.mark.parametrize`.

    Returns:
        Callable[[F], F]: A decorator that preserves the wrapped function's type.
    """
    mark: pytest.MarkDecorator = pytest.mark.parametrize(*args, **kwargs)
    return as_typed_mark(mark)


def hookimpl(*args: Any, **kwargs: Any) -> Callable[[F], F]:
    """Typed wrapper for `pytest.hookimpl`.

    Args:
        *args (Any): Positional arguments forwarded to `pytest.hookimpl`.
        **kwargs (Any): Keyword arguments forwarded to `pytest.hookimpl`.

    Returns:
        Callable[[F], F]: A decorator that preserves the wrapped function's type.
    """
    return as_typed_mark(pytest.hookimpl(*args, **kwargs))


@pytest.fixture(autouse=True)
def silence_cgplens_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure CgpLens's runtime log level is not forced via env during tests.

    This avoids accidental DEBUG/TRACE noise when the developer has exported
    CGPLENS_LOG_LEVEL in their shell. Color forcing variables are removed too,
    so that color decisions only depend on what a test asks for.

    Args:
        monkeypatch (pytest.MonkeyPatch): Pytest monkeypatch fixture used to manipulate
            environment variables.
    """
    monkeypatch.delenv(logging.LOG_LEVEL_ENV_VAR, raising=False)
    monkeypatch.delenv("FORCE_COLOR", raising=False)
    monkeypatch.delenv("NO_COLOR", raising=False)


@hookimpl(tryfirst=True)
def pytest_configure(config: pytest.Config) -> None:  # pylint: disable=unused-argument
    """Configure pytest settings and customize logging for the test suite.

    This function sets the logging level to TRACE for all tests,
    ensuring detailed output is captured during test execution.

    Args:
        config (pytest.Config): The pytest configuration object.
    """
    logging.setup_logging(level=logging.TRACE_LEVEL)


@pytest.fixture
def isolation(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run a test in an isolated, empty working directory.

    Config discovery walks upward from the working directory; the ``root = true``
    marker in the generated `cgplens.toml` stops it there so that no file of the
    developer's machine leaks into the test.

    Args:
        tmp_path (Path): The pytest-provided temporary directory for the test.
        monkeypatch (pytest.MonkeyPatch): Fixture to change the working directory.

    Returns:
        Path: The isolated working directory.
    """
    cwd: Path = tmp_path / "proj"
    cwd.mkdir()
    (cwd / "cgplens.toml").write_text("root = true\n", encoding="utf-8")
    monkeypatch.chdir(cwd)
    return cwd


def fixture_path(name: str) -> Path:
    """Return the path of the NDJSON fixture ``name`` (without extension)."""
    return FIXTURES_DIR / f"{name}.ndjson"


def read_fixture_lines(name: str) -> list[str]:
    """Return the lines of the NDJSON fixture ``name``."""
    return fixture_path(name).read_text(encoding="utf-8").splitlines()


def load_raw_diagnostics(name: str) -> list[RawDiagnostic]:
    """Return every compiler diagnostic of a fixture stream, in stream order."""
    return [
        message.message
        for message in parse_stream(read_fixture_lines(name))
        if isinstance(message, CompilerMessage)
    ]


def load_database(name: str) -> DiagnosticDatabase:
    """Absorb every compiler diagnostic of a fixture stream into a fresh database."""
    db = DiagnosticDatabase()
    for raw in load_raw_diagnostics(name):
        db.add(raw)
    return db


def make_config(**overrides: Any) -> Config:
    """Return a frozen `Config` built from defaults and overrides.

    Args:
        **overrides (Any): Attributes set on the mutable builder before freezing.

    Returns:
        Config: An immutable configuration snapshot for use in tests.
    """
    m: MutableConfig = MutableConfig.from_defaults()
    for k, v in overrides.items():
        setattr(m, k, v)
    return m.freeze()


def make_console(*, enable_color: bool = False) -> tuple[ClickConsole, io.StringIO, io.StringIO]:
    """Return a console writing into in-memory buffers, plus its stdout and stderr buffers."""
    out = io.StringIO()
    err = io.StringIO()
    return ClickConsole(enable_color=enable_color, out=out, err=err), out, err


def make_span(
    *,
    file_name: str = "src/lib.rs",
    line: int = 10,
    column: int = 9,
    text: str = "        AreaCalculatorComponent,",
    length: int = 23,
    label: str | None = "unsatisfied trait bound",
) -> DiagnosticSpan:
    """Return a single-line primary span embedding ``text``."""
    return DiagnosticSpan(
        file_name=file_name,
        line_start=line,
        line_end=line,
        column_start=column,
        column_end=column + length,
        is_primary=True,
        label=label,
        text=(SpanLine(text, column, column + length),),
    )


def make_raw(
    message: str,
    *,
    notes: tuple[str, ...] = (),
    helps: tuple[str, ...] = (),
    span: DiagnosticSpan | None = None,
    code: str | None = "E0277",
    level: DiagnosticLevel = DiagnosticLevel.ERROR,
) -> RawDiagnostic:
    """Return a raw diagnostic with the given help texts followed by the given notes.

    ``span`` defaults to `make_span()`; pass a span explicitly to vary the location.
    """
    children: list[DiagnosticChild] = [DiagnosticChild(DiagnosticLevel.HELP, h) for h in helps]
    children.extend(DiagnosticChild(DiagnosticLevel.NOTE, n) for n in notes)
    return RawDiagnostic(
        level=level,
        message=message,
        children=tuple(children),
        spans=(span if span is not None else make_span(),),
        code=code,
    )
