# topmark:header:start
#
#   project      : CgpLens
#   file         : wire.py
#   file_relpath : src/cgplens/diagnostic/wire.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Decode cargo's ``--message-format=json`` stream.

Cargo writes one JSON object per line, tagged by a ``reason`` field. This module
turns each line into a typed message. Lines that are not JSON objects (build
script output, progress text) become `TextLine` messages; they are never an error.

A ``compiler-message`` record whose embedded diagnostic does not have the expected
shape raises `MalformedMessageError`: the stream is then not something CgpLens can
reason about, and the caller decides how to report it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Final, cast

from cgplens.config.logging import get_logger
from cgplens.diagnostic.model import (
    DiagnosticChild,
    DiagnosticLevel,
    DiagnosticSpan,
    RawDiagnostic,
    SpanLine,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from cgplens.config.logging import CgpLensLogger

logger: CgpLensLogger = get_logger(__name__)

REASON_COMPILER_MESSAGE: Final[str] = "compiler-message"
REASON_COMPILER_ARTIFACT: Final[str] = "compiler-artifact"
REASON_BUILD_SCRIPT_EXECUTED: Final[str] = "build-script-executed"
REASON_BUILD_FINISHED: Final[str] = "build-finished"


class MalformedMessageError(ValueError):
    """Raised when a ``compiler-message`` record cannot be decoded."""

    def __init__(self, reason: str, line_no: int | None = None) -> None:
        where: str = f"line {line_no}: " if line_no is not None else ""
        super().__init__(f"{where}{reason}")
        self.reason: str = reason
        self.line_no: int | None = line_no


@dataclass(frozen=True, slots=True)
class CompilerMessage:
    """A diagnostic emitted while compiling one target."""

    package_id: str
    target_name: str
    message: RawDiagnostic
    payload: dict[str, Any] = field(default_factory=lambda: {}, compare=False)


@dataclass(frozen=True, slots=True)
class CompilerArtifact:
    """A target finished compiling (``fresh`` when it was already up to date)."""

    package_id: str
    target_name: str
    fresh: bool
    payload: dict[str, Any] = field(default_factory=lambda: {}, compare=False)


@dataclass(frozen=True, slots=True)
class BuildScriptExecuted:
    """A build script ran."""

    package_id: str
    payload: dict[str, Any] = field(default_factory=lambda: {}, compare=False)


@dataclass(frozen=True, slots=True)
class BuildFinished:
    """The build is over; ``success`` is False when any target failed."""

    success: bool
    payload: dict[str, Any] = field(default_factory=lambda: {}, compare=False)


@dataclass(frozen=True, slots=True)
class UnknownMessage:
    """A JSON record with a ``reason`` this version does not know."""

    reason: str
    payload: dict[str, Any] = field(default_factory=lambda: {}, compare=False)


@dataclass(frozen=True, slots=True)
class TextLine:
    """A line of the stream that is not a JSON object."""

    text: str


Message = (
    CompilerMessage
    | CompilerArtifact
    | BuildScriptExecuted
    | BuildFinished
    | UnknownMessage
    | TextLine
)


def _require_dict(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise MalformedMessageError(f"{what} is not an object")
    return cast("dict[str, Any]", value)


def _require_list(value: Any, what: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedMessageError(f"{what} is not an array")
    return cast("list[Any]", value)


def _require_int(obj: dict[str, Any], key: str, what: str) -> int:
    value: Any = obj.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedMessageError(f"{what}.{key} is not an integer")
    return value


def _require_str(obj: dict[str, Any], key: str, what: str) -> str:
    value: Any = obj.get(key)
    if not isinstance(value, str):
        raise MalformedMessageError(f"{what}.{key} is not a string")
    return value


def parse_span(obj: Any) -> DiagnosticSpan:
    """Decode one span object."""
    span: dict[str, Any] = _require_dict(obj, "span")
    lines: list[SpanLine] = []
    for raw_line in _require_list(span.get("text"), "span.text"):
        line: dict[str, Any] = _require_dict(raw_line, "span.text[]")
        lines.append(
            SpanLine(
                text=_require_str(line, "text", "span.text[]"),
                highlight_start=_require_int(line, "highlight_start", "span.text[]"),
                highlight_end=_require_int(line, "highlight_end", "span.text[]"),
            )
        )
    label: Any = span.get("label")
    return DiagnosticSpan(
        file_name=_require_str(span, "file_name", "span"),
        line_start=_require_int(span, "line_start", "span"),
        line_end=_require_int(span, "line_end", "span"),
        column_start=_require_int(span, "column_start", "span"),
        column_end=_require_int(span, "column_end", "span"),
        is_primary=bool(span.get("is_primary", False)),
        label=label if isinstance(label, str) else None,
        text=tuple(lines),
    )


def _parse_code(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    code: Any = _require_dict(value, "code").get("code")
    return code if isinstance(code, str) else None


def parse_diagnostic(obj: Any) -> RawDiagnostic:
    """Decode a compiler diagnostic object into a `RawDiagnostic`.

    Raises:
        MalformedMessageError: If a required field is missing or ill-typed.
    """
    diag: dict[str, Any] = _require_dict(obj, "message")
    children: list[DiagnosticChild] = []
    for raw_child in _require_list(diag.get("children"), "message.children"):
        child: dict[str, Any] = _require_dict(raw_child, "message.children[]")
        children.append(
            DiagnosticChild(
                level=DiagnosticLevel.from_wire(child.get("level")),
                message=_require_str(child, "message", "message.children[]"),
                spans=tuple(
                    parse_span(s) for s in _require_list(child.get("spans"), "child.spans")
                ),
            )
        )
    rendered: Any = diag.get("rendered")
    return RawDiagnostic(
        level=DiagnosticLevel.from_wire(diag.get("level")),
        message=_require_str(diag, "message", "message"),
        children=tuple(children),
        spans=tuple(parse_span(s) for s in _require_list(diag.get("spans"), "message.spans")),
        code=_parse_code(diag.get("code")),
        rendered=rendered if isinstance(rendered, str) else None,
    )


def _target_name(payload: dict[str, Any]) -> str:
    target: Any = payload.get("target")
    if isinstance(target, dict):
        name: Any = cast("dict[str, Any]", target).get("name")
        if isinstance(name, str):
            return name
    return ""


def parse_message(line: str, *, line_no: int | None = None) -> Message:
    """Decode one line of cargo's JSON message stream.

    Args:
        line (str): One line, with or without its trailing newline.
        line_no (int | None): 1-based line number used in error messages.

    Returns:
        Message: The typed message; `TextLine` for anything that is not a JSON object.

    Raises:
        MalformedMessageError: If a ``compiler-message`` record is malformed.
    """
    text: str = line.rstrip("\r\n")
    stripped: str = text.strip()
    if not stripped.startswith("{"):
        return TextLine(text)
    try:
        decoded: Any = json.loads(stripped)
    except json.JSONDecodeError:
        logger.trace("Not a JSON record: %r", text)
        return TextLine(text)
    if not isinstance(decoded, dict):
        return TextLine(text)

    payload: dict[str, Any] = cast("dict[str, Any]", decoded)
    reason: Any = payload.get("reason")
    package_id: str = str(payload.get("package_id", ""))

    if reason == REASON_COMPILER_MESSAGE:
        try:
            diagnostic: RawDiagnostic = parse_diagnostic(payload.get("message"))
        except MalformedMessageError as e:
            raise MalformedMessageError(e.reason, line_no) from e
        return CompilerMessage(
            package_id=package_id,
            target_name=_target_name(payload),
            message=diagnostic,
            payload=payload,
        )
    if reason == REASON_COMPILER_ARTIFACT:
        return CompilerArtifact(
            package_id=package_id,
            target_name=_target_name(payload),
            fresh=bool(payload.get("fresh", False)),
            payload=payload,
        )
    if reason == REASON_BUILD_SCRIPT_EXECUTED:
        return BuildScriptExecuted(package_id=package_id, payload=payload)
    if reason == REASON_BUILD_FINISHED:
        return BuildFinished(success=bool(payload.get("success", False)), payload=payload)
    if isinstance(reason, str):
        return UnknownMessage(reason=reason, payload=payload)
    return TextLine(text)


def parse_stream(lines: Iterable[str]) -> Iterator[Message]:
    """Decode every line of a message stream, skipping blank lines."""
    for line_no, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        yield parse_message(line, line_no=line_no)
