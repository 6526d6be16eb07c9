# topmark:header:start
#
#   project      : CgpLens
#   file         : emitters.py
#   file_relpath : src/cgplens/rendering/emitters.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Serialize a `CgpDiagnostic` for humans or machines.

Emitters:
    * `render_diagnostic_graphical`: box-drawn source frame, colored with yachalk.
      Meant for terminals; ANSI codes are stripped by the console when color is off.
    * `render_diagnostic_plain`: the same information in the ASCII layout of the
      compiler's own messages.
    * `diagnostic_to_dict`: JSON-ready mapping for ``--format json``.

Emitters are pure: they return strings or dicts and never write to a stream.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from yachalk import chalk

from cgplens.config.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from cgplens.config.logging import CgpLensLogger
    from cgplens.rendering.model import CgpDiagnostic, Label, SourceSnippet

logger: CgpLensLogger = get_logger(__name__)

# Lines of context shown around each labeled line.
CONTEXT_LINES: int = 1


def _header_prefix(diagnostic: CgpDiagnostic) -> str:
    level: str = diagnostic.severity.value
    return f"{level}[{diagnostic.code}]" if diagnostic.code else level


def _visible_lines(snippet: SourceSnippet, labels: tuple[Label, ...]) -> list[int]:
    """File line numbers to print: every labeled line plus its context lines."""
    wanted: set[int] = set()
    for label in labels:
        for number in range(label.line - CONTEXT_LINES, label.line + CONTEXT_LINES + 1):
            if snippet.first_line <= number <= snippet.last_line:
                wanted.add(number)
    return sorted(wanted)


def _gutter_width(diagnostic: CgpDiagnostic) -> int:
    numbers: list[int] = [label.line + CONTEXT_LINES for label in diagnostic.labels]
    return max((len(str(n)) for n in numbers), default=1)


def _labels_on(labels: tuple[Label, ...], line: int) -> list[Label]:
    return sorted((label for label in labels if label.line == line), key=lambda lb: lb.column)


def _source_frame(
    diagnostic: CgpDiagnostic,
    *,
    bar: str,
    mark_bar: str,
    gap: str,
    caret: str,
    paint: Callable[[str], str],
    chrome: Callable[[str], str],
) -> list[str]:
    """Numbered source lines with a marker row under each labeled line."""
    snippet: SourceSnippet | None = diagnostic.source
    if snippet is None or not diagnostic.labels:
        return []
    width: int = _gutter_width(diagnostic)
    pad: str = " " * width
    lines: list[str] = []
    previous: int | None = None
    for number in _visible_lines(snippet, diagnostic.labels):
        if previous is not None and number > previous + 1:
            lines.append(chrome(f"{pad} {gap}"))
        previous = number
        text: str = snippet.line(number) or ""
        lines.append(chrome(f"{number:>{width}} {bar}") + (f" {text}" if text else ""))
        for label in _labels_on(diagnostic.labels, number):
            indent: str = " " * (label.column - 1)
            marker: str = paint(caret * label.length)
            lines.append(chrome(f"{pad} {mark_bar}") + f" {indent}{marker} {paint(label.text)}")
    return lines


def render_diagnostic_plain(diagnostic: CgpDiagnostic) -> str:
    """Render in the compiler's own ASCII layout.

    Example:
        error[E0277]: missing field `height` in the context `Rectangle`
          --> src/lib.rs:10:9
           |
        10 |         AreaCalculatorComponent,
           |         ^^^^^^^^^^^^^^^^^^^^^^^ unsatisfied trait bound
           |
           = help: ...
    """
    width: int = _gutter_width(diagnostic)
    pad: str = " " * width
    lines: list[str] = [f"{_header_prefix(diagnostic)}: {diagnostic.message}"]
    if diagnostic.location is not None:
        lines.append(f"{pad}--> {diagnostic.location}")
    frame: list[str] = _source_frame(
        diagnostic,
        bar="|",
        mark_bar="|",
        gap="...",
        caret="^",
        paint=str,
        chrome=str,
    )
    if frame:
        lines.append(f"{pad} |")
        lines.extend(frame)
        lines.append(f"{pad} |")
    help_text: str | None = diagnostic.help
    if help_text:
        lead: str = f"{pad} = help: "
        follow: str = " " * len(lead)
        for i, line in enumerate(help_text.splitlines()):
            if not line:
                continue
            lines.append((lead if i == 0 else follow) + line)
    return "\n".join(lines)


def render_diagnostic_graphical(diagnostic: CgpDiagnostic) -> str:
    """Render with a box-drawn source frame and colors."""
    paint: Callable[[str], str] = diagnostic.severity.color
    chrome: Callable[[str], str] = chalk.blue
    width: int = _gutter_width(diagnostic)
    pad: str = " " * width
    lines: list[str] = []
    if diagnostic.code:
        lines.append(paint(diagnostic.code))
        lines.append("")
    lines.append(f"  {paint('×')} {chalk.bold(diagnostic.message)}")
    frame: list[str] = _source_frame(
        diagnostic,
        bar="│",
        mark_bar="·",
        gap="⋮",
        caret="─",
        paint=paint,
        chrome=chrome,
    )
    if diagnostic.location is not None:
        lines.append(chrome(f"{pad} ╭─[{diagnostic.location}]"))
        lines.extend(frame)
        lines.append(chrome(f"{pad} ╰────"))
    help_text: str | None = diagnostic.help
    if help_text:
        lead: str = "  help: "
        follow: str = " " * len(lead)
        for i, line in enumerate(help_text.splitlines()):
            if not line:
                continue
            prefix: str = chalk.cyan(lead) if i == 0 else follow
            lines.append(prefix + line)
    return "\n".join(lines)


def diagnostic_to_dict(diagnostic: CgpDiagnostic) -> dict[str, Any]:
    """Return a JSON-serializable mapping of ``diagnostic``.

    Labels carry both the byte offset into the snippet and the file position.
    """
    payload: dict[str, Any] = {
        "reason": "cgp-diagnostic",
        "severity": diagnostic.severity.value,
        "code": diagnostic.code,
        "message": diagnostic.message,
        "help": list(diagnostic.help_sections),
        "location": None,
        "source": None,
        "labels": [
            {
                "offset": label.offset,
                "length": label.length,
                "line": label.line,
                "column": label.column,
                "text": label.text,
            }
            for label in diagnostic.labels
        ],
    }
    if diagnostic.location is not None:
        payload["location"] = {
            "file": diagnostic.location.file,
            "line": diagnostic.location.line,
            "column": diagnostic.location.column,
        }
    if diagnostic.source is not None:
        payload["source"] = {
            "name": diagnostic.source.name,
            "first_line": diagnostic.source.first_line,
        }
    return payload
