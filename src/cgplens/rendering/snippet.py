# topmark:header:start
#
#   project      : CgpLens
#   file         : snippet.py
#   file_relpath : src/cgplens/rendering/snippet.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Source snippets and labels for rendered diagnostics.

The file named by a span is read from disk first, so the emitted snippet shows the
code as it currently is. When the file cannot be read, the lines the compiler
embedded in the span are used instead; when those are missing too, the snippet is
omitted. Reading never raises.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from cgplens.config.logging import get_logger
from cgplens.rendering.model import Label, SourceSnippet

if TYPE_CHECKING:
    from collections.abc import Iterable

    from cgplens.config.logging import CgpLensLogger
    from cgplens.diagnostic.model import DiagnosticSpan

logger: CgpLensLogger = get_logger(__name__)

DEFAULT_LABEL: str = "unsatisfied trait bound"


def read_source_file(file_name: str, *, root: Path | None = None) -> str | None:
    """Return the text of ``file_name`` (relative to ``root`` when not absolute), or None."""
    path = Path(file_name)
    if root is not None and not path.is_absolute():
        path = root / path
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.debug("Cannot read source file %s: %s", path, exc)
        return None


def embedded_snippet(
    span: DiagnosticSpan, others: Iterable[DiagnosticSpan] = ()
) -> SourceSnippet | None:
    """Build a snippet from the lines the compiler embedded in ``span``.

    Lines embedded in ``others`` are added when they belong to the same file and
    all lines together form one contiguous block.
    """
    if not span.text:
        return None
    own: dict[int, str] = {span.line_start + i: line.text for i, line in enumerate(span.text)}
    merged: dict[int, str] = dict(own)
    for other in others:
        if other.file_name != span.file_name:
            continue
        for i, line in enumerate(other.text):
            merged.setdefault(other.line_start + i, line.text)
    numbers: list[int] = sorted(merged)
    if numbers[-1] - numbers[0] + 1 != len(numbers):
        merged = own
        numbers = sorted(own)
    return SourceSnippet(
        name=span.file_name,
        text="\n".join(merged[n] for n in numbers),
        first_line=numbers[0],
    )


def snippet_for_span(
    span: DiagnosticSpan,
    *,
    root: Path | None = None,
    others: Iterable[DiagnosticSpan] = (),
) -> SourceSnippet | None:
    """Return the best available snippet for ``span``: disk, then embedded text, then None.

    ``others`` are further spans of the same diagnostic whose embedded lines may
    extend the embedded snippet.
    """
    text: str | None = read_source_file(span.file_name, root=root)
    if text is not None and span.line_start <= len(text.splitlines()):
        return SourceSnippet(name=span.file_name, text=text, first_line=1)
    if text is not None:
        logger.debug(
            "%s has fewer than %d lines; using the embedded snippet",
            span.file_name,
            span.line_start,
        )
    snippet: SourceSnippet | None = embedded_snippet(span, others)
    if snippet is None:
        logger.debug("No source available for %s", span.file_name)
    return snippet


def byte_offset(snippet: SourceSnippet, line: int, column: int) -> int | None:
    """UTF-8 byte offset of 1-based ``line``/``column`` in the snippet text.

    The offset is the summed byte length of the preceding lines (each plus its line
    terminator) plus the byte length of the line up to the column. ``column`` counts
    characters, as the compiler reports it; columns past the end of the line are
    clamped. Returns None when ``line`` is outside the snippet.
    """
    lines: list[str] = snippet.lines()
    index: int = line - snippet.first_line
    if not 0 <= index < len(lines):
        return None
    column_index: int = min(max(column - 1, 0), len(lines[index]))
    prior_bytes: int = sum(len(prior.encode("utf-8")) + 1 for prior in lines[:index])
    return prior_bytes + len(lines[index][:column_index].encode("utf-8"))


def label_for_span(snippet: SourceSnippet, span: DiagnosticSpan) -> Label | None:
    """Label highlighting ``span`` in ``snippet``, or None if the span falls outside it."""
    if span.file_name != snippet.name:
        return None
    offset: int | None = byte_offset(snippet, span.line_start, span.column_start)
    if offset is None:
        return None
    text_line: str = snippet.line(span.line_start) or ""
    if span.line_end == span.line_start:
        length: int = span.column_end - span.column_start
    else:
        # Multi-line spans are highlighted to the end of their first line.
        length = len(text_line) - (span.column_start - 1)
    return Label(
        offset=offset,
        length=max(length, 1),
        text=span.label or DEFAULT_LABEL,
        line=span.line_start,
        column=span.column_start,
    )


def build_source(
    spans: Iterable[DiagnosticSpan], *, root: Path | None = None
) -> tuple[SourceSnippet | None, tuple[Label, ...]]:
    """Return the snippet of the first span and one label per span that lands in it."""
    span_list: list[DiagnosticSpan] = list(spans)
    if not span_list:
        return None, ()
    snippet: SourceSnippet | None = snippet_for_span(
        span_list[0], root=root, others=span_list[1:]
    )
    if snippet is None:
        return None, ()
    labels: list[Label] = []
    for span in span_list:
        label: Label | None = label_for_span(snippet, span)
        if label is None:
            logger.debug(
                "Span %s:%d:%d is outside the snippet; not labeled",
                span.file_name,
                span.line_start,
                span.column_start,
            )
            continue
        if label not in labels:
            labels.append(label)
    return snippet, tuple(labels)
