# topmark:header:start
#
#   project      : CgpLens
#   file         : test_snippet.py
#   file_relpath : tests/rendering/test_snippet.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Tests for source snippet lookup and label placement."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cgplens.diagnostic.model import DiagnosticSpan, SpanLine
from cgplens.rendering.model import Label, SourceSnippet
from cgplens.rendering.snippet import (
    DEFAULT_LABEL,
    build_source,
    byte_offset,
    embedded_snippet,
    label_for_span,
    read_source_file,
    snippet_for_span,
)
from tests.conftest import make_span

if TYPE_CHECKING:
    from pathlib import Path

SOURCE_LINES: list[str] = [f"// line {n}" for n in range(1, 10)] + [
    "        AreaCalculatorComponent,",
    "    }",
    "}",
]


def _write_source(root: Path) -> None:
    (root / "src").mkdir()
    (root / "src" / "lib.rs").write_text("\n".join(SOURCE_LINES) + "\n", encoding="utf-8")


def test_reads_source_from_disk(tmp_path: Path) -> None:
    """It should prefer the file on disk and place the label by byte offset."""
    _write_source(tmp_path)
    snippet, labels = build_source([make_span()], root=tmp_path)

    assert snippet is not None
    assert snippet.first_line == 1
    assert snippet.line(10) == "        AreaCalculatorComponent,"
    prior: int = sum(len(line) + 1 for line in SOURCE_LINES[:9])
    assert labels == (Label(prior + 8, 23, "unsatisfied trait bound", 10, 9),)


def test_read_source_file_missing(tmp_path: Path) -> None:
    """It should return None for an unreadable file."""
    assert read_source_file("src/nope.rs", root=tmp_path) is None


def test_falls_back_to_embedded_text(tmp_path: Path) -> None:
    """It should use the span's embedded lines when the file cannot be read."""
    snippet, labels = build_source([make_span()], root=tmp_path)

    assert snippet == SourceSnippet("src/lib.rs", "        AreaCalculatorComponent,", 10)
    assert labels == (Label(8, 23, "unsatisfied trait bound", 10, 9),)


def test_short_file_falls_back_to_embedded_text(tmp_path: Path) -> None:
    """It should not trust a file that no longer has the span's line."""
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "lib.rs").write_text("fn main() {}\n", encoding="utf-8")
    snippet: SourceSnippet | None = snippet_for_span(make_span(), root=tmp_path)
    assert snippet is not None
    assert snippet.first_line == 10


def test_no_source_at_all(tmp_path: Path) -> None:
    """It should omit the snippet when neither the file nor embedded text exist."""
    span: DiagnosticSpan = DiagnosticSpan("src/lib.rs", 10, 10, 9, 32, True)
    assert build_source([span], root=tmp_path) == (None, ())
    assert build_source([], root=tmp_path) == (None, ())


def test_contiguous_spans_share_one_snippet(tmp_path: Path) -> None:
    """It should merge the embedded lines of adjacent spans and label both."""
    first: DiagnosticSpan = make_span(line=66)
    second: DiagnosticSpan = make_span(
        line=67, text="        DensityCalculatorComponent,", length=26, label=None
    )
    snippet, labels = build_source([first, second], root=tmp_path)

    assert snippet is not None
    assert snippet.first_line == 66
    assert snippet.last_line == 67
    assert labels == (
        Label(8, 23, "unsatisfied trait bound", 66, 9),
        Label(len("        AreaCalculatorComponent,") + 1 + 8, 26, DEFAULT_LABEL, 67, 9),
    )


def test_distant_spans_keep_own_lines() -> None:
    """It should not merge embedded lines that leave a gap."""
    first: DiagnosticSpan = make_span(line=10)
    distant: DiagnosticSpan = make_span(line=20)
    other_file: DiagnosticSpan = make_span(file_name="src/other.rs", line=11)

    snippet: SourceSnippet | None = embedded_snippet(first, [distant, other_file])
    assert snippet is not None
    assert (snippet.first_line, snippet.last_line) == (10, 10)
    assert label_for_span(snippet, distant) is None
    assert label_for_span(snippet, other_file) is None


def test_multi_line_span_label() -> None:
    """It should highlight a multi-line span to the end of its first line."""
    span = DiagnosticSpan(
        file_name="src/density.rs",
        line_start=64,
        line_end=65,
        column_start=1,
        column_end=36,
        is_primary=True,
        text=(
            SpanLine("check_components! {", 1, 20),
            SpanLine("    CanUseRectangle for Rectangle {", 1, 36),
        ),
    )
    snippet: SourceSnippet | None = embedded_snippet(span)
    assert snippet is not None
    label: Label | None = label_for_span(snippet, span)
    assert label == Label(0, len("check_components! {"), DEFAULT_LABEL, 64, 1)


def test_duplicate_spans_are_labeled_once(tmp_path: Path) -> None:
    """It should not repeat an identical label."""
    _snippet, labels = build_source([make_span(), make_span()], root=tmp_path)
    assert len(labels) == 1


def test_byte_offset_bounds() -> None:
    """It should clamp columns to the line and reject lines outside the snippet."""
    snippet = SourceSnippet("a.rs", "ab\ncdef", first_line=5)
    assert byte_offset(snippet, 5, 1) == 0
    assert byte_offset(snippet, 6, 3) == 5
    assert byte_offset(snippet, 6, 99) == 7
    assert byte_offset(snippet, 4, 1) is None
    assert byte_offset(snippet, 7, 1) is None


def test_byte_offset_counts_utf8_bytes() -> None:
    """It should count multi-byte characters before the position by their encoded size."""
    snippet = SourceSnippet("a.rs", "é\nlet ß = x;", first_line=1)
    assert byte_offset(snippet, 2, 1) == 3
    assert byte_offset(snippet, 2, 7) == 10
