# topmark:header:start
#
#   project      : CgpLens
#   file         : model.py
#   file_relpath : src/cgplens/rendering/model.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Output model of the renderer.

A `CgpDiagnostic` is a finished explanation: it no longer refers to the database
entry it was built from and can be serialized by any emitter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cgplens.analysis.model import SourceLocation
    from cgplens.diagnostic.model import DiagnosticLevel


@dataclass(frozen=True, slots=True)
class SourceSnippet:
    """Named source text with the line number of its first line.

    Attributes:
        name (str): File name as reported by the compiler.
        text (str): The source text; a whole file, or only the lines embedded in a
            diagnostic span.
        first_line (int): 1-based line number of the first line of ``text``.
    """

    name: str
    text: str
    first_line: int = 1

    def lines(self) -> list[str]:
        """Lines of the snippet, without line terminators."""
        return self.text.splitlines()

    def line(self, number: int) -> str | None:
        """Return the line with 1-based file line ``number``, or None when outside the snippet."""
        index: int = number - self.first_line
        lines: list[str] = self.lines()
        if 0 <= index < len(lines):
            return lines[index]
        return None

    @property
    def last_line(self) -> int:
        """File line number of the last line of the snippet."""
        return self.first_line + max(len(self.lines()), 1) - 1


@dataclass(frozen=True, slots=True)
class Label:
    """A highlighted range in a `SourceSnippet`.

    ``offset`` counts UTF-8 bytes from the start of the snippet text. ``line`` and
    ``column`` repeat the same position in file coordinates for emitters that lay
    out source line by line.
    """

    offset: int
    length: int
    text: str
    line: int
    column: int


@dataclass(frozen=True, slots=True)
class CgpDiagnostic:
    """A re-described CGP compiler error.

    Attributes:
        message (str): One-line headline.
        code (str | None): Compiler error code, e.g. ``E0277``.
        severity (DiagnosticLevel): Severity of the underlying diagnostic.
        help_sections (tuple[str, ...]): Ordered, possibly multi-line help sections.
        source (SourceSnippet | None): Source to show, if any could be obtained.
        labels (tuple[Label, ...]): Highlighted ranges in ``source``.
        location (SourceLocation | None): Primary location, shown even without source.
    """

    message: str
    code: str | None
    severity: DiagnosticLevel
    help_sections: tuple[str, ...] = ()
    source: SourceSnippet | None = None
    labels: tuple[Label, ...] = ()
    location: SourceLocation | None = None

    @property
    def help(self) -> str | None:
        """All help sections joined by newlines, or None when there are none."""
        if not self.help_sections:
            return None
        return "\n".join(self.help_sections)
