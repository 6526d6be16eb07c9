# topmark:header:start
#
#   project      : CgpLens
#   file         : model.py
#   file_relpath : src/cgplens/diagnostic/model.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Raw compiler diagnostic records.

These types mirror the JSON diagnostics emitted by `rustc` (and forwarded by cargo
inside ``compiler-message`` records). They are immutable once received: analysis
code reads them but never edits them, so the original record stays available for
pass-through printing and for audit of merged entries.

Sections:
    * DiagnosticLevel: compiler severities with associated terminal colors.
    * SpanLine / DiagnosticSpan: source locations with embedded snippet text.
    * DiagnosticChild: a note/help attached to a diagnostic.
    * RawDiagnostic: one top-level compiler diagnostic.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, cast

from yachalk import chalk

from cgplens.config.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from cgplens.config.logging import CgpLensLogger

logger: CgpLensLogger = get_logger(__name__)


class DiagnosticLevel(str, Enum):
    """Severity levels used by the compiler.

    Values are the exact strings found in the ``level`` field of the JSON records.
    """

    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"
    HELP = "help"
    FAILURE_NOTE = "failure-note"
    ICE = "error: internal compiler error"

    @classmethod
    def from_wire(cls, value: object) -> DiagnosticLevel:
        """Return the level for a wire string; unknown values degrade to NOTE."""
        try:
            return cls(str(value))
        except ValueError:
            logger.debug("Unknown diagnostic level %r, treating as note", value)
            return cls.NOTE

    @property
    def is_error(self) -> bool:
        """Whether this level makes the build fail."""
        return self in (DiagnosticLevel.ERROR, DiagnosticLevel.ICE)

    @property
    def color(self) -> Callable[[str], str]:
        """Return the `yachalk` color function associated with this severity level.

        Intended for human-readable output only; machine formats should not use colors.
        """
        return cast(
            "Callable[[str], str]",
            {
                DiagnosticLevel.ERROR: chalk.red_bright,
                DiagnosticLevel.ICE: chalk.red_bright,
                DiagnosticLevel.WARNING: chalk.yellow,
                DiagnosticLevel.NOTE: chalk.green,
                DiagnosticLevel.HELP: chalk.cyan,
                DiagnosticLevel.FAILURE_NOTE: chalk.gray,
            }[self],
        )


@dataclass(frozen=True, slots=True)
class SpanLine:
    """One line of source text embedded in a span.

    ``highlight_start`` and ``highlight_end`` are 1-based character columns, end exclusive.
    """

    text: str
    highlight_start: int
    highlight_end: int


@dataclass(frozen=True, slots=True)
class DiagnosticSpan:
    """A source region referenced by a diagnostic.

    Lines and columns are 1-based; ``column_end`` is exclusive.
    """

    file_name: str
    line_start: int
    line_end: int
    column_start: int
    column_end: int
    is_primary: bool
    label: str | None = None
    text: tuple[SpanLine, ...] = ()


@dataclass(frozen=True, slots=True)
class DiagnosticChild:
    """A note, help or warning attached to a diagnostic."""

    level: DiagnosticLevel
    message: str
    spans: tuple[DiagnosticSpan, ...] = ()


@dataclass(frozen=True, slots=True)
class RawDiagnostic:
    """One top-level compiler diagnostic, as received.

    Attributes:
        level (DiagnosticLevel): Severity.
        message (str): Primary message.
        children (tuple[DiagnosticChild, ...]): Ordered child notes and help texts.
        spans (tuple[DiagnosticSpan, ...]): Source spans; at most a few are primary.
        code (str | None): Stable error code such as ``E0277``.
        rendered (str | None): The compiler's own human rendering, printed verbatim
            for diagnostics CgpLens does not rewrite.
    """

    level: DiagnosticLevel
    message: str
    children: tuple[DiagnosticChild, ...] = ()
    spans: tuple[DiagnosticSpan, ...] = ()
    code: str | None = None
    rendered: str | None = None

    @property
    def primary_span(self) -> DiagnosticSpan | None:
        """Return the first primary span, if any."""
        return next((s for s in self.spans if s.is_primary), None)

    def iter_texts(self) -> Iterator[str]:
        """Yield the primary message followed by every child message."""
        yield self.message
        for child in self.children:
            yield child.message

    def children_at(self, level: DiagnosticLevel) -> Iterator[DiagnosticChild]:
        """Yield the children with the given severity, in order."""
        return (c for c in self.children if c.level == level)
