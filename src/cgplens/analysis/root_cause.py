# topmark:header:start
#
#   project      : CgpLens
#   file         : root_cause.py
#   file_relpath : src/cgplens/analysis/root_cause.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Relationship deduplication and root-cause ranking.

A higher-order provider such as ``ScaledArea<RectangleArea>`` makes the compiler
report the same requirement twice: once for the wrapper and once for the inner
provider. `deduplicate_relationships` keeps the wrapper only.

Containment is decided on the *spelling* of the provider types: the inner type must
appear as a bracketed type argument of the outer one. This is a heuristic, not a
type-level analysis. It can be fooled by two unrelated providers where one happens to
be spelled as an argument of the other, which the CGP naming conventions make rare.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from cgplens.analysis.patterns import generic_args_of
from cgplens.config.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from cgplens.analysis.database import DiagnosticEntry
    from cgplens.analysis.model import ProviderRelationship, SourceLocation
    from cgplens.config.logging import CgpLensLogger

logger: CgpLensLogger = get_logger(__name__)


def is_contained_type_parameter(inner: str, outer: str) -> bool:
    """Return True if ``inner`` appears as a bracketed type argument inside ``outer``.

    Matches ``<X>``, ``<X,``, ``, X>`` and ``, X,`` at any nesting depth, with optional
    spaces around ``X``. ``RectangleArea`` is contained in ``ScaledArea<RectangleArea>``;
    ``Area`` is not.
    """
    if not inner or inner == outer:
        return False
    pattern: str = r"[<,]\s*" + re.escape(inner) + r"\s*[,>]"
    return re.search(pattern, outer) is not None


def deduplicate_relationships(
    relationships: Iterable[ProviderRelationship],
) -> list[ProviderRelationship]:
    """Drop exact duplicates and relationships wrapped by another one.

    A relationship is wrapped when another relationship has the same component and
    context and its provider type contains this provider type as a type argument.
    Order is preserved.
    """
    unique: list[ProviderRelationship] = list(dict.fromkeys(relationships))
    kept: list[ProviderRelationship] = []
    for rel in unique:
        wrapper: ProviderRelationship | None = next(
            (
                other
                for other in unique
                if other is not rel
                and other.component == rel.component
                and other.context == rel.context
                and is_contained_type_parameter(rel.provider_type, other.provider_type)
            ),
            None,
        )
        if wrapper is not None:
            logger.trace("Dropping %s: wrapped by %s", rel.provider_type, wrapper.provider_type)
            continue
        kept.append(rel)
    return kept


def deduplicate_notes(notes: Iterable[str]) -> list[str]:
    """Drop exact duplicate notes, preserving first-seen order."""
    return list(dict.fromkeys(notes))


def inner_providers(provider_type: str) -> list[str]:
    """Return the providers wrapped by a higher-order provider.

    These are the top-level type arguments of ``provider_type``:
    ``ScaledArea<RectangleArea>`` wraps ``RectangleArea``.
    """
    return [arg for arg in generic_args_of(provider_type) if arg and arg[0].isupper()]


def is_root_cause(entry: DiagnosticEntry) -> bool:
    """An entry is a root cause when it carries a concrete missing-field fact."""
    return entry.field_info is not None


def is_transitive_failure(entry: DiagnosticEntry, entries: Sequence[DiagnosticEntry]) -> bool:
    """Return True if a root cause at one of ``entry``'s locations explains it."""
    if entry.field_info is not None:
        return False
    mine: set[SourceLocation] = set(entry.locations)
    return any(
        other is not entry and other.field_info is not None and mine.intersection(other.locations)
        for other in entries
    )


def _priority(entry: DiagnosticEntry) -> int:
    if is_root_cause(entry):
        return 0
    if entry.provider_relationships:
        return 1
    return 2


def rank_by_causal_priority(entries: Iterable[DiagnosticEntry]) -> list[DiagnosticEntry]:
    """Order entries root causes first, then entries with provider facts, then the rest.

    The sort is stable, so entries of equal priority keep their incoming order.
    """
    return sorted(entries, key=_priority)
