# topmark:header:start
#
#   project      : CgpLens
#   file         : database.py
#   file_relpath : src/cgplens/analysis/database.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Correlate CGP diagnostics that describe the same root cause.

The compiler reports one CGP mistake several times: once per component that
transitively needs it, and often once more as a bare "trait bound not satisfied".
`DiagnosticDatabase` groups raw diagnostics by *grouping key* (primary location plus
component) and merges the facts of every record that maps to the same key.

Lifecycle:
    1. Absorb: `DiagnosticDatabase.add` is called once per raw diagnostic, in
       emission order. Entries are *provisional*.
    2. Finalize: `DiagnosticDatabase.deduplicate` runs once the stream is drained.
       Only then can an entry be judged redundant, because a later diagnostic may
       carry the field fact that explains an earlier one.
    3. Render: `DiagnosticDatabase.active_entries` yields the surviving entries.

Suppressed entries stay in the database (see `DiagnosticDatabase.all_entries`)
so that ``-vv`` runs can show what was hidden and why.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from cgplens.analysis.model import (
    ComponentInfo,
    DelegationChain,
    DelegationHop,
    FieldInfo,
    HopKind,
    ProviderRelationship,
    SourceLocation,
    UnsatisfiedBound,
)
from cgplens.analysis.patterns import (
    PROVIDER_MARKER,
    extract_component_from_can_use,
    extract_component_info,
    extract_consumer_trait,
    extract_field_info,
    extract_provider_relationship,
    extract_unsatisfied_bound,
    has_other_hasfield_implementations,
    is_cgp_diagnostic,
    parse_delegation_note,
)
from cgplens.analysis.root_cause import is_transitive_failure
from cgplens.config.logging import get_logger
from cgplens.constants import CGP_MARKERS
from cgplens.diagnostic.model import DiagnosticLevel

if TYPE_CHECKING:
    from collections.abc import Iterable

    from cgplens.config.logging import CgpLensLogger
    from cgplens.diagnostic.model import DiagnosticSpan, RawDiagnostic

logger: CgpLensLogger = get_logger(__name__)

T = TypeVar("T")

# Traits that are CGP plumbing, never the unsatisfied leaf of a delegation chain.
_PLUMBING_TRAITS: frozenset[str] = frozenset({"HasField", "CanUseComponent", "IsProviderFor"})


@dataclass(frozen=True, slots=True, order=True)
class DiagnosticKey:
    """Grouping key: primary location plus component (``""`` when none was found)."""

    file: str
    line: int
    column: int
    component: str

    @property
    def location(self) -> SourceLocation:
        """The location part of the key."""
        return SourceLocation(self.file, self.line, self.column)


def location_of(span: DiagnosticSpan) -> SourceLocation:
    """Return the start location of a span."""
    return SourceLocation(span.file_name, span.line_start, span.column_start)


@dataclass
class DiagnosticEntry:
    """The unit of correlation: every fact known about one grouping key.

    Merging only fills gaps: field info, consumer trait and error code are never
    overwritten once known, and lists only grow.

    Attributes:
        original (RawDiagnostic): The first raw diagnostic absorbed at this key.
        components (list[ComponentInfo]): Components the context fails to use.
            Several after coalescing.
        field_info (FieldInfo | None): The missing field, if known.
        consumer_trait (str | None): The check trait from ``required by a bound in``.
        provider_relationships (list[ProviderRelationship]): Collected provider facts.
        delegation_notes (list[str]): Distinct ``required for ... to implement`` notes.
        delegation_chains (list[DelegationChain]): The note sequence of each absorbed
            diagnostic, kept in order to recover explicit requirement edges.
        unsatisfied_bounds (list[UnsatisfiedBound]): Provider bounds reported unsatisfied.
        has_other_hasfield_impls (bool): The context implements ``HasField`` for other fields.
        error_code (str | None): Compiler error code.
        primary_spans (list[DiagnosticSpan]): One per absorbed location.
        message (str): The original primary message.
        is_root_cause (bool): True when field info is present.
        suppressed (bool): Hidden from rendering; kept for audit.
        suppressed_reason (str | None): Why the entry was suppressed.
    """

    original: RawDiagnostic
    components: list[ComponentInfo] = field(default_factory=lambda: [])
    field_info: FieldInfo | None = None
    consumer_trait: str | None = None
    provider_relationships: list[ProviderRelationship] = field(default_factory=lambda: [])
    delegation_notes: list[str] = field(default_factory=lambda: [])
    delegation_chains: list[DelegationChain] = field(default_factory=lambda: [])
    unsatisfied_bounds: list[UnsatisfiedBound] = field(default_factory=lambda: [])
    has_other_hasfield_impls: bool = False
    error_code: str | None = None
    primary_spans: list[DiagnosticSpan] = field(default_factory=lambda: [])
    message: str = ""
    is_root_cause: bool = False
    suppressed: bool = False
    suppressed_reason: str | None = None

    @property
    def locations(self) -> list[SourceLocation]:
        """Start locations of all primary spans."""
        return [location_of(s) for s in self.primary_spans]

    @property
    def context_type(self) -> str | None:
        """The context type under check, from the most reliable fact available."""
        if self.field_info is not None:
            return self.field_info.target_type
        for rel in self.provider_relationships:
            return rel.context
        for note in self.delegation_notes:
            hop: DelegationHop | None = parse_delegation_note(note)
            if hop is not None and hop.kind == HopKind.CONSUMER_OF_COMPONENT:
                return hop.subject
        return None


@dataclass(frozen=True, slots=True)
class _RecordFacts:
    """Everything the extractors found in one raw diagnostic."""

    component: ComponentInfo | None
    field_info: FieldInfo | None
    consumer_trait: str | None
    relationships: tuple[ProviderRelationship, ...]
    notes: tuple[str, ...]
    chain: DelegationChain
    bounds: tuple[UnsatisfiedBound, ...]
    has_other_hasfield_impls: bool


def _component_of(raw: RawDiagnostic, notes: tuple[str, ...]) -> ComponentInfo | None:
    """Return the component a diagnostic is about.

    A ``CanUseComponent`` marker in the primary message wins; then the outermost
    (last) delegation note with that marker; then the first ``...Component`` word in
    the message or any child.
    """
    info: ComponentInfo | None = extract_component_from_can_use(raw.message)
    if info is not None:
        return info
    for note in reversed(notes):
        info = extract_component_from_can_use(note)
        if info is not None:
            return info
    for text in raw.iter_texts():
        info = extract_component_info(text)
        if info is not None:
            return info
    return None


def _leaf_bounds(
    raw: RawDiagnostic,
    consumer_trait: str | None,
    hops: list[DelegationHop],
) -> list[UnsatisfiedBound]:
    """Return unsatisfied bounds that can be the leaf of the delegation chain.

    CGP plumbing traits, the check trait and bounds that are themselves hops of the
    chain are excluded.
    """
    hop_pairs: set[tuple[str, str]] = {(h.subject, h.trait_ref) for h in hops}
    texts: list[str] = [raw.message]
    texts.extend(c.message for c in raw.children_at(DiagnosticLevel.HELP))
    result: list[UnsatisfiedBound] = []
    for text in texts:
        bound: UnsatisfiedBound | None = extract_unsatisfied_bound(text)
        if bound is None:
            continue
        if bound.trait_name in _PLUMBING_TRAITS or bound.trait_name == consumer_trait:
            continue
        if (bound.self_type, bound.trait_ref) in hop_pairs or bound in result:
            continue
        result.append(bound)
    return result


def extract_record_facts(raw: RawDiagnostic) -> _RecordFacts:
    """Run every extractor over one raw diagnostic."""
    notes: list[str] = []
    relationships: list[ProviderRelationship] = []
    consumer_trait: str | None = None
    for child in raw.children_at(DiagnosticLevel.NOTE):
        text: str = child.message
        if consumer_trait is None:
            consumer_trait = extract_consumer_trait(text)
        if "required for" in text and "to implement" in text:
            notes.append(text)
            if PROVIDER_MARKER in text:
                rel: ProviderRelationship | None = extract_provider_relationship(text)
                if rel is not None and rel not in relationships:
                    relationships.append(rel)

    hops: list[DelegationHop] = [h for h in map(parse_delegation_note, notes) if h is not None]
    field_info: FieldInfo | None = extract_field_info(raw)
    bounds: list[UnsatisfiedBound] = _leaf_bounds(raw, consumer_trait, hops)
    chain = DelegationChain(
        notes=tuple(notes),
        has_field=field_info is not None,
        bound=None if field_info is not None or not bounds else bounds[0],
    )
    return _RecordFacts(
        component=_component_of(raw, tuple(notes)),
        field_info=field_info,
        consumer_trait=consumer_trait,
        relationships=tuple(relationships),
        notes=tuple(notes),
        chain=chain,
        bounds=tuple(bounds),
        has_other_hasfield_impls=has_other_hasfield_implementations(raw),
    )


def _append_novel(target: list[T], items: Iterable[T]) -> None:
    for item in items:
        if item not in target:
            target.append(item)


class DiagnosticDatabase:
    """Mapping from grouping key to merged entry, owned by one pipeline run.

    Attributes:
        absorbed (int): Number of raw diagnostics absorbed so far.
    """

    def __init__(self, markers: Iterable[str] = CGP_MARKERS) -> None:
        self._markers: tuple[str, ...] = tuple(markers)
        self._entries: dict[DiagnosticKey, DiagnosticEntry] = {}
        self.absorbed: int = 0

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, raw: RawDiagnostic) -> bool:
        """Absorb a raw diagnostic.

        Args:
            raw (RawDiagnostic): The diagnostic to absorb.

        Returns:
            bool: True when absorbed. False when the diagnostic is not CGP-related
            or has no primary span to group by; the caller then passes it through.
        """
        if not is_cgp_diagnostic(raw, self._markers):
            logger.trace("Not a CGP diagnostic: %s", raw.message)
            return False
        span: DiagnosticSpan | None = raw.primary_span
        if span is None:
            logger.debug("CGP diagnostic without primary span cannot be grouped: %s", raw.message)
            return False

        facts: _RecordFacts = extract_record_facts(raw)
        key = DiagnosticKey(
            file=span.file_name,
            line=span.line_start,
            column=span.column_start,
            component=facts.component.component_type if facts.component else "",
        )
        existing: DiagnosticEntry | None = self._entries.get(key)
        if existing is None:
            self._entries[key] = self._create_entry(raw, span, facts)
            logger.debug("New entry at %s (component=%r)", key.location, key.component or None)
        else:
            self._merge_into(existing, raw, span, facts)
            logger.debug("Merged diagnostic into entry at %s", key.location)
        self.absorbed += 1
        return True

    @staticmethod
    def _create_entry(
        raw: RawDiagnostic,
        span: DiagnosticSpan,
        facts: _RecordFacts,
    ) -> DiagnosticEntry:
        return DiagnosticEntry(
            original=raw,
            components=[facts.component] if facts.component else [],
            field_info=facts.field_info,
            consumer_trait=facts.consumer_trait,
            provider_relationships=list(facts.relationships),
            delegation_notes=list(dict.fromkeys(facts.notes)),
            delegation_chains=[facts.chain],
            unsatisfied_bounds=list(facts.bounds),
            has_other_hasfield_impls=facts.has_other_hasfield_impls,
            error_code=raw.code,
            primary_spans=[span],
            message=raw.message,
            is_root_cause=facts.field_info is not None,
        )

    @staticmethod
    def _merge_into(
        entry: DiagnosticEntry,
        raw: RawDiagnostic,
        span: DiagnosticSpan,
        facts: _RecordFacts,
    ) -> None:
        if entry.field_info is None and facts.field_info is not None:
            entry.field_info = facts.field_info
            entry.is_root_cause = True
        if not entry.components and facts.component is not None:
            entry.components.append(facts.component)
        if entry.consumer_trait is None:
            entry.consumer_trait = facts.consumer_trait
        if entry.error_code is None:
            entry.error_code = raw.code
        _append_novel(entry.provider_relationships, facts.relationships)
        _append_novel(entry.delegation_notes, facts.notes)
        _append_novel(entry.delegation_chains, [facts.chain])
        _append_novel(entry.unsatisfied_bounds, facts.bounds)
        _append_novel(entry.primary_spans, [span])
        entry.has_other_hasfield_impls = (
            entry.has_other_hasfield_impls or facts.has_other_hasfield_impls
        )

    def deduplicate(self) -> None:
        """Finalize entries once the whole stream has been absorbed.

        Two passes, in this order:

        1. Coalesce root-cause entries that report the same missing field on the same
           context for the same check trait into the first of them (key order). The
           survivor gains the other components, spans, notes and relationships.
        2. Suppress every entry without field info when an active entry at one of its
           locations has field info and already knows all of its relationships and
           delegation notes.

        Running it again changes nothing.
        """
        self._coalesce_root_causes()
        self._suppress_subsumed()

    def _coalesce_root_causes(self) -> None:
        groups: dict[tuple[str, str, str], DiagnosticEntry] = {}
        for key in sorted(self._entries):
            entry: DiagnosticEntry = self._entries[key]
            if entry.suppressed or entry.field_info is None:
                continue
            group_key: tuple[str, str, str] = (
                entry.field_info.field_name,
                entry.field_info.target_type,
                entry.consumer_trait or "",
            )
            survivor: DiagnosticEntry | None = groups.get(group_key)
            if survivor is None:
                groups[group_key] = entry
                continue
            _append_novel(survivor.components, entry.components)
            _append_novel(survivor.primary_spans, entry.primary_spans)
            _append_novel(survivor.provider_relationships, entry.provider_relationships)
            _append_novel(survivor.delegation_notes, entry.delegation_notes)
            _append_novel(survivor.delegation_chains, entry.delegation_chains)
            _append_novel(survivor.unsatisfied_bounds, entry.unsatisfied_bounds)
            survivor.has_other_hasfield_impls = (
                survivor.has_other_hasfield_impls or entry.has_other_hasfield_impls
            )
            if survivor.error_code is None:
                survivor.error_code = entry.error_code
            entry.suppressed = True
            entry.suppressed_reason = f"coalesced into entry at {survivor.locations[0]}"
            logger.debug(
                "Coalesced missing field %r entry at %s into %s",
                group_key[0],
                entry.locations[0],
                survivor.locations[0],
            )

    def _suppress_subsumed(self) -> None:
        roots: list[DiagnosticEntry] = [
            e for e in self._entries.values() if not e.suppressed and e.field_info is not None
        ]
        for entry in self._entries.values():
            if entry.suppressed or not is_transitive_failure(entry, roots):
                continue
            related: DiagnosticEntry | None = self.find_related_with_field_info(entry, roots)
            if related is None:
                continue
            unique_relationships: bool = any(
                r not in related.provider_relationships for r in entry.provider_relationships
            )
            unique_notes: bool = any(
                n not in related.delegation_notes for n in entry.delegation_notes
            )
            if unique_relationships or unique_notes:
                logger.debug(
                    "Keeping entry at %s: it carries delegation facts absent from the field entry",
                    entry.locations[0],
                )
                continue
            entry.suppressed = True
            entry.suppressed_reason = f"explained by missing field entry at {related.locations[0]}"
            logger.debug("Suppressed entry at %s: %s", entry.locations[0], entry.message)

    @staticmethod
    def find_related_with_field_info(
        entry: DiagnosticEntry,
        candidates: Iterable[DiagnosticEntry],
    ) -> DiagnosticEntry | None:
        """Return the first candidate with field info sharing a location with ``entry``."""
        mine: set[SourceLocation] = set(entry.locations)
        for other in candidates:
            if other is entry or other.field_info is None:
                continue
            if mine.intersection(other.locations):
                return other
        return None

    def active_entries(self) -> list[DiagnosticEntry]:
        """Return non-suppressed entries in grouping key order."""
        return [self._entries[k] for k in sorted(self._entries) if not self._entries[k].suppressed]

    def all_entries(self) -> list[DiagnosticEntry]:
        """Return every entry, suppressed ones included, in grouping key order."""
        return [self._entries[k] for k in sorted(self._entries)]
