# topmark:header:start
#
#   project      : CgpLens
#   file         : test_database.py
#   file_relpath : tests/analysis/test_database.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Tests for grouping, merging and suppression in `cgplens.analysis.database`."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cgplens.analysis.database import DiagnosticDatabase, DiagnosticKey, extract_record_facts
from cgplens.analysis.model import (
    ComponentInfo,
    FieldInfo,
    ProviderRelationship,
    SourceLocation,
    UnsatisfiedBound,
)
from cgplens.diagnostic.model import DiagnosticLevel, RawDiagnostic
from tests.conftest import load_database, make_raw

if TYPE_CHECKING:
    from cgplens.analysis.database import DiagnosticEntry

CAN_USE_AREA = (
    "the trait bound `Rectangle: CanUseComponent<AreaCalculatorComponent>` is not satisfied"
)
PROVIDER_BOUND = "the trait bound `RectangleArea: AreaCalculator<Rectangle>` is not satisfied"
HEIGHT_HELP = (
    "the trait `HasField<Symbol<6, Chars<'h', Chars<'e', Chars<'i', Chars<'g', Chars<'h', "
    "Chars<'t', Nil>>>>>>>>` is not implemented for `Rectangle`"
)
WIDTH_HELP = (
    "the trait `HasField<Symbol<5, Chars<'w', Chars<'i', Chars<'d', Chars<'t', Chars<'h', "
    "Nil>>>>>>>` is not implemented for `Rectangle`"
)
FIELD_NOTES = (
    "required for `Rectangle` to implement `HasRectangleFields`",
    "required for `RectangleArea` to implement `IsProviderFor<AreaCalculatorComponent, Rectangle>`",
    "required for `Rectangle` to implement `CanUseComponent<AreaCalculatorComponent>`",
    "required by a bound in `CanUseRectangle`",
)
MACRO_NOTE = "this error originates in the macro `check_components`"


def _only_entry(db: DiagnosticDatabase) -> DiagnosticEntry:
    entries: list[DiagnosticEntry] = db.active_entries()
    assert len(entries) == 1
    return entries[0]


# --- absorption ---


def test_non_cgp_diagnostic_is_not_absorbed() -> None:
    """It should leave diagnostics without CGP markers to the caller."""
    db = DiagnosticDatabase()
    assert db.add(make_raw("cannot find value `heigth` in this scope", code="E0425")) is False
    assert len(db) == 0
    assert db.absorbed == 0


def test_cgp_diagnostic_without_primary_span_is_not_absorbed() -> None:
    """It should refuse a CGP diagnostic it cannot group by location."""
    raw = RawDiagnostic(level=DiagnosticLevel.ERROR, message=CAN_USE_AREA)
    db = DiagnosticDatabase()
    assert db.add(raw) is False
    assert len(db) == 0


def test_custom_markers() -> None:
    """It should only absorb diagnostics matching the configured markers."""
    db = DiagnosticDatabase(markers=("NoSuchMarker",))
    assert db.add(make_raw(CAN_USE_AREA, notes=FIELD_NOTES)) is False


def test_malformed_field_length_is_absorbed_without_field() -> None:
    """It should absorb a diagnostic whose field length marker is not a number."""
    malformed_help = HEIGHT_HELP.replace("Symbol<6,", "Symbol<\N{SUPERSCRIPT TWO},")
    db = DiagnosticDatabase()
    assert db.add(make_raw(CAN_USE_AREA, notes=FIELD_NOTES, helps=(malformed_help,))) is True
    entry: DiagnosticEntry = _only_entry(db)
    assert entry.field_info is None
    assert entry.components == [ComponentInfo("AreaCalculatorComponent", "AreaCalculator")]


def test_base_area_entry_facts() -> None:
    """It should extract every fact of a missing-field diagnostic."""
    db: DiagnosticDatabase = load_database("base_area")
    assert db.absorbed == 1
    entry: DiagnosticEntry = _only_entry(db)

    assert entry.components == [ComponentInfo("AreaCalculatorComponent", "AreaCalculator")]
    assert entry.field_info == FieldInfo("heig\N{REPLACEMENT CHARACTER}t", False, True, "Rectangle")
    assert entry.consumer_trait == "CanUseRectangle"
    assert entry.provider_relationships == [
        ProviderRelationship("RectangleArea", "AreaCalculatorComponent", "Rectangle")
    ]
    assert len(entry.delegation_notes) == 3
    assert entry.has_other_hasfield_impls
    assert entry.is_root_cause
    assert entry.error_code == "E0277"
    assert entry.locations == [SourceLocation("src/base_area.rs", 41, 9)]
    assert entry.context_type == "Rectangle"


def test_grouping_key_uses_component() -> None:
    """It should keep diagnostics about different components apart at one location."""
    db = DiagnosticDatabase()
    db.add(make_raw(CAN_USE_AREA, notes=FIELD_NOTES))
    db.add(
        make_raw(
            "the trait bound `Rectangle: CanUseComponent<DensityCalculatorComponent>` "
            "is not satisfied"
        )
    )
    assert len(db) == 2
    keys: list[str] = [e.components[0].component_type for e in db.all_entries()]
    assert keys == ["AreaCalculatorComponent", "DensityCalculatorComponent"]


def test_key_ordering() -> None:
    """It should order keys by file, line, column, then component."""
    a = DiagnosticKey("src/a.rs", 3, 1, "B")
    b = DiagnosticKey("src/a.rs", 3, 1, "A")
    c = DiagnosticKey("src/a.rs", 2, 9, "Z")
    assert sorted([a, b, c]) == [c, b, a]
    assert a.location == SourceLocation("src/a.rs", 3, 1)


# --- merging ---


def test_scaled_area_records_merge_at_absorb_time() -> None:
    """It should merge two records at the same location and component into one entry."""
    db: DiagnosticDatabase = load_database("scaled_area")
    assert db.absorbed == 2
    assert len(db) == 1
    entry: DiagnosticEntry = _only_entry(db)

    assert entry.message == PROVIDER_BOUND
    assert entry.field_info == FieldInfo("height", True, False, "Rectangle")
    assert entry.is_root_cause
    assert entry.provider_relationships == [
        ProviderRelationship("ScaledArea<RectangleArea>", "AreaCalculatorComponent", "Rectangle"),
        ProviderRelationship("RectangleArea", "AreaCalculatorComponent", "Rectangle"),
    ]
    assert len(entry.delegation_notes) == 4
    assert len(entry.delegation_chains) == 2
    assert len(entry.primary_spans) == 1
    assert entry.unsatisfied_bounds == [
        UnsatisfiedBound("RectangleArea", "AreaCalculator<Rectangle>")
    ]


def test_merge_never_overwrites_known_facts() -> None:
    """It should keep the first field fact and only fill in missing ones."""
    db = DiagnosticDatabase()
    db.add(make_raw(CAN_USE_AREA, helps=(WIDTH_HELP,), code=None))
    db.add(make_raw(CAN_USE_AREA, helps=(HEIGHT_HELP,), notes=FIELD_NOTES))
    entry: DiagnosticEntry = _only_entry(db)

    assert entry.field_info is not None
    assert entry.field_info.field_name == "width"
    assert entry.error_code == "E0277"
    assert entry.consumer_trait == "CanUseRectangle"
    assert len(entry.delegation_notes) == 3


def test_record_facts_leaf_bound_excludes_plumbing() -> None:
    """It should not report CGP plumbing traits as the unsatisfied leaf."""
    facts = extract_record_facts(make_raw(CAN_USE_AREA, helps=(HEIGHT_HELP,), notes=FIELD_NOTES))
    assert facts.bounds == ()
    assert facts.chain.has_field
    assert facts.chain.bound is None

    facts = extract_record_facts(make_raw(PROVIDER_BOUND, notes=FIELD_NOTES[2:]))
    assert facts.bounds == (UnsatisfiedBound("RectangleArea", "AreaCalculator<Rectangle>"),)
    assert facts.chain.bound == facts.bounds[0]


# --- finalization ---


def test_density_3_entries_coalesce() -> None:
    """It should coalesce entries reporting the same missing field for one check trait."""
    db: DiagnosticDatabase = load_database("density_3")
    assert len(db) == 2
    db.deduplicate()

    survivor: DiagnosticEntry = _only_entry(db)
    assert [c.component_type for c in survivor.components] == [
        "AreaCalculatorComponent",
        "DensityCalculatorComponent",
    ]
    assert len(survivor.primary_spans) == 2
    assert len(db.all_entries()) == 2

    absorbed: DiagnosticEntry = db.all_entries()[1]
    assert absorbed.suppressed
    assert absorbed.suppressed_reason is not None
    assert absorbed.suppressed_reason.startswith("coalesced into entry at src/density_3.rs:66:9")


def test_bare_bound_explained_by_field_entry_is_suppressed() -> None:
    """It should hide a bound failure whose facts the field entry already carries."""
    db = DiagnosticDatabase()
    db.add(make_raw(CAN_USE_AREA, helps=(HEIGHT_HELP,), notes=FIELD_NOTES))
    db.add(make_raw(PROVIDER_BOUND, notes=(MACRO_NOTE,)))
    assert len(db) == 2

    db.deduplicate()

    active: list[DiagnosticEntry] = db.active_entries()
    assert len(active) == 1
    assert active[0].field_info is not None
    bare: DiagnosticEntry = next(e for e in db.all_entries() if e.suppressed)
    assert bare.message == PROVIDER_BOUND
    assert bare.suppressed_reason == "explained by missing field entry at src/lib.rs:10:9"


def test_entry_with_unique_note_is_kept() -> None:
    """It should keep an entry that carries a delegation note the field entry lacks."""
    db = DiagnosticDatabase()
    db.add(make_raw(CAN_USE_AREA, helps=(HEIGHT_HELP,), notes=FIELD_NOTES))
    db.add(
        make_raw(
            PROVIDER_BOUND,
            notes=("required for `Rectangle` to implement `CanCalculateArea`", MACRO_NOTE),
        )
    )
    db.deduplicate()
    assert len(db.active_entries()) == 2


def test_deduplicate_is_idempotent() -> None:
    """It should leave the database unchanged when run a second time."""
    db: DiagnosticDatabase = load_database("density_3")
    db.deduplicate()
    first: list[tuple[bool, int, int]] = [
        (e.suppressed, len(e.components), len(e.primary_spans)) for e in db.all_entries()
    ]
    db.deduplicate()
    second: list[tuple[bool, int, int]] = [
        (e.suppressed, len(e.components), len(e.primary_spans)) for e in db.all_entries()
    ]
    assert first == second


def test_find_related_with_field_info() -> None:
    """It should find the field entry sharing a location, and nothing elsewhere."""
    db = DiagnosticDatabase()
    db.add(make_raw(CAN_USE_AREA, helps=(HEIGHT_HELP,), notes=FIELD_NOTES))
    db.add(make_raw(PROVIDER_BOUND, notes=(MACRO_NOTE,)))
    field_entry, bare = sorted(db.all_entries(), key=lambda e: e.field_info is None)

    assert DiagnosticDatabase.find_related_with_field_info(bare, db.all_entries()) is field_entry
    assert DiagnosticDatabase.find_related_with_field_info(field_entry, [field_entry]) is None


def test_context_type_without_field() -> None:
    """It should fall back to the relationship context when no field is known."""
    db: DiagnosticDatabase = load_database("density")
    entry: DiagnosticEntry = _only_entry(db)
    assert entry.field_info is None
    assert not entry.is_root_cause
    assert entry.context_type == "Rectangle"
