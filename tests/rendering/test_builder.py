# topmark:header:start
#
#   project      : CgpLens
#   file         : test_builder.py
#   file_relpath : tests/rendering/test_builder.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Tests for turning finalized entries into `CgpDiagnostic` explanations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cgplens.analysis.database import DiagnosticDatabase, DiagnosticEntry
from cgplens.analysis.model import FieldInfo, SourceLocation
from cgplens.diagnostic.model import DiagnosticLevel
from cgplens.rendering.builder import (
    BULLET,
    INDENT,
    build_cgp_diagnostic,
    field_name_note,
    headline,
)
from tests.conftest import load_database, make_config, make_raw

if TYPE_CHECKING:
    from pathlib import Path

    from cgplens.rendering.model import CgpDiagnostic

REDACTED_NAME = "heig\N{REPLACEMENT CHARACTER}t"


def _diagnostics(name: str, root: Path) -> list[CgpDiagnostic]:
    db: DiagnosticDatabase = load_database(name)
    db.deduplicate()
    return [build_cgp_diagnostic(e, source_root=root) for e in db.active_entries()]


def _only(name: str, root: Path) -> CgpDiagnostic:
    diagnostics: list[CgpDiagnostic] = _diagnostics(name, root)
    assert len(diagnostics) == 1
    return diagnostics[0]


def test_base_area_explanation(tmp_path: Path) -> None:
    """It should explain a missing field with a redacted character."""
    diag: CgpDiagnostic = _only("base_area", tmp_path)

    assert diag.message == (
        f"missing field `{REDACTED_NAME}` (possibly incomplete) in the context `Rectangle`"
    )
    assert diag.code == "E0277"
    assert diag.severity == DiagnosticLevel.ERROR
    assert diag.location == SourceLocation("src/base_area.rs", 41, 9)
    assert diag.help_sections == (
        "Context `Rectangle` is missing a required field to use `AreaCalculatorComponent`.\n"
        f"{INDENT}note: Missing field: `{REDACTED_NAME}`",
        "note: some characters in the field name are hidden by the compiler and shown as "
        "'\N{REPLACEMENT CHARACTER}'",
        f"the struct `Rectangle` is missing the required field `{REDACTED_NAME}`\n"
        "note: this field is required by the trait bound `CanUseRectangle`",
        "Dependency chain:\n"
        f"{INDENT}`CanUseRectangle` for `Rectangle` (check trait)\n"
        f"{INDENT}└─ consumer trait of `AreaCalculatorComponent` for `Rectangle` "
        "(consumer trait)\n"
        f"{INDENT}   └─ `AreaCalculator<Rectangle>` for provider `RectangleArea` "
        "(provider trait)\n"
        f"{INDENT}      └─ `HasRectangleFields` for `Rectangle` (getter trait)\n"
        f"{INDENT}         └─ field `{REDACTED_NAME}` on `Rectangle` ✗",
        "To fix this error:\n"
        f"{INDENT}{BULLET} ensure a field `{REDACTED_NAME}` of the appropriate type is present "
        "in the `Rectangle` struct",
    )

    assert diag.source is not None
    assert diag.source.first_line == 41
    assert [(label.offset, label.length) for label in diag.labels] == [(8, 23)]


def test_missing_derive_is_suggested(tmp_path: Path) -> None:
    """It should suggest the derive when no other field is implemented."""
    diag: CgpDiagnostic = _only("base_area_2", tmp_path)

    assert diag.message == "missing field `width` in the context `Rectangle`"
    assert len(diag.help_sections) == 4
    assert diag.help_sections[1].startswith(
        "the struct `Rectangle` is either missing the field `width` "
        "or is missing `#[derive(HasField)]`"
    )
    assert diag.help is not None
    assert "add `#[derive(HasField)]` to `Rectangle` if the struct is missing the derive" in (
        diag.help
    )


def test_higher_order_provider_note(tmp_path: Path) -> None:
    """It should add a note about the inner provider of a higher-order provider."""
    diag: CgpDiagnostic = _only("scaled_area", tmp_path)
    assert (
        "note: `ScaledArea<RectangleArea>` is a higher-order provider wrapping `RectangleArea`; "
        "failures reported for it usually originate in the inner provider."
    ) in diag.help_sections


def test_unsatisfied_provider_explanation(tmp_path: Path) -> None:
    """It should keep the original message and suggest a dedicated check."""
    diag: CgpDiagnostic = _only("density", tmp_path)

    assert diag.message == (
        "the trait bound `RectangleArea: AreaCalculator<Rectangle>` is not satisfied"
    )
    assert diag.help_sections[0] == (
        "Context `Rectangle` cannot use `DensityCalculatorComponent`.\n"
        f"{INDENT}note: provider `RectangleArea` does not implement `AreaCalculator<Rectangle>`"
    )
    assert diag.help_sections[-1] == (
        "To fix this error:\n"
        f"{INDENT}{BULLET} Add a check that `Rectangle` can use `AreaCalculatorComponent` using "
        "`check_components!` to get further details on the missing dependencies."
    )
    assert [(label.offset, label.length) for label in diag.labels] == [(0, 19)]


def test_coalesced_components(tmp_path: Path) -> None:
    """It should name every coalesced component and label every span."""
    diag: CgpDiagnostic = _only("density_3", tmp_path)

    assert diag.help_sections[0].startswith(
        "Context `Rectangle` is missing a required field to use multiple components: "
        "`AreaCalculatorComponent`, `DensityCalculatorComponent`."
    )
    assert [(label.line, label.length) for label in diag.labels] == [(66, 23), (67, 26)]
    assert diag.help is not None
    assert "`CanCalculateArea` for `Rectangle` (consumer trait) (*)" in diag.help


def test_flat_delegation_chain_without_check_trait(tmp_path: Path) -> None:
    """It should fall back to the arrow-led note list when no tree can be built."""
    db = DiagnosticDatabase()
    db.add(
        make_raw(
            "the trait bound `Rectangle: CanUseComponent<AreaCalculatorComponent>` "
            "is not satisfied",
            notes=(
                "required for `Rectangle` to implement `CanUseComponent<AreaCalculatorComponent>`",
            ),
        )
    )
    entry: DiagnosticEntry = db.active_entries()[0]
    diag: CgpDiagnostic = build_cgp_diagnostic(entry, make_config(), source_root=tmp_path)

    assert diag.help_sections == (
        "Context `Rectangle` cannot use `AreaCalculatorComponent`.",
        "Delegation chain:\n"
        f"{INDENT}→ required for `Rectangle` to implement the consumer trait for "
        "`AreaCalculatorComponent`",
    )


def test_headline_strips_prefixes() -> None:
    """It should show type names without module paths."""
    entry = DiagnosticEntry(
        original=make_raw("x"),
        message="the trait bound `cgp::prelude::Foo: app::Bar` is not satisfied",
    )
    assert headline(entry, ("cgp::prelude::",)) == "the trait bound `Foo: Bar` is not satisfied"


def test_field_name_note_variants() -> None:
    """It should only comment on names the compiler did not show in full."""
    assert field_name_note(FieldInfo("height", True, False, "T")) is None
    assert field_name_note(FieldInfo("sca", False, False, "T")) == (
        "note: the compiler reported only part of the field name"
    )
