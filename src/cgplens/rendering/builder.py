# topmark:header:start
#
#   project      : CgpLens
#   file         : builder.py
#   file_relpath : src/cgplens/rendering/builder.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Build a `CgpDiagnostic` from a finalized database entry.

Help sections are assembled in a fixed order:

1. context statement (which context fails to use which component),
2. notes about redacted or incomplete field names,
3. struct statement (what is wrong with the context struct),
4. dependency tree, or the flat delegation chain when no tree can be built,
5. hints about higher-order providers,
6. fix suggestions.

Sections that have nothing to say are omitted. Every type name shown to the user
goes through `strip_module_prefixes` and `simplify_type_path` first.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from cgplens.analysis.patterns import simplify_type_path, strip_module_prefixes
from cgplens.analysis.tree import (
    build_dependency_tree,
    higher_order_hints,
    missing_check_suggestions,
    render_tree,
    simplify_delegation_notes,
)
from cgplens.config.logging import get_logger
from cgplens.config.model import Config
from cgplens.constants import NOTE_ARROW, REDACTED_CHAR
from cgplens.rendering.model import CgpDiagnostic
from cgplens.rendering.snippet import build_source

if TYPE_CHECKING:
    from pathlib import Path

    from cgplens.analysis.database import DiagnosticEntry
    from cgplens.analysis.model import FieldInfo, SourceLocation
    from cgplens.analysis.tree import DependencyNode
    from cgplens.config.logging import CgpLensLogger

logger: CgpLensLogger = get_logger(__name__)

INDENT: str = "    "
BULLET: str = "•"


def _clean(text: str, prefixes: tuple[str, ...]) -> str:
    return simplify_type_path(strip_module_prefixes(text, prefixes))


def _quoted_list(names: list[str]) -> str:
    return ", ".join(f"`{name}`" for name in names)


def headline(entry: DiagnosticEntry, prefixes: tuple[str, ...]) -> str:
    """One-line message: field wording when the missing field is known, else the original."""
    info: FieldInfo | None = entry.field_info
    if info is None:
        return _clean(entry.message, prefixes)
    incomplete: str = "" if info.is_complete else " (possibly incomplete)"
    return f"missing field `{info.field_name}`{incomplete} in the context `{info.target_type}`"


def context_statement(entry: DiagnosticEntry) -> str | None:
    """Which context fails to use which component(s)."""
    components: list[str] = [c.component_type for c in entry.components]
    info: FieldInfo | None = entry.field_info
    context: str | None = entry.context_type
    if context is None:
        return None

    if info is not None:
        if len(components) > 1:
            text: str = (
                f"Context `{context}` is missing a required field to use multiple components: "
                f"{_quoted_list(components)}."
            )
        elif components:
            text = f"Context `{context}` is missing a required field to use `{components[0]}`."
        else:
            text = f"Context `{context}` is missing a required field."
        return f"{text}\n{INDENT}note: Missing field: `{info.field_name}`"

    if not components:
        return None
    if len(components) > 1:
        text = f"Context `{context}` cannot use the components {_quoted_list(components)}."
    else:
        text = f"Context `{context}` cannot use `{components[0]}`."
    lines: list[str] = [text]
    for bound in entry.unsatisfied_bounds:
        lines.append(
            f"{INDENT}note: provider `{bound.self_type}` does not implement `{bound.trait_ref}`"
        )
    return "\n".join(lines)


def field_name_note(info: FieldInfo) -> str | None:
    """Warn about characters the compiler hid from the field name."""
    if info.has_unknown_chars:
        return (
            "note: some characters in the field name are hidden by the compiler "
            f"and shown as '{REDACTED_CHAR}'"
        )
    if not info.is_complete:
        return "note: the compiler reported only part of the field name"
    return None


def struct_statement(entry: DiagnosticEntry, info: FieldInfo) -> str:
    """What is wrong with the context struct, and which check requires the field."""
    if entry.has_other_hasfield_impls:
        text: str = (
            f"the struct `{info.target_type}` is missing the required field `{info.field_name}`"
        )
    else:
        text = (
            f"the struct `{info.target_type}` is either missing the field `{info.field_name}` "
            "or is missing `#[derive(HasField)]`"
        )
    if entry.consumer_trait:
        text += f"\nnote: this field is required by the trait bound `{entry.consumer_trait}`"
    return text


def chain_section(
    entry: DiagnosticEntry,
    tree: DependencyNode | None,
    config: Config,
) -> str | None:
    """The dependency tree, or the simplified delegation notes when there is no tree."""
    prefixes: tuple[str, ...] = config.strip_prefixes
    if tree is not None:
        lines: list[str] = [_clean(line, prefixes) for line in render_tree(tree)]
        return "Dependency chain:\n" + "\n".join(INDENT + line for line in lines)
    notes: list[str] = simplify_delegation_notes(
        entry,
        strip_prefixes=prefixes,
        max_note_length=config.max_note_length,
    )
    if not notes:
        return None
    return "Delegation chain:\n" + "\n".join(f"{INDENT}{NOTE_ARROW} {note}" for note in notes)


def fix_suggestions(entry: DiagnosticEntry, tree: DependencyNode | None) -> list[str]:
    """Concrete actions that would resolve the error."""
    suggestions: list[str] = []
    info: FieldInfo | None = entry.field_info
    if info is not None:
        suggestions.append(
            f"ensure a field `{info.field_name}` of the appropriate type is present "
            f"in the `{info.target_type}` struct"
        )
        if not entry.has_other_hasfield_impls:
            suggestions.append(
                f"add `#[derive(HasField)]` to `{info.target_type}` if the struct is missing "
                "the derive"
            )
    context: str | None = entry.context_type
    if tree is not None and context is not None:
        suggestions.extend(missing_check_suggestions(tree, context))
    return suggestions


def build_cgp_diagnostic(
    entry: DiagnosticEntry,
    config: Config | None = None,
    *,
    source_root: Path | None = None,
) -> CgpDiagnostic:
    """Build the explanation of one active database entry.

    Args:
        entry (DiagnosticEntry): A finalized (deduplicated) entry.
        config (Config | None): Rendering settings; defaults when None.
        source_root (Path | None): Directory that span file names are relative to.
            The current working directory when None.

    Returns:
        CgpDiagnostic: The explanation, ready for an emitter.
    """
    cfg: Config = config or Config.default()
    tree: DependencyNode | None = build_dependency_tree(entry)
    if tree is None:
        logger.debug("No dependency tree for %s; using the flat delegation chain", entry.message)

    sections: list[str] = []
    statement: str | None = context_statement(entry)
    if statement:
        sections.append(statement)
    info: FieldInfo | None = entry.field_info
    if info is not None:
        note: str | None = field_name_note(info)
        if note:
            sections.append(note)
        sections.append(struct_statement(entry, info))
    chain: str | None = chain_section(entry, tree, cfg)
    if chain:
        sections.append(chain)
    if tree is not None:
        sections.extend(f"note: {hint}" for hint in higher_order_hints(tree))
    fixes: list[str] = fix_suggestions(entry, tree)
    if fixes:
        sections.append(
            "To fix this error:\n" + "\n".join(f"{INDENT}{BULLET} {fix}" for fix in fixes)
        )

    source, labels = build_source(entry.primary_spans, root=source_root)
    locations: list[SourceLocation] = entry.locations
    return CgpDiagnostic(
        message=headline(entry, cfg.strip_prefixes),
        code=entry.error_code,
        severity=entry.original.level,
        help_sections=tuple(sections),
        source=source,
        labels=labels,
        location=locations[0] if locations else None,
    )
