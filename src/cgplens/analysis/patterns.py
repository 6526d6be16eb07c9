# topmark:header:start
#
#   project      : CgpLens
#   file         : patterns.py
#   file_relpath : src/cgplens/analysis/patterns.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Recognize CGP-specific shapes inside compiler diagnostic text.

The CGP framework surfaces in compiler output through a handful of generic marker
types: ``CanUseComponent<Component>``, ``IsProviderFor<Component, Context>`` and the
type-level string ``HasField<Symbol<N, Chars<'a', Chars<'b', Nil>>>>`` that encodes a
field name. This module finds those shapes in free-form text.

Every text is first classified with `classify_text`; extraction then runs the
function matching that shape. All bracket matching goes through one primitive,
`extract_balanced_generic`.

Failure policy:
    No function in this module raises on unexpected input. A shape that is not
    found yields ``None`` and callers fall back to a more generic explanation.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Final

from cgplens.analysis.model import (
    ComponentInfo,
    DelegationHop,
    FieldInfo,
    HopKind,
    ProviderRelationship,
    ShapeKind,
    TextShape,
    UnsatisfiedBound,
)
from cgplens.config.logging import get_logger
from cgplens.constants import CGP_MARKERS, DEFAULT_STRIP_PREFIXES, REDACTED_CHAR
from cgplens.diagnostic.model import DiagnosticLevel

if TYPE_CHECKING:
    from collections.abc import Iterable

    from cgplens.config.logging import CgpLensLogger
    from cgplens.diagnostic.model import RawDiagnostic

logger: CgpLensLogger = get_logger(__name__)

CAN_USE_MARKER: Final[str] = "CanUseComponent<"
PROVIDER_MARKER: Final[str] = "IsProviderFor<"
HAS_FIELD_MARKER: Final[str] = "HasField<"
SYMBOL_MARKER: Final[str] = "Symbol<"
CHARS_MARKER: Final[str] = "Chars<"
COMPONENT_SUFFIX: Final[str] = "Component"

_REQUIRED_FOR: Final[str] = "required for `"
_TO_IMPLEMENT: Final[str] = "` to implement `"
_REQUIRED_BY_BOUND: Final[str] = "required by a bound in `"
_NOT_IMPLEMENTED_FOR: Final[str] = "is not implemented for `"
_TRAIT_BOUND: Final[str] = "the trait bound `"
_NOT_SATISFIED: Final[str] = "` is not satisfied"
_THE_TRAIT: Final[str] = "the trait `"

# One or more `ident::` segments; removing them keeps the last path segment.
_MODULE_PATH_RE: Final[re.Pattern[str]] = re.compile(r"\b(?:[A-Za-z_][A-Za-z0-9_]*::)+")

# An identifier following the CGP naming convention for components.
_COMPONENT_WORD_RE: Final[re.Pattern[str]] = re.compile(r"\b([A-Za-z_][A-Za-z0-9_]*Component)\b")


# --- classification ---


def is_cgp_diagnostic(raw: RawDiagnostic, markers: Iterable[str] = CGP_MARKERS) -> bool:
    """Return True if the message or any child note mentions a CGP marker."""
    marker_list: tuple[str, ...] = tuple(markers)
    return any(m in text for text in raw.iter_texts() for m in marker_list)


def classify_text(text: str) -> TextShape:
    """Classify a diagnostic text by the CGP shape it carries.

    Shapes are tested from most to least specific, so a delegation note that names
    ``IsProviderFor`` is a relationship, not a plain delegation.

    Args:
        text (str): A diagnostic message or child note.

    Returns:
        TextShape: The shape and, for marker shapes, the offset just past the
        marker's opening ``<``.
    """
    if HAS_FIELD_MARKER in text and SYMBOL_MARKER in text:
        return TextShape(ShapeKind.FIELD, text, text.find(SYMBOL_MARKER) + len(SYMBOL_MARKER))
    if _REQUIRED_FOR in text and _TO_IMPLEMENT in text:
        pos: int = text.find(PROVIDER_MARKER)
        if pos >= 0:
            return TextShape(ShapeKind.RELATIONSHIP, text, pos + len(PROVIDER_MARKER))
        return TextShape(ShapeKind.DELEGATION, text)
    if _REQUIRED_BY_BOUND in text:
        return TextShape(ShapeKind.CHECK_BOUND, text)
    if (_TRAIT_BOUND in text and _NOT_SATISFIED in text) or (
        _THE_TRAIT in text and _NOT_IMPLEMENTED_FOR in text
    ):
        return TextShape(ShapeKind.UNSATISFIED, text)
    pos = text.find(CAN_USE_MARKER)
    if pos >= 0:
        return TextShape(ShapeKind.CAPABILITY, text, pos + len(CAN_USE_MARKER))
    return TextShape(ShapeKind.PLAIN, text)


# --- bracket primitives ---


def extract_balanced_generic(text: str, start: int) -> str | None:
    """Return the generic argument list that starts at ``start``.

    ``start`` is the index just past an opening ``<``. The scan tracks nesting depth
    and stops at the ``>`` that closes the opening bracket. On unbalanced input the
    rest of the string is returned with trailing ``>`` trimmed (best effort).

    Args:
        text (str): Text to scan.
        start (int): Index just past the opening ``<``.

    Returns:
        str | None: The stripped content between the brackets, or ``None`` when
        ``start`` lies outside ``text``.
    """
    if start < 0 or start > len(text):
        return None
    depth = 1
    for i in range(start, len(text)):
        ch: str = text[i]
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
            if depth == 0:
                return text[start:i].strip()
    return text[start:].rstrip(">").strip()


def find_top_level_comma(text: str, start: int) -> int | None:
    """Return the index of the first comma at nesting depth zero from ``start``.

    Commas inside nested ``<...>`` are ignored. The scan stops at the ``>`` that
    closes the enclosing generic list.
    """
    if start < 0:
        return None
    depth = 0
    for i in range(start, len(text)):
        ch: str = text[i]
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
            if depth < 0:
                return None
        elif ch == "," and depth == 0:
            return i
    return None


def split_generic_args(args: str) -> list[str]:
    """Split a generic argument list (without the outer brackets) at top-level commas."""
    parts: list[str] = []
    start = 0
    while True:
        comma: int | None = find_top_level_comma(args, start)
        if comma is None:
            tail: str = args[start:].strip()
            if tail:
                parts.append(tail)
            return parts
        parts.append(args[start:comma].strip())
        start = comma + 1


def generic_args_of(type_name: str) -> list[str]:
    """Return the top-level generic arguments of ``type_name`` (``[]`` when it has none)."""
    pos: int = type_name.find("<")
    if pos < 0:
        return []
    inner: str | None = extract_balanced_generic(type_name, pos + 1)
    return split_generic_args(inner) if inner else []


# --- name simplification ---


def strip_module_prefixes(text: str, prefixes: Iterable[str] = DEFAULT_STRIP_PREFIXES) -> str:
    """Remove the given namespace prefixes from ``text``.

    Prefixes are removed repeatedly until none remain, so the result is a fixed
    point: ``strip_module_prefixes(strip_module_prefixes(s)) == strip_module_prefixes(s)``.
    """
    ordered: list[str] = [p for p in prefixes if p]
    result: str = text
    while True:
        reduced: str = result
        for prefix in ordered:
            reduced = reduced.replace(prefix, "")
        if reduced == result:
            return result
        result = reduced


def simplify_type_path(text: str) -> str:
    """Remove every module path from the type names in ``text``.

    ``my_crate::shapes::Rectangle`` becomes ``Rectangle`` and
    ``cgp::prelude::IsProviderFor<a::B, c::D>`` becomes ``IsProviderFor<B, D>``.
    """
    result: str = text
    while True:
        reduced: str = _MODULE_PATH_RE.sub("", result)
        if reduced == result:
            return result
        result = reduced


def _backticked_after(text: str, marker: str) -> str | None:
    """Return the backtick-delimited text that follows ``marker`` (which ends with a backtick)."""
    pos: int = text.find(marker)
    if pos < 0:
        return None
    start: int = pos + len(marker)
    end: int = text.find("`", start)
    if end < 0:
        return None
    return text[start:end]


# --- components ---


def derive_provider_trait_name(component: str) -> str | None:
    """Return the provider trait a component is named after.

    ``AreaCalculatorComponent`` gives ``AreaCalculator``. Generic arguments of the
    component are dropped. Returns ``None`` when there is no ``Component`` suffix or
    nothing precedes it.
    """
    base: str = component.split("<", 1)[0].strip()
    if base.endswith(COMPONENT_SUFFIX):
        stripped: str = base[: -len(COMPONENT_SUFFIX)]
        if stripped:
            return stripped
    return None


def _component_info(component_type: str) -> ComponentInfo:
    return ComponentInfo(
        component_type=component_type,
        provider_trait=derive_provider_trait_name(component_type),
    )


def extract_component_from_can_use(text: str) -> ComponentInfo | None:
    """Return the component named by a ``CanUseComponent<...>`` marker."""
    pos: int = text.find(CAN_USE_MARKER)
    if pos < 0:
        return None
    component: str | None = extract_balanced_generic(text, pos + len(CAN_USE_MARKER))
    if not component:
        return None
    # `CanUseComponent<Component, Params>`: only the first argument names the component.
    return _component_info(split_generic_args(component)[0])


def extract_component_info(text: str) -> ComponentInfo | None:
    """Return the component mentioned in ``text``.

    The ``CanUseComponent<...>`` marker is tried first; otherwise the first word that
    follows the ``...Component`` naming convention is used.
    """
    info: ComponentInfo | None = extract_component_from_can_use(text)
    if info is not None:
        return info
    for match in _COMPONENT_WORD_RE.finditer(simplify_type_path(text)):
        word: str = match.group(1)
        if word == CAN_USE_MARKER[:-1]:
            continue
        return _component_info(word)
    return None


# --- fields ---


def _parse_symbol_length(text: str, start: int) -> int | None:
    comma: int = text.find(",", start)
    if comma < 0:
        return None
    raw: str = text[start:comma].strip()
    return int(raw) if raw.isdecimal() and raw.isascii() else None


def extract_field_name_from_symbol(text: str) -> tuple[str, bool, bool] | None:
    """Reconstruct a field name from a ``Symbol<N, Chars<'a', ...>>`` type.

    Only the part before ``but trait`` is considered: the compiler appends the
    implementations that do exist after it. A quoted identifier character (letter,
    digit or ``_``) is counted. An unquoted ``_`` is the compiler's elision
    placeholder, as is a quoted ``�``; a placeholder is shown as ``�`` and not
    counted.

    Args:
        text (str): Text containing the ``Symbol`` marker.

    Returns:
        tuple[str, bool, bool] | None: ``(field_name, is_complete, has_unknown_chars)``
        or ``None`` when no ``Symbol<N, ...>`` with at least one character is found.
        ``is_complete`` is True iff the counted characters equal ``N``.
    """
    relevant: str = text.split("but trait", 1)[0]
    pos: int = relevant.find(SYMBOL_MARKER)
    if pos < 0:
        return None
    start: int = pos + len(SYMBOL_MARKER)
    expected: int | None = _parse_symbol_length(relevant, start)
    if expected is None:
        return None

    shown: list[str] = []
    counted = 0
    has_unknown = False
    idx: int = relevant.find(CHARS_MARKER, start)
    while idx >= 0:
        cursor: int = idx + len(CHARS_MARKER)
        rest: str = relevant[cursor : cursor + 3]
        if rest.startswith("'") and len(rest) == 3 and rest[2] == "'":
            ch: str = rest[1]
            if ch.isalnum() or ch == "_":
                shown.append(ch)
                counted += 1
            else:
                shown.append(REDACTED_CHAR)
                has_unknown = True
        elif rest.startswith("_"):
            shown.append(REDACTED_CHAR)
            has_unknown = True
        idx = relevant.find(CHARS_MARKER, cursor)

    if not shown:
        return None
    return "".join(shown), counted == expected, has_unknown


def extract_field_info(raw: RawDiagnostic) -> FieldInfo | None:
    """Return the missing-field fact carried by a diagnostic.

    Help notes of the form ``the trait `HasField<...>` is not implemented for `T` ``
    are searched first, then a primary message of the form
    ``the trait bound `T: HasField<...>` is not satisfied``.
    """
    for child in raw.children_at(DiagnosticLevel.HELP):
        text: str = child.message
        if classify_text(text).kind != ShapeKind.FIELD or _NOT_IMPLEMENTED_FOR not in text:
            continue
        name: tuple[str, bool, bool] | None = extract_field_name_from_symbol(text)
        target: str | None = _backticked_after(text, _NOT_IMPLEMENTED_FOR)
        if name is not None and target:
            return FieldInfo(name[0], name[1], name[2], simplify_type_path(target).strip())

    if classify_text(raw.message).kind == ShapeKind.FIELD:
        bound: UnsatisfiedBound | None = extract_unsatisfied_bound(raw.message)
        name = extract_field_name_from_symbol(raw.message)
        if bound is not None and name is not None:
            return FieldInfo(name[0], name[1], name[2], bound.self_type)
    return None


def has_other_hasfield_implementations(raw: RawDiagnostic) -> bool:
    """Return True if help notes say the context implements ``HasField`` for other fields.

    When it does not, the context most likely lacks ``#[derive(HasField)]`` altogether.
    """
    return any(
        "but trait `HasField" in child.message
        or "the following other types implement trait" in child.message
        for child in raw.children_at(DiagnosticLevel.HELP)
    )


# --- relationships, delegation and bounds ---


def extract_provider_relationship(text: str) -> ProviderRelationship | None:
    """Return the fact in ``required for `P` to implement `IsProviderFor<Component, Context>` ``."""
    hop: DelegationHop | None = parse_delegation_note(text)
    if hop is None or hop.kind != HopKind.PROVIDER or not hop.component or not hop.context:
        return None
    return ProviderRelationship(
        provider_type=hop.subject,
        component=hop.component,
        context=hop.context,
    )


def extract_consumer_trait(text: str) -> str | None:
    """Return ``X`` from a ``required by a bound in `X` `` note."""
    name: str | None = _backticked_after(text, _REQUIRED_BY_BOUND)
    if not name:
        return None
    return simplify_type_path(name).strip() or None


def parse_delegation_note(text: str) -> DelegationHop | None:
    """Decode one ``required for `S` to implement `T` `` note.

    Module paths are removed from both types. The hop is tagged by what ``T`` is:
    ``CanUseComponent<K>``, ``IsProviderFor<K, Ctx>`` or any other trait.
    """
    subject: str | None = _backticked_after(text, _REQUIRED_FOR)
    if not subject:
        return None
    after: int = text.find(_REQUIRED_FOR) + len(_REQUIRED_FOR) + len(subject)
    if not text.startswith(_TO_IMPLEMENT, after):
        return None
    trait_ref: str | None = _backticked_after(text[after:], _TO_IMPLEMENT)
    if not trait_ref:
        return None

    subject = simplify_type_path(subject).strip()
    trait_ref = simplify_type_path(trait_ref).strip()

    if trait_ref.startswith(CAN_USE_MARKER):
        info: ComponentInfo | None = extract_component_from_can_use(trait_ref)
        return DelegationHop(
            subject=subject,
            trait_ref=trait_ref,
            kind=HopKind.CONSUMER_OF_COMPONENT,
            component=info.component_type if info else None,
            context=subject,
        )
    if trait_ref.startswith(PROVIDER_MARKER):
        args: str | None = extract_balanced_generic(trait_ref, len(PROVIDER_MARKER))
        parts: list[str] = split_generic_args(args) if args else []
        if len(parts) < 2:
            logger.trace("Unbalanced IsProviderFor in note: %r", text)
            return None
        return DelegationHop(
            subject=subject,
            trait_ref=trait_ref,
            kind=HopKind.PROVIDER,
            component=parts[0],
            context=parts[1],
        )
    return DelegationHop(subject=subject, trait_ref=trait_ref, kind=HopKind.TRAIT)


def extract_unsatisfied_bound(text: str) -> UnsatisfiedBound | None:
    """Return the bound named by an unsatisfied-bound message.

    Two spellings are recognized:
    ``the trait bound `P: T` is not satisfied`` and
    ``the trait `T` is not implemented for `P` ``.
    """
    inner: str | None = _backticked_after(text, _TRAIT_BOUND)
    if inner and text.find(_NOT_SATISFIED) >= 0:
        inner = simplify_type_path(inner)
        colon: int = _find_top_level_colon(inner)
        if colon > 0:
            self_type: str = inner[:colon].strip()
            trait_ref: str = inner[colon + 1 :].strip()
            if self_type and trait_ref:
                return UnsatisfiedBound(self_type=self_type, trait_ref=trait_ref)
        return None

    trait_part: str | None = _backticked_after(text, _THE_TRAIT)
    self_part: str | None = _backticked_after(text, _NOT_IMPLEMENTED_FOR)
    if trait_part and self_part:
        return UnsatisfiedBound(
            self_type=simplify_type_path(self_part).strip(),
            trait_ref=simplify_type_path(trait_part).strip(),
        )
    return None


def _find_top_level_colon(text: str) -> int:
    depth = 0
    for i, ch in enumerate(text):
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
        elif ch == ":" and depth == 0:
            return i
    return -1
