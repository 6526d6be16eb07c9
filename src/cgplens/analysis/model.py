# topmark:header:start
#
#   project      : CgpLens
#   file         : model.py
#   file_relpath : src/cgplens/analysis/model.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Facts extracted from CGP compiler diagnostics.

All types in this module are immutable values. They are produced by
`cgplens.analysis.patterns` and accumulated by `cgplens.analysis.database`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True, slots=True)
class SourceLocation:
    """Primary location of a diagnostic; part of the grouping key."""

    file: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass(frozen=True, slots=True)
class ComponentInfo:
    """A CGP component name and the provider trait it is named after.

    Attributes:
        component_type (str): The component type, e.g. ``AreaCalculatorComponent``.
        provider_trait (str | None): ``component_type`` without its ``Component``
            suffix, e.g. ``AreaCalculator``; ``None`` when the suffix is absent.
    """

    component_type: str
    provider_trait: str | None


@dataclass(frozen=True, slots=True)
class FieldInfo:
    """A field required through ``HasField`` that the context type does not provide.

    Attributes:
        field_name (str): Reconstructed name; elided characters appear as ``�``.
        is_complete (bool): True iff the number of recovered characters equals the
            length declared by the ``Symbol<N, ...>`` marker.
        has_unknown_chars (bool): True when the compiler elided at least one character.
        target_type (str): The context type missing the field, without module path.
    """

    field_name: str
    is_complete: bool
    has_unknown_chars: bool
    target_type: str


@dataclass(frozen=True, slots=True)
class ProviderRelationship:
    """A provider type required to implement a component for a context type."""

    provider_type: str
    component: str
    context: str


@dataclass(frozen=True, slots=True)
class UnsatisfiedBound:
    """A trait bound the compiler reports as not satisfied.

    For example ``RectangleArea: AreaCalculator<Rectangle>``.
    """

    self_type: str
    trait_ref: str

    @property
    def trait_name(self) -> str:
        """The trait path without generic arguments."""
        return self.trait_ref.split("<", 1)[0].strip()


class HopKind(str, Enum):
    """What a delegation hop asks of its subject type.

    Attributes:
        CONSUMER_OF_COMPONENT: ``Ctx: CanUseComponent<Component>``.
        PROVIDER: ``Provider: IsProviderFor<Component, Ctx>``.
        TRAIT: any other trait, e.g. a consumer trait, a getter or a provider trait.
    """

    CONSUMER_OF_COMPONENT = "consumer-of-component"
    PROVIDER = "provider"
    TRAIT = "trait"


@dataclass(frozen=True, slots=True)
class DelegationHop:
    """One ``required for `S` to implement `T` `` note, decoded.

    Attributes:
        subject (str): The implementing type ``S``.
        trait_ref (str): The trait ``T`` including generic arguments.
        kind (HopKind): Classification of ``T``.
        component (str | None): Component named by ``CanUseComponent`` / ``IsProviderFor``.
        context (str | None): Context type named by ``IsProviderFor``.
    """

    subject: str
    trait_ref: str
    kind: HopKind
    component: str | None = None
    context: str | None = None

    @property
    def trait_name(self) -> str:
        """The trait path without generic arguments."""
        return self.trait_ref.split("<", 1)[0].strip()


class ShapeKind(str, Enum):
    """Up-front classification of a piece of diagnostic text."""

    CAPABILITY = "capability"
    FIELD = "field"
    RELATIONSHIP = "relationship"
    DELEGATION = "delegation"
    CHECK_BOUND = "check-bound"
    UNSATISFIED = "unsatisfied"
    PLAIN = "plain"


@dataclass(frozen=True, slots=True)
class TextShape:
    """Classification of a text plus the marker offset where extraction starts.

    ``start`` is the index just past the opening ``<`` of the marker for marker
    shapes, and ``-1`` for shapes without a generic marker.
    """

    kind: ShapeKind
    text: str
    start: int = -1


@dataclass(frozen=True, slots=True)
class DelegationChain:
    """The delegation notes of one absorbed diagnostic, in emission order.

    The compiler lists hops innermost first: each note is required by the note
    after it, and the first note requires the unsatisfied leaf. The leaf is either
    the missing field (``has_field``) or an unsatisfied provider bound (``bound``).
    """

    notes: tuple[str, ...]
    has_field: bool = False
    bound: UnsatisfiedBound | None = None
