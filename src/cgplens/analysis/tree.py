# topmark:header:start
#
#   project      : CgpLens
#   file         : tree.py
#   file_relpath : src/cgplens/analysis/tree.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Build and render the dependency tree of a CGP diagnostic entry.

The tree reads top-down as "what the check needs":

    check trait → consumer trait → provider → getter trait → field

Requirement edges come from the delegation chains: in each absorbed diagnostic the
compiler lists ``required for `S` to implement `T` `` notes innermost first, so every
note is required by the note after it, and the first note requires the unsatisfied
leaf (the missing field, or a provider bound reported as not satisfied). Name
matching between consumer traits and provider traits is only used when no such edge
names the consumer trait of a component.

A requirement graph can be diamond-shaped: two components may need the same consumer
trait. The builder threads an explicit ``rendered`` set through the recursion and
emits a reference leaf (``(*)``) for a consumer trait that was already expanded.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Final

from cgplens.analysis.model import DelegationHop, HopKind
from cgplens.analysis.patterns import (
    CAN_USE_MARKER,
    PROVIDER_MARKER,
    derive_provider_trait_name,
    extract_balanced_generic,
    parse_delegation_note,
    simplify_type_path,
    split_generic_args,
    strip_module_prefixes,
)
from cgplens.analysis.root_cause import (
    deduplicate_notes,
    deduplicate_relationships,
    inner_providers,
)
from cgplens.config.logging import get_logger
from cgplens.constants import (
    DEFAULT_MAX_NOTE_LENGTH,
    DEFAULT_STRIP_PREFIXES,
    REFERENCE_MARK,
    TREE_BRANCH,
    TREE_LAST,
    TREE_PIPE,
    TREE_SPACE,
    UNSATISFIED_MARK,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from cgplens.analysis.database import DiagnosticEntry
    from cgplens.analysis.model import FieldInfo, ProviderRelationship, UnsatisfiedBound
    from cgplens.config.logging import CgpLensLogger

logger: CgpLensLogger = get_logger(__name__)

# Words that say nothing about what a trait does.
_NOISE_WORDS: Final[frozenset[str]] = frozenset({"Can", "Has", "Is", "Use", "Get"})
_WORD_RE: Final[re.Pattern[str]] = re.compile(r"[A-Z][a-z0-9]*")

# Requirement node keys: ("hop", subject, trait), ("field", name, target), ("bound", self, trait).
ReqKey = tuple[str, str, str]


class NodeKind(str, Enum):
    """Role of a node in the dependency tree."""

    CHECK = "check"
    CONSUMER = "consumer"
    PROVIDER = "provider"
    GETTER = "getter"
    FIELD = "field"

    @property
    def suffix(self) -> str | None:
        """Parenthesized role shown after the description (none for fields)."""
        return {
            NodeKind.CHECK: "check trait",
            NodeKind.CONSUMER: "consumer trait",
            NodeKind.PROVIDER: "provider trait",
            NodeKind.GETTER: "getter trait",
            NodeKind.FIELD: None,
        }[self]


@dataclass
class DependencyNode:
    """One requirement in the tree.

    Attributes:
        description (str): Human-readable requirement, without role suffix or marks.
        kind (NodeKind): Role of the node.
        satisfied (bool | None): False for the failing leaves, True for informational
            nodes known to hold, None when unknown.
        is_reference (bool): Stands for a subtree already expanded elsewhere.
        children (list[DependencyNode]): Requirements of this node, in order.
        name (str | None): The bare trait, provider or field name.
        component (str | None): The component a consumer or provider node stands for.
    """

    description: str
    kind: NodeKind
    satisfied: bool | None = None
    is_reference: bool = False
    children: list[DependencyNode] = field(default_factory=lambda: [])
    name: str | None = None
    component: str | None = None

    def walk(self) -> Iterator[DependencyNode]:
        """Yield this node and its descendants depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def depth(self) -> int:
        """Number of edges on the longest path down from this node."""
        return max((c.depth() + 1 for c in self.children), default=0)


def _hop_key(hop: DelegationHop) -> ReqKey:
    return ("hop", hop.subject, hop.trait_ref)


def _words(name: str) -> set[str]:
    return {w for w in _WORD_RE.findall(name) if w not in _NOISE_WORDS}


def provider_trait_ref(component: str, context: str) -> str:
    """Spell the provider trait of ``component`` applied to ``context``."""
    return f"{derive_provider_trait_name(component) or component}<{context}>"


@dataclass
class RequirementGraph:
    """Explicit "requires" edges recovered from an entry's delegation chains."""

    context: str
    check_trait: str | None = None
    hops: dict[ReqKey, DelegationHop] = field(default_factory=lambda: {})
    edges: dict[ReqKey, list[ReqKey]] = field(default_factory=lambda: {})
    bounds: dict[ReqKey, UnsatisfiedBound] = field(default_factory=lambda: {})
    field_info: FieldInfo | None = None
    relationships: list[ProviderRelationship] = field(default_factory=lambda: [])

    @classmethod
    def from_entry(cls, entry: DiagnosticEntry, context: str) -> RequirementGraph:
        """Build the graph of one entry."""
        graph = cls(
            context=context,
            check_trait=entry.consumer_trait,
            field_info=entry.field_info,
            relationships=deduplicate_relationships(entry.provider_relationships),
        )
        for chain in entry.delegation_chains:
            keys: list[ReqKey] = []
            for note in chain.notes:
                hop: DelegationHop | None = parse_delegation_note(note)
                if hop is None:
                    continue
                key: ReqKey = _hop_key(hop)
                graph.hops.setdefault(key, hop)
                keys.append(key)
            for outer, inner in zip(keys[1:], keys):
                graph._add_edge(outer, inner)
            if not keys:
                continue
            if chain.has_field and entry.field_info is not None:
                leaf: ReqKey = ("field", entry.field_info.field_name, entry.field_info.target_type)
                graph._add_edge(keys[0], leaf)
            elif chain.bound is not None:
                leaf = ("bound", chain.bound.self_type, chain.bound.trait_ref)
                graph.bounds.setdefault(leaf, chain.bound)
                graph._add_edge(keys[0], leaf)
        return graph

    def _add_edge(self, outer: ReqKey, inner: ReqKey) -> None:
        deps: list[ReqKey] = self.edges.setdefault(outer, [])
        if inner != outer and inner not in deps:
            deps.append(inner)

    def requires(self, key: ReqKey) -> list[ReqKey]:
        """Direct requirements of ``key`` in first-seen order."""
        return self.edges.get(key, [])

    def is_getter(self, key: ReqKey, _seen: frozenset[ReqKey] = frozenset()) -> bool:
        """Whether ``key`` is a getter trait.

        A getter is a trait on the context that leads to the field, or a ``Has*`` trait
        with no provider below it.
        """
        hop: DelegationHop | None = self.hops.get(key)
        if hop is None or hop.kind != HopKind.TRAIT or hop.subject != self.context:
            return False
        deps: list[ReqKey] = self.requires(key)
        if any(d[0] == "field" for d in deps):
            return True
        seen: frozenset[ReqKey] = _seen | {key}
        return hop.trait_name.startswith("Has") and all(
            d[0] == "hop" and d not in seen and self.is_getter(d, seen) for d in deps
        )

    def _consumes_component(self, key: ReqKey, component: str) -> bool:
        """Whether the trait hop ``key`` directly requires the provider side of ``component``."""
        provider_trait: str | None = derive_provider_trait_name(component)
        for dep in self.requires(key):
            if dep[0] == "bound":
                if provider_trait and self.bounds[dep].trait_name == provider_trait:
                    return True
                continue
            hop: DelegationHop | None = self.hops.get(dep)
            if hop is None:
                continue
            if hop.kind == HopKind.PROVIDER and hop.component == component:
                return True
            if (
                hop.kind == HopKind.TRAIT
                and hop.subject != self.context
                and provider_trait
                and hop.trait_name == provider_trait
            ):
                return True
        return False

    def _consumer_candidates(self) -> list[ReqKey]:
        return [
            k
            for k, h in self.hops.items()
            if h.kind == HopKind.TRAIT
            and h.subject == self.context
            and h.trait_name != self.check_trait
            and not self.is_getter(k)
        ]

    def consumer_hop_for(self, component: str) -> ReqKey | None:
        """Return the consumer trait hop of ``component``.

        An explicit edge wins: a trait on the context that directly requires the
        component's provider. Otherwise capitalized words of the provider trait name
        are matched against candidate consumer traits not already bound to another
        component; this fallback is best effort.
        """
        candidates: list[ReqKey] = self._consumer_candidates()
        for key in candidates:
            if self._consumes_component(key, component):
                return key

        provider_trait: str | None = derive_provider_trait_name(component)
        if not provider_trait:
            return None
        wanted: set[str] = _words(provider_trait)
        bound_elsewhere: set[ReqKey] = {
            k
            for k in candidates
            for other in self._known_components()
            if other != component and self._consumes_component(k, other)
        }
        best: ReqKey | None = None
        best_score = 0
        for key in candidates:
            if key in bound_elsewhere:
                continue
            score: int = len(wanted & _words(self.hops[key].trait_name))
            if score > best_score:
                best, best_score = key, score
        if best is not None:
            logger.trace("Matched consumer %s to %s by name", self.hops[best].trait_ref, component)
        return best

    def _known_components(self) -> set[str]:
        comps: set[str] = {h.component for h in self.hops.values() if h.component}
        comps.update(r.component for r in self.relationships)
        comps.update(
            f"{b.trait_name}Component" for b in self.bounds.values() if b.self_type != self.context
        )
        return comps

    def can_use_hop_for(self, component: str) -> ReqKey | None:
        """Return the ``CanUseComponent<component>`` hop on the context, if any."""
        for key, hop in self.hops.items():
            if (
                hop.kind == HopKind.CONSUMER_OF_COMPONENT
                and hop.component == component
                and hop.subject == self.context
            ):
                return key
        return None

    def provider_for(self, component: str) -> ProviderRelationship | None:
        """Resolve the provider of ``component``.

        An exact component match wins over a provider trait name match.
        """
        for rel in self.relationships:
            if rel.component == component:
                return rel
        provider_trait: str | None = derive_provider_trait_name(component)
        if provider_trait:
            for rel in self.relationships:
                if derive_provider_trait_name(rel.component) == provider_trait:
                    return rel
        return None

    def top_level_components(self) -> list[str]:
        """Components of ``CanUseComponent`` hops that nothing else requires."""
        required: set[ReqKey] = {d for deps in self.edges.values() for d in deps}
        return [
            h.component
            for k, h in self.hops.items()
            if h.kind == HopKind.CONSUMER_OF_COMPONENT and h.component and k not in required
        ]


# --- tree construction ---


def build_dependency_tree(entry: DiagnosticEntry) -> DependencyNode | None:
    """Build the dependency tree of a finalized entry.

    Returns:
        DependencyNode | None: The tree rooted at the check trait applied to the
        context type, or ``None`` when either is unknown or no component can be
        placed under the root; callers then fall back to the flat note list.
    """
    context: str | None = entry.context_type
    check: str | None = entry.consumer_trait
    if not context or not check:
        return None
    graph: RequirementGraph = RequirementGraph.from_entry(entry, context)
    components: list[str] = [c.component_type for c in entry.components]
    if not components:
        components = graph.top_level_components()
    if not components:
        return None

    root = DependencyNode(f"`{check}` for `{context}`", NodeKind.CHECK, name=check)
    rendered: set[str] = set()
    for component in components:
        root.children.append(_component_node(graph, component, rendered, frozenset()))
    return root


def _component_node(
    graph: RequirementGraph,
    component: str,
    rendered: set[str],
    path: frozenset[ReqKey],
) -> DependencyNode:
    """Node for the consumer side of ``component``, with its provider below it."""
    consumer_key: ReqKey | None = graph.consumer_hop_for(component)
    name: str | None = None
    if consumer_key is not None:
        name = graph.hops[consumer_key].trait_ref
        description: str = f"`{name}` for `{graph.context}`"
        ref_key: str = name
    else:
        description = f"consumer trait of `{component}` for `{graph.context}`"
        ref_key = f"<{component}>"

    if ref_key in rendered:
        return DependencyNode(
            description, NodeKind.CONSUMER, is_reference=True, name=name, component=component
        )
    rendered.add(ref_key)
    node = DependencyNode(description, NodeKind.CONSUMER, name=name, component=component)

    anchor: ReqKey | None = consumer_key or graph.can_use_hop_for(component)
    if anchor is not None and anchor not in path:
        node.children = _expand(graph, anchor, rendered, path | {anchor})
    if not node.children:
        rel: ProviderRelationship | None = graph.provider_for(component)
        if rel is not None:
            trait_ref: str = f"{PROVIDER_MARKER}{rel.component}, {rel.context}>"
            key: ReqKey = ("hop", rel.provider_type, trait_ref)
            node.children.append(
                _provider_node(
                    graph,
                    rel.provider_type,
                    provider_trait_ref(component, graph.context),
                    key if key in graph.hops else None,
                    component,
                    rendered,
                    path,
                )
            )
    if not node.children:
        node.satisfied = False
    return node


def _provider_node(
    graph: RequirementGraph,
    provider: str,
    trait_ref: str,
    key: ReqKey | None,
    component: str | None,
    rendered: set[str],
    path: frozenset[ReqKey],
) -> DependencyNode:
    """Node for a provider implementing ``trait_ref``, expanded through its requirements."""
    node = DependencyNode(
        f"`{trait_ref}` for provider `{provider}`",
        NodeKind.PROVIDER,
        name=provider,
        component=component,
    )
    if key is not None and key not in path:
        node.children = _expand(graph, key, rendered, path | {key})
    for inner in inner_providers(provider):
        if any(c.kind == NodeKind.PROVIDER and c.name == inner for c in node.children):
            continue
        node.children.append(
            DependencyNode(
                f"`{trait_ref}` for inner provider `{inner}`",
                NodeKind.PROVIDER,
                satisfied=True,
                name=inner,
                component=component,
            )
        )
    return node


def _expand(
    graph: RequirementGraph,
    key: ReqKey,
    rendered: set[str],
    path: frozenset[ReqKey],
) -> list[DependencyNode]:
    """Children for the requirements of ``key``.

    Hop requirements are expanded first; field and bound leaves follow. A bound leaf
    naming a provider that already appears as a child is dropped.
    """
    children: list[DependencyNode] = []
    leaves: list[ReqKey] = []
    for dep in graph.requires(key):
        if dep in path:
            continue
        if dep[0] != "hop":
            leaves.append(dep)
            continue
        hop: DelegationHop = graph.hops[dep]
        if hop.kind == HopKind.TRAIT and hop.trait_name == graph.check_trait:
            # The check trait itself: its requirements belong to the current node.
            children.extend(_expand(graph, dep, rendered, path | {dep}))
            continue
        if hop.kind == HopKind.PROVIDER and hop.component and hop.context:
            children.append(
                _provider_node(
                    graph,
                    hop.subject,
                    provider_trait_ref(hop.component, hop.context),
                    dep,
                    hop.component,
                    rendered,
                    path,
                )
            )
        elif hop.kind == HopKind.CONSUMER_OF_COMPONENT and hop.component:
            children.append(_component_node(graph, hop.component, rendered, path))
        elif hop.subject != graph.context:
            children.append(
                _provider_node(graph, hop.subject, hop.trait_ref, dep, None, rendered, path)
            )
        elif graph.is_getter(dep):
            getter = DependencyNode(
                f"`{hop.trait_ref}` for `{graph.context}`", NodeKind.GETTER, name=hop.trait_ref
            )
            getter.children = _expand(graph, dep, rendered, path | {dep})
            children.append(getter)
        else:
            description: str = f"`{hop.trait_ref}` for `{graph.context}`"
            if hop.trait_ref in rendered:
                children.append(
                    DependencyNode(
                        description, NodeKind.CONSUMER, is_reference=True, name=hop.trait_ref
                    )
                )
                continue
            rendered.add(hop.trait_ref)
            consumer = DependencyNode(description, NodeKind.CONSUMER, name=hop.trait_ref)
            consumer.children = _expand(graph, dep, rendered, path | {dep})
            children.append(consumer)

    for leaf in leaves:
        if leaf[0] == "field":
            children.append(
                DependencyNode(
                    f"field `{leaf[1]}` on `{leaf[2]}`",
                    NodeKind.FIELD,
                    satisfied=False,
                    name=leaf[1],
                )
            )
            continue
        bound: UnsatisfiedBound = graph.bounds[leaf]
        if any(c.kind == NodeKind.PROVIDER and c.name == bound.self_type for c in children):
            continue
        if bound.self_type == graph.context:
            children.append(
                DependencyNode(
                    f"`{bound.trait_ref}` for `{graph.context}`",
                    NodeKind.CONSUMER,
                    satisfied=False,
                    name=bound.trait_ref,
                )
            )
        else:
            children.append(
                DependencyNode(
                    f"`{bound.trait_ref}` for provider `{bound.self_type}`",
                    NodeKind.PROVIDER,
                    satisfied=False,
                    name=bound.self_type,
                    component=f"{bound.trait_name}Component",
                )
            )
    return children


# --- tree queries ---


def consumer_reference_counts(tree: DependencyNode) -> dict[str, tuple[int, int]]:
    """Return ``{consumer name: (expanded count, reference count)}`` over ``tree``."""
    counts: dict[str, tuple[int, int]] = {}
    for node in tree.walk():
        if node.kind != NodeKind.CONSUMER:
            continue
        name: str = node.name or f"<{node.component}>"
        expanded, refs = counts.get(name, (0, 0))
        counts[name] = (expanded, refs + 1) if node.is_reference else (expanded + 1, refs)
    return counts


def missing_check_suggestions(tree: DependencyNode, context: str) -> list[str]:
    """Suggest ``check_components!`` entries that would expose hidden failures.

    When the compiler stops at an unsatisfied provider bound, a dedicated check of the
    corresponding component makes it report the missing dependencies of that provider.
    Components already checked at the root are not suggested.
    """
    checked: set[str] = {c.component for c in tree.children if c.component}
    suggestions: list[str] = []

    def visit(node: DependencyNode, consumer: str | None) -> None:
        if node.kind == NodeKind.CONSUMER and node.name:
            consumer = node.name
        if node.satisfied is False and node.kind == NodeKind.PROVIDER and not node.children:
            component: str | None = node.component
            if component is None and consumer and consumer.startswith("Can"):
                component = f"{consumer[3:]}Component"
            if component and component not in checked:
                text: str = (
                    f"Add a check that `{context}` can use `{component}` using "
                    "`check_components!` to get further details on the missing dependencies."
                )
                if text not in suggestions:
                    suggestions.append(text)
        for child in node.children:
            visit(child, consumer)

    visit(tree, None)
    return suggestions


def higher_order_hints(tree: DependencyNode) -> list[str]:
    """Describe the higher-order providers appearing in ``tree``."""
    hints: list[str] = []
    for node in tree.walk():
        if node.kind != NodeKind.PROVIDER or node.satisfied is True or not node.name:
            continue
        for inner in inner_providers(node.name):
            text: str = (
                f"`{node.name}` is a higher-order provider wrapping `{inner}`; "
                "failures reported for it usually originate in the inner provider."
            )
            if text not in hints:
                hints.append(text)
    return hints


# --- rendering ---


def node_label(node: DependencyNode) -> str:
    """One line of text for ``node``: description, role, then marks."""
    label: str = node.description
    suffix: str | None = node.kind.suffix
    if suffix:
        label += f" ({suffix})"
    if node.satisfied is False:
        label += UNSATISFIED_MARK
    if node.is_reference:
        label += REFERENCE_MARK
    return label


def render_tree(node: DependencyNode) -> list[str]:
    """Render a tree with box-drawing branch glyphs, one line per node."""
    lines: list[str] = [node_label(node)]
    _render_children(node.children, "", lines)
    return lines


def _render_children(children: list[DependencyNode], prefix: str, lines: list[str]) -> None:
    for i, child in enumerate(children):
        last: bool = i == len(children) - 1
        lines.append(prefix + (TREE_LAST if last else TREE_BRANCH) + node_label(child))
        if not child.is_reference:
            _render_children(child.children, prefix + (TREE_SPACE if last else TREE_PIPE), lines)


# --- flat fallback ---


def _replace_marker(text: str, marker: str, replace: Callable[[str], str]) -> str:
    """Replace the first ``marker<...>`` in ``text`` (and its enclosing backticks)."""
    pos: int = text.find(marker)
    if pos < 0:
        return text
    args: str | None = extract_balanced_generic(text, pos + len(marker))
    if args is None:
        return text
    end: int = text.find(args, pos) + len(args)
    close: int = text.find(">", end)
    end = close + 1 if close >= 0 else len(text)
    before: str = text[:pos]
    after: str = text[end:]
    if before.endswith("`") and after.startswith("`"):
        before, after = before[:-1], after[1:]
    return before + replace(args) + after


def simplify_delegation_notes(
    entry: DiagnosticEntry,
    *,
    strip_prefixes: Iterable[str] = DEFAULT_STRIP_PREFIXES,
    max_note_length: int = DEFAULT_MAX_NOTE_LENGTH,
) -> list[str]:
    """Return the entry's delegation notes in CGP wording, for the flat fallback.

    Duplicate notes are dropped, as are notes about providers wrapped by a
    higher-order provider. ``IsProviderFor<K, Ctx>`` is spelled as the provider trait
    of ``K`` and ``CanUseComponent<K>`` as its consumer trait. Notes longer than
    ``max_note_length`` are cut at the first elided generic list.
    """
    prefixes: tuple[str, ...] = tuple(strip_prefixes)
    kept_providers: set[str] = {
        r.provider_type for r in deduplicate_relationships(entry.provider_relationships)
    }
    context: str | None = entry.context_type
    graph: RequirementGraph | None = (
        RequirementGraph.from_entry(entry, context) if context else None
    )

    def provider_wording(args: str) -> str:
        component: str = split_generic_args(args)[0] if args else args
        name: str | None = derive_provider_trait_name(component)
        return f"the provider trait `{name}`" if name else f"the provider trait for `{component}`"

    def consumer_wording(args: str) -> str:
        component: str = split_generic_args(args)[0] if args else args
        key: ReqKey | None = graph.consumer_hop_for(component) if graph else None
        if graph is not None and key is not None:
            return f"the consumer trait `{graph.hops[key].trait_ref}`"
        return f"the consumer trait for `{component}`"

    result: list[str] = []
    for note in deduplicate_notes(entry.delegation_notes):
        hop: DelegationHop | None = parse_delegation_note(note)
        if (
            hop is not None
            and hop.kind == HopKind.PROVIDER
            and kept_providers
            and hop.subject not in kept_providers
        ):
            continue
        text: str = simplify_type_path(strip_module_prefixes(note, prefixes))
        text = _replace_marker(text, PROVIDER_MARKER, provider_wording)
        text = _replace_marker(text, CAN_USE_MARKER, consumer_wording)
        if len(text) > max_note_length:
            cut: int = text.find(", ...>")
            text = text[:cut] + "..." if cut >= 0 else text[: max_note_length - 3] + "..."
        result.append(text)
    return result
