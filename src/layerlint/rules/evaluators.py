"""Rule evaluators: each is a pure function ``(graph, registry) -> list[Violation]``.

Evaluators only read the graph and registry.  They never consult one
another, so an edge that trips several rules is reported by each of them.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

from layerlint.catalog.builder import STORAGE_LAYERS, Layer
from layerlint.catalog.symbols import CALL, FIELD_REFERENCE, PARAMETER_TYPE, RETURN_TYPE
from layerlint.findings import (
    CROSS_LAYER_INVOCATION,
    DATA_BOUNDARY,
    ENTITY_LEAKAGE,
    EXCEPTION_BOUNDARY,
    INTERFACE_ABSTRACTION,
    REVERSE_DEPENDENCY,
    UNIDIRECTIONAL_DEPENDENCY,
    Severity,
    Violation,
)
from layerlint.graph.registry import Boundary

if TYPE_CHECKING:
    from layerlint.catalog.builder import Component
    from layerlint.graph.builder import DependencyEdge, DependencyGraph
    from layerlint.graph.registry import BoundaryRegistry

_STORAGE_SHAPED_LAYERS: frozenset[Layer] = frozenset({Layer.PERSISTENCE, Layer.DATABASE})

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _degraded(severity: Severity) -> Severity:
    """Severity used when a type's boundary is inferred rather than declared."""
    return Severity.WARNING if severity is Severity.ERROR else severity


def _ranked_edges(
    graph: DependencyGraph, registry: BoundaryRegistry
) -> list[tuple[DependencyEdge, int, int]]:
    """Edges whose endpoints both sit in the configured ordering, with their indexes."""
    ranked: list[tuple[DependencyEdge, int, int]] = []
    for edge in graph.edges:
        if edge.opaque:
            continue
        src_idx = registry.layer_index(graph.layer_of(edge.source))
        dst_idx = registry.layer_index(graph.layer_of(edge.target))
        if src_idx is None or dst_idx is None:
            continue
        ranked.append((edge, src_idx, dst_idx))
    return ranked


def _describe(graph: DependencyGraph, component_id: str, index: int) -> str:
    return f"'{component_id}' (layer '{graph.layer_of(component_id).value}', index {index})"


def _suspected_boundary(graph: DependencyGraph, type_id: str) -> Boundary | None:
    """Guess the shape of a type no boundary set declares, from the layer it lives in."""
    component = graph.catalog.get(type_id)
    if component is None or not component.is_classified:
        return None
    if component.layer in _STORAGE_SHAPED_LAYERS:
        return Boundary.ENTITY
    if component.layer is Layer.PRESENTATION:
        return Boundary.DTO
    return None


def _type_edges(
    graph: DependencyGraph, source: str, type_id: str, kind: str
) -> tuple[DependencyEdge, ...]:
    """Edges from *source* to *type_id*, preferring the given kind.

    Empty when the type is not a catalogued component or the front end
    recorded no reference to it.  Signature types come from the operation
    record itself, so such findings stand on the operation alone.
    """
    preferred = tuple(e for e in graph.outgoing(source, kind) if e.target == type_id)
    if preferred:
        return preferred[:1]
    return tuple(sorted(graph.edges_between(source, type_id)))[:1]


# ---------------------------------------------------------------------------
# Ordering rules
# ---------------------------------------------------------------------------


def evaluate_unidirectional_dependency(
    graph: DependencyGraph, registry: BoundaryRegistry
) -> list[Violation]:
    """Flag every edge that points to a shallower layer."""
    severity = registry.severity_for(UNIDIRECTIONAL_DEPENDENCY, Severity.ERROR)
    violations: list[Violation] = []
    for edge, src_idx, dst_idx in _ranked_edges(graph, registry):
        if dst_idx >= src_idx:
            continue
        violations.append(
            Violation(
                rule_id=UNIDIRECTIONAL_DEPENDENCY,
                severity=severity,
                component=edge.source,
                location=graph.component(edge.source).location,
                evidence=(edge,),
                message=(
                    f"Layer violation: {_describe(graph, edge.source, src_idx)} depends on "
                    f"{_describe(graph, edge.target, dst_idx)} via {edge.kind}. "
                    f"Dependencies must flow to an equal or deeper layer."
                ),
            )
        )
    return violations


def evaluate_reverse_dependency(
    graph: DependencyGraph, registry: BoundaryRegistry
) -> list[Violation]:
    """Flag upward edges into the adjacent shallower layer that close a mutual reference.

    The evidence is the cycle: the upward edge followed by one edge back.
    """
    severity = registry.severity_for(REVERSE_DEPENDENCY, Severity.ERROR)
    violations: list[Violation] = []
    for edge, src_idx, dst_idx in _ranked_edges(graph, registry):
        if dst_idx >= src_idx or not registry.is_adjacent(src_idx, dst_idx):
            continue
        back_edges = sorted(graph.edges_between(edge.target, edge.source))
        if not back_edges:
            continue
        back = back_edges[0]
        violations.append(
            Violation(
                rule_id=REVERSE_DEPENDENCY,
                severity=severity,
                component=edge.source,
                location=graph.component(edge.source).location,
                evidence=(edge, back),
                message=(
                    f"Reverse dependency: {_describe(graph, edge.source, src_idx)} depends on "
                    f"{_describe(graph, edge.target, dst_idx)} via {edge.kind}, which "
                    f"depends back via {back.kind}: "
                    f"{edge.source} → {edge.target} → {back.target}"
                ),
            )
        )
    return violations


def evaluate_cross_layer_invocation(
    graph: DependencyGraph, registry: BoundaryRegistry
) -> list[Violation]:
    """Flag downward edges that skip at least one intermediate layer."""
    severity = registry.severity_for(CROSS_LAYER_INVOCATION, Severity.WARNING)
    violations: list[Violation] = []
    for edge, src_idx, dst_idx in _ranked_edges(graph, registry):
        if dst_idx - src_idx <= 1:
            continue
        skipped = [
            layer.value for layer in registry.layer_ordering[src_idx + 1 : dst_idx]
        ]
        violations.append(
            Violation(
                rule_id=CROSS_LAYER_INVOCATION,
                severity=severity,
                component=edge.source,
                location=graph.component(edge.source).location,
                evidence=(edge,),
                message=(
                    f"Layer skip: {_describe(graph, edge.source, src_idx)} depends on "
                    f"{_describe(graph, edge.target, dst_idx)} via {edge.kind}, "
                    f"bypassing {', '.join(skipped)}"
                ),
            )
        )
    return violations


def evaluate_interface_abstraction(
    graph: DependencyGraph, registry: BoundaryRegistry
) -> list[Violation]:
    """Flag field/parameter references to concrete components across abstraction pairs."""
    severity = registry.severity_for(INTERFACE_ABSTRACTION, Severity.ERROR)
    violations: list[Violation] = []
    for edge in graph.edges:
        if edge.opaque or edge.kind not in (FIELD_REFERENCE, PARAMETER_TYPE):
            continue
        source = graph.component(edge.source)
        target = graph.component(edge.target)
        if target.abstract or not registry.requires_abstraction(source.layer, target.layer):
            continue
        violations.append(
            Violation(
                rule_id=INTERFACE_ABSTRACTION,
                severity=severity,
                component=edge.source,
                location=source.location,
                evidence=(edge,),
                message=(
                    f"'{source.id}' ({source.layer.value}) holds a {edge.kind} to concrete "
                    f"'{target.id}' ({target.layer.value}); depend on an abstraction instead"
                ),
            )
        )
    return violations


# ---------------------------------------------------------------------------
# Type-boundary rules
# ---------------------------------------------------------------------------


def _signature_types(component: Component) -> list[tuple[str, str, str, str]]:
    """``(operation, role, type_id, edge_kind)`` for every parameter and return type."""
    types: list[tuple[str, str, str, str]] = []
    for op in component.operations:
        for param in op.param_types:
            types.append((op.name, "parameter", param, PARAMETER_TYPE))
        if op.return_type is not None:
            types.append((op.name, "return", op.return_type, RETURN_TYPE))
    return types


_FORBIDDEN_SHAPES: dict[Layer, Boundary] = {
    Layer.PRESENTATION: Boundary.ENTITY,
    Layer.BUSINESS: Boundary.DTO,
}


def evaluate_data_boundary(
    graph: DependencyGraph, registry: BoundaryRegistry
) -> list[Violation]:
    """Presentation signatures must not carry Entities, Business signatures must not carry DTOs.

    A type no boundary set declares is judged by the layer it lives in, and
    reported at most as a warning.
    """
    severity = registry.severity_for(DATA_BOUNDARY, Severity.ERROR)
    violations: list[Violation] = []
    for component in graph.components.values():
        forbidden = _FORBIDDEN_SHAPES.get(component.layer)
        if forbidden is None:
            continue
        for op_name, role, type_id, kind in _signature_types(component):
            declared = registry.boundary_of(type_id)
            if declared is forbidden:
                found_severity, qualifier = severity, ""
            elif declared is None and _suspected_boundary(graph, type_id) is forbidden:
                found_severity, qualifier = _degraded(severity), "undeclared, inferred "
            else:
                continue
            violations.append(
                Violation(
                    rule_id=DATA_BOUNDARY,
                    severity=found_severity,
                    component=component.id,
                    location=component.location,
                    evidence=_type_edges(graph, component.id, type_id, kind),
                    operation=op_name,
                    message=(
                        f"Operation '{component.id}.{op_name}' ({component.layer.value}) "
                        f"uses {role} type '{type_id}' ({qualifier}{forbidden.value})"
                    ),
                )
            )
    return violations


def evaluate_entity_leakage(
    graph: DependencyGraph, registry: BoundaryRegistry
) -> list[Violation]:
    """Presentation operations must not return an Entity, directly or one field away."""
    severity = registry.severity_for(ENTITY_LEAKAGE, Severity.ERROR)
    violations: list[Violation] = []

    def _shape(type_id: str) -> Severity | None:
        declared = registry.boundary_of(type_id)
        if declared is Boundary.ENTITY:
            return severity
        if declared is None and _suspected_boundary(graph, type_id) is Boundary.ENTITY:
            return _degraded(severity)
        return None

    for component in graph.components.values():
        if component.layer is not Layer.PRESENTATION:
            continue
        for op in component.operations:
            returned = op.return_type
            if returned is None:
                continue
            return_edges = _type_edges(graph, component.id, returned, RETURN_TYPE)

            direct = _shape(returned)
            if direct is not None:
                violations.append(
                    Violation(
                        rule_id=ENTITY_LEAKAGE,
                        severity=direct,
                        component=component.id,
                        location=component.location,
                        evidence=return_edges,
                        operation=op.name,
                        message=(
                            f"Operation '{component.id}.{op.name}' returns entity "
                            f"'{returned}' to callers"
                        ),
                    )
                )
                continue

            for field_edge in sorted(graph.outgoing(returned, FIELD_REFERENCE)):
                through = _shape(field_edge.target)
                if through is None:
                    continue
                violations.append(
                    Violation(
                        rule_id=ENTITY_LEAKAGE,
                        severity=through,
                        component=component.id,
                        location=component.location,
                        evidence=(*return_edges, field_edge),
                        operation=op.name,
                        message=(
                            f"Operation '{component.id}.{op.name}' returns '{returned}', "
                            f"whose field exposes entity '{field_edge.target}'"
                        ),
                    )
                )
    return violations


# ---------------------------------------------------------------------------
# Exception boundary
# ---------------------------------------------------------------------------


def _untranslated_call_path(
    graph: DependencyGraph,
    start: str,
    targets: frozenset[str],
    translators: frozenset[str],
) -> list[DependencyEdge] | None:
    """Shortest call path from *start* to any of *targets* avoiding translators.

    Breadth-first over ``call`` edges in sorted order, so the chosen path is
    deterministic.
    """
    parents: dict[str, DependencyEdge] = {}
    visited = {start}
    queue: deque[str] = deque([start])
    while queue:
        current = queue.popleft()
        for edge in sorted(graph.outgoing(current, CALL)):
            nxt = edge.target
            if nxt in visited:
                continue
            visited.add(nxt)
            parents[nxt] = edge
            if nxt in targets:
                path = [edge]
                while path[0].source != start:
                    path.insert(0, parents[path[0].source])
                return path
            if nxt not in translators:
                queue.append(nxt)
    return None


def evaluate_exception_boundary(
    graph: DependencyGraph, registry: BoundaryRegistry
) -> list[Violation]:
    """Flag storage-level errors that reach Presentation signatures untranslated.

    An error type is storage-level when a Data Access, Persistence or
    Database operation declares it.  A component on the call path
    translates when it declares some error type that is not storage-level.
    Errors are only reported when a call path actually connects the two.
    """
    severity = registry.severity_for(EXCEPTION_BOUNDARY, Severity.ERROR)

    raisers: dict[str, set[str]] = {}
    for component in graph.components.values():
        if component.layer in STORAGE_LAYERS:
            for error in component.raised_errors:
                raisers.setdefault(error, set()).add(component.id)
    if not raisers:
        return []

    translators = frozenset(
        component.id
        for component in graph.components.values()
        if component.raised_errors - raisers.keys()
    )

    violations: list[Violation] = []
    for component in graph.components.values():
        if component.layer is not Layer.PRESENTATION:
            continue
        for op in component.operations:
            # Errors leaking along the same path are one finding.
            by_path: dict[tuple[DependencyEdge, ...], list[str]] = {}
            for error in sorted(set(op.raised_errors)):
                if error not in raisers:
                    continue
                path = _untranslated_call_path(
                    graph, component.id, frozenset(raisers[error]), translators
                )
                if path is not None:
                    by_path.setdefault(tuple(path), []).append(error)

            for path, errors in by_path.items():
                chain = " → ".join([component.id, *(e.target for e in path)])
                names = ", ".join(f"'{e}'" for e in errors)
                noun = "error" if len(errors) == 1 else "errors"
                violations.append(
                    Violation(
                        rule_id=EXCEPTION_BOUNDARY,
                        severity=severity,
                        component=component.id,
                        location=component.location,
                        evidence=path,
                        operation=op.name,
                        message=(
                            f"Operation '{component.id}.{op.name}' declares storage {noun} "
                            f"{names} raised by '{path[-1].target}' with no translating "
                            f"component on the call path {chain}"
                        ),
                    )
                )
    return violations
