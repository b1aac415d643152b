"""Dependency graph: typed, read-only edges between catalog components."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING

from layerlint.concurrency import Deadline, map_with_deadline
from layerlint.errors import InternalError
from layerlint.findings import UNRESOLVED_REFERENCE, Severity, Violation

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from layerlint.catalog.builder import Catalog, Component, Layer
    from layerlint.catalog.symbols import SymbolRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class DependencyEdge:
    """A directed ``(source, target, kind)`` relation.

    ``opaque`` is set when either endpoint is unclassified: the edge is a
    real dependency but ordering rules cannot judge it.
    """

    source: str
    target: str
    kind: str
    opaque: bool = False

    def __str__(self) -> str:
        return f"{self.source} -[{self.kind}]-> {self.target}"


_EMPTY: tuple[DependencyEdge, ...] = ()


class DependencyGraph:
    """Immutable adjacency view over a :class:`Catalog`.

    Neighbor lookups by component, and by component plus edge kind, are
    dictionary hits on tuples precomputed at construction.
    """

    def __init__(self, catalog: Catalog, edges: Iterable[DependencyEdge]) -> None:
        unique: dict[DependencyEdge, None] = {}
        for edge in edges:
            for endpoint in (edge.source, edge.target):
                if endpoint not in catalog:
                    msg = f"edge {edge} references component '{endpoint}' missing from catalog"
                    raise InternalError(msg)
            unique.setdefault(edge, None)

        self._catalog = catalog
        self._edges = tuple(unique)

        outgoing: dict[str, list[DependencyEdge]] = {}
        incoming: dict[str, list[DependencyEdge]] = {}
        outgoing_by_kind: dict[tuple[str, str], list[DependencyEdge]] = {}
        incoming_by_kind: dict[tuple[str, str], list[DependencyEdge]] = {}
        for edge in self._edges:
            outgoing.setdefault(edge.source, []).append(edge)
            incoming.setdefault(edge.target, []).append(edge)
            outgoing_by_kind.setdefault((edge.source, edge.kind), []).append(edge)
            incoming_by_kind.setdefault((edge.target, edge.kind), []).append(edge)

        self._outgoing = _freeze(outgoing)
        self._incoming = _freeze(incoming)
        self._outgoing_by_kind = _freeze(outgoing_by_kind)
        self._incoming_by_kind = _freeze(incoming_by_kind)

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def components(self) -> Mapping[str, Component]:
        return self._catalog.components

    @property
    def edges(self) -> tuple[DependencyEdge, ...]:
        return self._edges

    def component(self, component_id: str) -> Component:
        try:
            return self._catalog.components[component_id]
        except KeyError:
            msg = f"component '{component_id}' is not in the catalog"
            raise InternalError(msg) from None

    def layer_of(self, component_id: str) -> Layer:
        return self.component(component_id).layer

    def outgoing(self, component_id: str, kind: str | None = None) -> tuple[DependencyEdge, ...]:
        if kind is None:
            return self._outgoing.get(component_id, _EMPTY)
        return self._outgoing_by_kind.get((component_id, kind), _EMPTY)

    def incoming(self, component_id: str, kind: str | None = None) -> tuple[DependencyEdge, ...]:
        if kind is None:
            return self._incoming.get(component_id, _EMPTY)
        return self._incoming_by_kind.get((component_id, kind), _EMPTY)

    def edges_between(self, source: str, target: str) -> tuple[DependencyEdge, ...]:
        return tuple(e for e in self.outgoing(source) if e.target == target)

    def __len__(self) -> int:
        return len(self._edges)


def _freeze(
    index: dict[str, list[DependencyEdge]] | dict[tuple[str, str], list[DependencyEdge]],
) -> Mapping[object, tuple[DependencyEdge, ...]]:
    return MappingProxyType({key: tuple(value) for key, value in index.items()})


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------


def _resolve_record(
    record: SymbolRecord, catalog: Catalog
) -> tuple[list[DependencyEdge], list[Violation]]:
    """Resolve one record's references against the catalog."""
    edges: list[DependencyEdge] = []
    dropped: list[Violation] = []
    source = catalog.get(record.id)

    for ref in record.references:
        target = catalog.get(ref.target)
        if source is None or target is None:
            missing = record.id if source is None else ref.target
            logger.debug("Dropping reference %s -[%s]-> %s", record.id, ref.kind, ref.target)
            dropped.append(
                Violation(
                    rule_id=UNRESOLVED_REFERENCE,
                    severity=Severity.INFO,
                    component=record.id,
                    location=record.location,
                    evidence=(),
                    message=(
                        f"Reference '{record.id}' -[{ref.kind}]-> '{ref.target}' dropped: "
                        f"'{missing}' is not a known component"
                    ),
                )
            )
            continue
        edges.append(
            DependencyEdge(
                source=source.id,
                target=target.id,
                kind=ref.kind,
                opaque=not (source.is_classified and target.is_classified),
            )
        )
    return edges, dropped


def build_graph(
    catalog: Catalog,
    records: Sequence[SymbolRecord],
    *,
    deadline: Deadline | None = None,
    max_workers: int | None = None,
) -> tuple[DependencyGraph, tuple[Violation, ...]]:
    """Resolve every reference fact into an edge over the finished catalog.

    Returns the graph and the ``unresolved-reference`` diagnostics for the
    references that were dropped.
    """
    resolved = map_with_deadline(
        lambda record: _resolve_record(record, catalog),
        records,
        deadline=deadline or Deadline(None),
        stage="graph",
        max_workers=max_workers,
    )

    edges: list[DependencyEdge] = []
    diagnostics: list[Violation] = []
    for record_edges, record_dropped in resolved:
        edges.extend(record_edges)
        diagnostics.extend(record_dropped)

    graph = DependencyGraph(catalog, edges)
    logger.debug("Graph: %d edges, %d references dropped", len(graph), len(diagnostics))
    return graph, tuple(diagnostics)
