"""Component catalog: turn symbol records into classified, immutable components."""

from __future__ import annotations

import enum
import fnmatch
import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING

from layerlint.concurrency import Deadline, map_with_deadline
from layerlint.errors import InternalError
from layerlint.findings import UNRESOLVED_CLASSIFICATION, Severity, Violation

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from layerlint.catalog.symbols import Operation, SourceLocation, SymbolRecord

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


class Layer(enum.Enum):
    """The closed set of architecture tiers a component can belong to."""

    PRESENTATION = "presentation"
    BUSINESS = "business"
    DATA_ACCESS = "data_access"
    PERSISTENCE = "persistence"
    DATABASE = "database"
    UNCLASSIFIED = "unclassified"

    @classmethod
    def parse(cls, name: str) -> Layer:
        """Normalize ``DataAccess``, ``data-access`` or ``Data Access`` to a member.

        ``unclassified`` is not a configurable layer and is rejected.
        """
        normalized = _CAMEL_BOUNDARY_RE.sub("_", name.strip())
        normalized = re.sub(r"[\s\-]+", "_", normalized).lower()
        try:
            layer = cls(normalized)
        except ValueError:
            layer = None
        if layer is None or layer is cls.UNCLASSIFIED:
            valid = [m.value for m in cls if m is not cls.UNCLASSIFIED]
            msg = f"unknown layer '{name}', must be one of {valid}"
            raise ValueError(msg)
        return layer


STORAGE_LAYERS: frozenset[Layer] = frozenset(
    {Layer.DATA_ACCESS, Layer.PERSISTENCE, Layer.DATABASE}
)

BY_STEREOTYPE = "stereotype"
BY_HEURISTIC = "heuristic"
NOT_CLASSIFIED = "unclassified"


@dataclass(frozen=True)
class Heuristic:
    """A name pattern that classifies components into a layer."""

    pattern: str
    layer: Layer

    def matches(self, name: str) -> bool:
        return fnmatch.fnmatchcase(name, self.pattern)


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying one component, with what decided it."""

    layer: Layer
    source: str  # "stereotype" | "heuristic" | "unclassified"
    detail: str | None = None  # the stereotype tag or heuristic pattern


@dataclass(frozen=True)
class Component:
    """A named structural unit with its resolved layer."""

    id: str
    name: str
    kind: str
    abstract: bool
    stereotype: str | None
    location: SourceLocation
    operations: tuple[Operation, ...]
    classification: Classification

    @property
    def layer(self) -> Layer:
        return self.classification.layer

    @property
    def is_classified(self) -> bool:
        return self.classification.layer is not Layer.UNCLASSIFIED

    @property
    def raised_errors(self) -> frozenset[str]:
        """Every error type declared by any of the component's operations."""
        return frozenset(err for op in self.operations for err in op.raised_errors)


@dataclass(frozen=True)
class Catalog:
    """The finished component set of one analysis pass."""

    components: Mapping[str, Component]
    diagnostics: tuple[Violation, ...] = ()

    def get(self, component_id: str) -> Component | None:
        return self.components.get(component_id)

    def __contains__(self, component_id: object) -> bool:
        return component_id in self.components

    def __len__(self) -> int:
        return len(self.components)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def classify(
    name: str,
    stereotype: str | None,
    stereotypes: Mapping[str, Layer],
    heuristics: Sequence[Heuristic],
) -> Classification:
    """Assign a layer: explicit stereotype first, then the first matching heuristic."""
    if stereotype is not None:
        tag = stereotype.lstrip("@")
        layer = stereotypes.get(tag)
        if layer is not None:
            return Classification(layer=layer, source=BY_STEREOTYPE, detail=tag)

    for heuristic in heuristics:
        if heuristic.matches(name):
            return Classification(
                layer=heuristic.layer, source=BY_HEURISTIC, detail=heuristic.pattern
            )

    return Classification(layer=Layer.UNCLASSIFIED, source=NOT_CLASSIFIED)


def classify_component(
    component: Component,
    stereotypes: Mapping[str, Layer],
    heuristics: Sequence[Heuristic],
) -> Classification:
    """Re-run classification on an already-built component."""
    return classify(component.name, component.stereotype, stereotypes, heuristics)


def _build_component(
    record: SymbolRecord,
    stereotypes: Mapping[str, Layer],
    heuristics: Sequence[Heuristic],
) -> Component:
    return Component(
        id=record.id,
        name=record.name,
        kind=record.kind,
        abstract=record.abstract,
        stereotype=record.stereotype,
        location=record.location,
        operations=record.operations,
        classification=classify(record.name, record.stereotype, stereotypes, heuristics),
    )


def build_catalog(
    records: Iterable[SymbolRecord],
    *,
    stereotypes: Mapping[str, Layer],
    heuristics: Sequence[Heuristic],
    deadline: Deadline | None = None,
    max_workers: int | None = None,
) -> Catalog:
    """Classify every record and merge the results into a :class:`Catalog`.

    Records are classified in parallel; the merge happens once all units are
    done.  A duplicate identifier is an :class:`InternalError`.  Components
    that end up unclassified stay in the catalog and get one
    ``unresolved-classification`` info diagnostic each.
    """
    built = map_with_deadline(
        lambda record: _build_component(record, stereotypes, heuristics),
        records,
        deadline=deadline or Deadline(None),
        stage="catalog",
        max_workers=max_workers,
    )

    components: dict[str, Component] = {}
    for component in built:
        if component.id in components:
            msg = f"duplicate component identifier '{component.id}' in symbol records"
            raise InternalError(msg)
        components[component.id] = component

    diagnostics = tuple(
        Violation(
            rule_id=UNRESOLVED_CLASSIFICATION,
            severity=Severity.INFO,
            component=component.id,
            location=component.location,
            evidence=(),
            message=(
                f"Component '{component.id}' matches no stereotype or naming heuristic; "
                f"excluded from layer-ordering rules"
            ),
        )
        for component in components.values()
        if not component.is_classified
    )

    logger.debug(
        "Catalog: %d components, %d unclassified", len(components), len(diagnostics)
    )
    return Catalog(components=MappingProxyType(components), diagnostics=diagnostics)
