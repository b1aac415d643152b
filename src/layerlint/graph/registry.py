"""Boundary registry: validated layer ordering and type-boundary sets."""

from __future__ import annotations

import enum
from types import MappingProxyType
from typing import TYPE_CHECKING

from layerlint.catalog.builder import Layer
from layerlint.errors import ConfigError
from layerlint.findings import RULE_IDS, Severity

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence


class Boundary(enum.Enum):
    """Named partitions of type identifiers."""

    DTO = "DTO"
    VO = "VO"
    ENTITY = "Entity"

    @classmethod
    def parse(cls, name: str) -> Boundary:
        for member in cls:
            if member.value.lower() == name.strip().lower():
                return member
        msg = f"unknown boundary set '{name}', must be one of {[m.value for m in cls]}"
        raise ValueError(msg)


DEFAULT_ABSTRACTION_PAIRS: tuple[tuple[Layer, Layer], ...] = (
    (Layer.BUSINESS, Layer.DATA_ACCESS),
)


class BoundaryRegistry:
    """Pure configuration holder, validated on construction.

    Raises :class:`ConfigError` when the layer ordering repeats a layer or a
    type identifier is declared in more than one boundary set.
    """

    def __init__(
        self,
        layer_ordering: Sequence[Layer],
        boundary_sets: Mapping[Boundary, Iterable[str]] | None = None,
        *,
        abstraction_required_between: Iterable[tuple[Layer, Layer]] = DEFAULT_ABSTRACTION_PAIRS,
        severity_overrides: Mapping[str, Severity] | None = None,
    ) -> None:
        ordering = tuple(layer_ordering)
        if not ordering:
            msg = "layer ordering must name at least one layer"
            raise ConfigError(msg)
        if Layer.UNCLASSIFIED in ordering:
            msg = "layer ordering must not contain 'unclassified'"
            raise ConfigError(msg)

        index: dict[Layer, int] = {}
        for position, layer in enumerate(ordering):
            if layer in index:
                msg = (
                    f"layer ordering lists '{layer.value}' twice "
                    f"(positions {index[layer]} and {position})"
                )
                raise ConfigError(msg)
            index[layer] = position

        membership: dict[str, Boundary] = {}
        for boundary, type_ids in (boundary_sets or {}).items():
            for type_id in type_ids:
                previous = membership.get(type_id)
                if previous is not None and previous is not boundary:
                    msg = (
                        f"type '{type_id}' is declared in both the "
                        f"{previous.value} and {boundary.value} boundary sets"
                    )
                    raise ConfigError(msg)
                membership[type_id] = boundary

        pairs = frozenset(tuple(pair) for pair in abstraction_required_between)
        for upper, lower in sorted(pairs, key=lambda p: (p[0].value, p[1].value)):
            for layer in (upper, lower):
                if layer not in index:
                    msg = (
                        f"abstraction pair [{upper.value}, {lower.value}] names "
                        f"'{layer.value}', which is not in the layer ordering"
                    )
                    raise ConfigError(msg)

        overrides = dict(severity_overrides or {})
        for rule_id in sorted(overrides):
            if rule_id not in RULE_IDS:
                msg = (
                    f"severity override for unknown rule '{rule_id}', "
                    f"must be one of {sorted(RULE_IDS)}"
                )
                raise ConfigError(msg)

        self._ordering = ordering
        self._index = MappingProxyType(index)
        self._membership = MappingProxyType(membership)
        self._abstraction_pairs = pairs
        self._overrides = MappingProxyType(overrides)

    @property
    def layer_ordering(self) -> tuple[Layer, ...]:
        return self._ordering

    @property
    def abstraction_pairs(self) -> frozenset[tuple[Layer, Layer]]:
        return self._abstraction_pairs

    def layer_index(self, layer: Layer | str) -> int | None:
        """Position of *layer* in the ordering, or ``None`` if it takes no part."""
        if isinstance(layer, str):
            layer = Layer.parse(layer)
        return self._index.get(layer)

    def is_adjacent(self, i: int, j: int) -> bool:
        return abs(i - j) == 1

    def boundary_of(self, type_id: str) -> Boundary | None:
        return self._membership.get(type_id)

    def requires_abstraction(self, source: Layer, target: Layer) -> bool:
        return (source, target) in self._abstraction_pairs

    def severity_for(self, rule_id: str, default: Severity) -> Severity:
        return self._overrides.get(rule_id, default)
