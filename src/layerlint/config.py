"""Analyzer configuration: parse layerlint.yml into a registry and classification policy."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING

import yaml

from layerlint.catalog.builder import Heuristic, Layer
from layerlint.errors import ConfigError
from layerlint.findings import Severity
from layerlint.graph.registry import DEFAULT_ABSTRACTION_PAIRS, Boundary, BoundaryRegistry

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

logger = logging.getLogger(__name__)

SUPPORTED_SCHEMA_VERSIONS: frozenset[int] = frozenset({1})


@dataclass(frozen=True)
class AnalyzerConfig:
    """Everything the core consumes from configuration."""

    registry: BoundaryRegistry
    stereotypes: Mapping[str, Layer]
    heuristics: tuple[Heuristic, ...]


# ---------------------------------------------------------------------------
# YAML parsing
# ---------------------------------------------------------------------------


def _parse_layer(raw: object, context: str) -> Layer:
    try:
        return Layer.parse(str(raw))
    except ValueError as exc:
        msg = f"{context}: {exc}"
        raise ConfigError(msg) from exc


def _parse_layer_ordering(data: dict[str, object]) -> list[Layer]:
    raw = data.get("layer_ordering")
    if not isinstance(raw, list) or not raw:
        msg = "config: 'layer_ordering' must be a non-empty list"
        raise ConfigError(msg)
    return [_parse_layer(item, f"config: layer_ordering[{idx}]") for idx, item in enumerate(raw)]


def _parse_stereotypes(data: dict[str, object]) -> dict[str, Layer]:
    raw = data.get("stereotypes", {}) or {}
    if not isinstance(raw, dict):
        msg = "config: 'stereotypes' must be a mapping of tag to layer"
        raise ConfigError(msg)
    return {
        str(tag).lstrip("@"): _parse_layer(layer, f"config: stereotype '{tag}'")
        for tag, layer in raw.items()
    }


def _parse_heuristics(data: dict[str, object]) -> list[Heuristic]:
    raw = data.get("heuristics", []) or []
    if not isinstance(raw, list):
        msg = "config: 'heuristics' must be a list"
        raise ConfigError(msg)

    heuristics: list[Heuristic] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            msg = f"config: heuristic at index {idx} must be a mapping"
            raise ConfigError(msg)
        pattern = item.get("pattern")
        if pattern is None or not isinstance(pattern, str) or not pattern.strip():
            msg = f"config: heuristic at index {idx} missing required 'pattern' field"
            raise ConfigError(msg)
        if "layer" not in item:
            msg = f"config: heuristic at index {idx} missing required 'layer' field"
            raise ConfigError(msg)
        layer = _parse_layer(item["layer"], f"config: heuristic at index {idx}")
        heuristics.append(Heuristic(pattern=pattern, layer=layer))
    return heuristics


def _parse_boundary_sets(data: dict[str, object]) -> dict[Boundary, list[str]]:
    raw = data.get("boundary_sets", {}) or {}
    if not isinstance(raw, dict):
        msg = "config: 'boundary_sets' must be a mapping"
        raise ConfigError(msg)

    sets: dict[Boundary, list[str]] = {}
    for name, type_ids in raw.items():
        try:
            boundary = Boundary.parse(str(name))
        except ValueError as exc:
            msg = f"config: {exc}"
            raise ConfigError(msg) from exc
        if type_ids is None:
            type_ids = []
        if not isinstance(type_ids, list):
            msg = f"config: boundary set '{name}' must be a list of type identifiers"
            raise ConfigError(msg)
        sets.setdefault(boundary, []).extend(str(t) for t in type_ids)
    return sets


def _parse_abstraction_pairs(data: dict[str, object]) -> list[tuple[Layer, Layer]]:
    if "abstraction_required_between" not in data:
        return list(DEFAULT_ABSTRACTION_PAIRS)
    raw = data.get("abstraction_required_between") or []
    if not isinstance(raw, list):
        msg = "config: 'abstraction_required_between' must be a list of [layer, layer] pairs"
        raise ConfigError(msg)

    pairs: list[tuple[Layer, Layer]] = []
    for idx, pair in enumerate(raw):
        if not isinstance(pair, list) or len(pair) != 2:
            msg = f"config: abstraction_required_between[{idx}] must be a [layer, layer] pair"
            raise ConfigError(msg)
        context = f"config: abstraction_required_between[{idx}]"
        pairs.append((_parse_layer(pair[0], context), _parse_layer(pair[1], context)))
    return pairs


def _parse_severity_overrides(data: dict[str, object]) -> dict[str, Severity]:
    raw = data.get("severity_overrides", {}) or {}
    if not isinstance(raw, dict):
        msg = "config: 'severity_overrides' must be a mapping of rule id to severity"
        raise ConfigError(msg)

    overrides: dict[str, Severity] = {}
    for rule_id, severity in raw.items():
        try:
            overrides[str(rule_id)] = Severity.parse(str(severity))
        except ValueError as exc:
            msg = f"config: severity override for '{rule_id}': {exc}"
            raise ConfigError(msg) from exc
    return overrides


def parse_config(data: object) -> AnalyzerConfig:
    """Validate an already-decoded configuration mapping.

    Raises :class:`ConfigError` on any schema or consistency problem, before
    any catalog or graph work can start.
    """
    if not isinstance(data, dict):
        msg = "config must be a YAML mapping"
        raise ConfigError(msg)

    version = data.get("version")
    if version is None:
        msg = "config: missing required 'version' field"
        raise ConfigError(msg)
    if (
        not isinstance(version, int)
        or isinstance(version, bool)
        or version not in SUPPORTED_SCHEMA_VERSIONS
    ):
        msg = (
            f"config: unsupported version {version}, "
            f"expected one of {sorted(SUPPORTED_SCHEMA_VERSIONS)}"
        )
        raise ConfigError(msg)

    ordering = _parse_layer_ordering(data)
    stereotypes = _parse_stereotypes(data)
    heuristics = _parse_heuristics(data)

    registry = BoundaryRegistry(
        ordering,
        _parse_boundary_sets(data),
        abstraction_required_between=_parse_abstraction_pairs(data),
        severity_overrides=_parse_severity_overrides(data),
    )

    # Classification may only target layers that take part in the ordering.
    configured = set(registry.layer_ordering)
    for tag, layer in stereotypes.items():
        if layer not in configured:
            msg = f"config: stereotype '{tag}' maps to '{layer.value}', not in layer_ordering"
            raise ConfigError(msg)
    for heuristic in heuristics:
        if heuristic.layer not in configured:
            msg = (
                f"config: heuristic '{heuristic.pattern}' maps to "
                f"'{heuristic.layer.value}', not in layer_ordering"
            )
            raise ConfigError(msg)

    logger.debug(
        "Config: %d layers, %d stereotypes, %d heuristics",
        len(registry.layer_ordering),
        len(stereotypes),
        len(heuristics),
    )
    return AnalyzerConfig(
        registry=registry,
        stereotypes=MappingProxyType(stereotypes),
        heuristics=tuple(heuristics),
    )


def load_config(config_path: Path) -> AnalyzerConfig:
    """Read and validate a YAML configuration file."""
    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
        msg = f"Cannot read config {config_path}: {exc}"
        raise ConfigError(msg) from exc
    return parse_config(data)
