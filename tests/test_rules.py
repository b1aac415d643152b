"""Tests for layerlint.rules — the seven rule evaluators and the engine."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Any

import pytest

from layerlint.catalog.builder import build_catalog
from layerlint.catalog.symbols import (
    CALL,
    FIELD_REFERENCE,
    PARAMETER_TYPE,
    RETURN_TYPE,
    parse_symbols,
)
from layerlint.concurrency import Deadline
from layerlint.config import parse_config
from layerlint.errors import AnalysisTimeout
from layerlint.findings import (
    CROSS_LAYER_INVOCATION,
    DATA_BOUNDARY,
    ENTITY_LEAKAGE,
    EXCEPTION_BOUNDARY,
    INTERFACE_ABSTRACTION,
    REVERSE_DEPENDENCY,
    UNIDIRECTIONAL_DEPENDENCY,
    Severity,
)
from layerlint.graph.builder import DependencyEdge, build_graph
from layerlint.report.reporter import build_report, sort_key
from layerlint.rules.engine import DEFAULT_RULES, evaluate_rules
from layerlint.rules.evaluators import (
    evaluate_cross_layer_invocation,
    evaluate_data_boundary,
    evaluate_entity_leakage,
    evaluate_exception_boundary,
    evaluate_interface_abstraction,
    evaluate_reverse_dependency,
    evaluate_unidirectional_dependency,
)

if TYPE_CHECKING:
    from layerlint.graph.builder import DependencyGraph
    from layerlint.graph.registry import BoundaryRegistry


def _setup(
    raw: list[dict[str, Any]], config_data: dict[str, Any]
) -> tuple[DependencyGraph, BoundaryRegistry]:
    """Build the graph and registry for a list of raw symbol records."""
    config = parse_config(config_data)
    records = parse_symbols(raw)
    catalog = build_catalog(records, stereotypes=config.stereotypes, heuristics=config.heuristics)
    graph, _ = build_graph(catalog, records)
    return graph, config.registry


def _ref(kind: str, target: str) -> dict[str, str]:
    return {"kind": kind, "target": target}


def _op(
    name: str,
    *,
    params: list[str] | None = None,
    returns: str | None = None,
    raises: list[str] | None = None,
) -> dict[str, Any]:
    return {"name": name, "params": params or [], "returns": returns, "raises": raises or []}


# ---------------------------------------------------------------------------
# TestUnidirectionalDependency
# ---------------------------------------------------------------------------


class TestUnidirectionalDependency:
    """Edges must flow to an equal or deeper layer."""

    def test_upward_edge_is_error_citing_that_edge(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {"id": "OrderRepository", "references": [_ref(CALL, "OrderController")]},
                {"id": "OrderController"},
            ],
            base_config,
        )
        violations = evaluate_unidirectional_dependency(graph, registry)
        assert len(violations) == 1
        v = violations[0]
        assert v.severity is Severity.ERROR
        assert v.component == "OrderRepository"
        assert v.evidence == (DependencyEdge("OrderRepository", "OrderController", CALL),)

    def test_downward_and_same_layer_edges_pass(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {"id": "OrderController", "references": [_ref(CALL, "OrderService")]},
                {"id": "OrderService", "references": [_ref(CALL, "BillingService")]},
                {"id": "BillingService"},
            ],
            base_config,
        )
        assert evaluate_unidirectional_dependency(graph, registry) == []

    def test_edges_touching_unclassified_are_not_judged(
        self, base_config: dict[str, Any]
    ) -> None:
        graph, registry = _setup(
            [
                {"id": "OrderRepository", "references": [_ref(CALL, "Helper")]},
                {"id": "Helper", "references": [_ref(CALL, "OrderController")]},
                {"id": "OrderController"},
            ],
            base_config,
        )
        assert evaluate_unidirectional_dependency(graph, registry) == []

    def test_every_upward_edge_is_reported(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {"id": "OrderController", "references": [_ref(CALL, "OrderService")]},
                {
                    "id": "OrderService",
                    "references": [_ref(CALL, "OrderController"), _ref(CALL, "OrderRepository")],
                },
                {
                    "id": "OrderRepository",
                    "references": [
                        _ref(PARAMETER_TYPE, "OrderService"),
                        _ref(RETURN_TYPE, "OrderController"),
                    ],
                },
                {"id": "OrderDao", "references": [_ref(FIELD_REFERENCE, "OrderRepository")]},
            ],
            base_config,
        )
        found = evaluate_unidirectional_dependency(graph, registry) + evaluate_reverse_dependency(
            graph, registry
        )
        cited = {v.evidence[0] for v in found}
        for edge in graph.edges:
            src = registry.layer_index(graph.layer_of(edge.source))
            dst = registry.layer_index(graph.layer_of(edge.target))
            assert src is not None
            assert dst is not None
            if dst < src:
                assert edge in cited


# ---------------------------------------------------------------------------
# TestReverseDependency
# ---------------------------------------------------------------------------


class TestReverseDependency:
    """Mutual references between adjacent layers carry a cycle chain."""

    def test_mutual_adjacent_reference(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {"id": "OrderService", "references": [_ref(CALL, "OrderController")]},
                {"id": "OrderController", "references": [_ref(FIELD_REFERENCE, "OrderService")]},
            ],
            base_config,
        )
        reverse = evaluate_reverse_dependency(graph, registry)
        assert len(reverse) == 1
        assert reverse[0].severity is Severity.ERROR
        assert reverse[0].evidence == (
            DependencyEdge("OrderService", "OrderController", CALL),
            DependencyEdge("OrderController", "OrderService", FIELD_REFERENCE),
        )
        # Rules do not suppress each other.
        assert len(evaluate_unidirectional_dependency(graph, registry)) == 1

    def test_upward_edge_without_back_edge(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {"id": "OrderService", "references": [_ref(CALL, "OrderController")]},
                {"id": "OrderController"},
            ],
            base_config,
        )
        assert evaluate_reverse_dependency(graph, registry) == []

    def test_non_adjacent_mutual_reference(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {"id": "OrderRepository", "references": [_ref(CALL, "OrderController")]},
                {"id": "OrderController", "references": [_ref(CALL, "OrderRepository")]},
            ],
            base_config,
        )
        assert evaluate_reverse_dependency(graph, registry) == []
        assert len(evaluate_unidirectional_dependency(graph, registry)) == 1
        assert len(evaluate_cross_layer_invocation(graph, registry)) == 1


# ---------------------------------------------------------------------------
# TestCrossLayerInvocation
# ---------------------------------------------------------------------------


class TestCrossLayerInvocation:
    """Downward edges must not skip layers."""

    def test_skip_reports_once_with_single_edge(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {"id": "OrderController", "references": [_ref(CALL, "OrderDao")]},
                {"id": "OrderDao"},
            ],
            base_config,
        )
        violations = evaluate_cross_layer_invocation(graph, registry)
        assert len(violations) == 1
        v = violations[0]
        assert v.severity is Severity.WARNING
        assert v.evidence == (DependencyEdge("OrderController", "OrderDao", CALL),)
        assert "business, data_access" in v.message

    def test_adjacent_is_fine(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {"id": "OrderController", "references": [_ref(CALL, "OrderService")]},
                {"id": "OrderService"},
            ],
            base_config,
        )
        assert evaluate_cross_layer_invocation(graph, registry) == []

    def test_severity_override(self, base_config: dict[str, Any]) -> None:
        base_config["severity_overrides"] = {CROSS_LAYER_INVOCATION: "error"}
        graph, registry = _setup(
            [
                {"id": "OrderController", "references": [_ref(CALL, "OrderRepository")]},
                {"id": "OrderRepository"},
            ],
            base_config,
        )
        (v,) = evaluate_cross_layer_invocation(graph, registry)
        assert v.severity is Severity.ERROR


# ---------------------------------------------------------------------------
# TestInterfaceAbstraction
# ---------------------------------------------------------------------------


class TestInterfaceAbstraction:
    """Configured layer pairs must depend on abstractions."""

    @pytest.mark.parametrize("kind", [FIELD_REFERENCE, PARAMETER_TYPE])
    def test_concrete_reference_is_error(self, base_config: dict[str, Any], kind: str) -> None:
        graph, registry = _setup(
            [
                {"id": "OrderService", "references": [_ref(kind, "OrderRepository")]},
                {"id": "OrderRepository"},
            ],
            base_config,
        )
        violations = evaluate_interface_abstraction(graph, registry)
        assert len(violations) == 1
        assert violations[0].severity is Severity.ERROR
        assert violations[0].evidence[0].kind == kind

    def test_call_edges_are_not_checked(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {"id": "OrderService", "references": [_ref(CALL, "OrderRepository")]},
                {"id": "OrderRepository"},
            ],
            base_config,
        )
        assert evaluate_interface_abstraction(graph, registry) == []

    def test_abstract_target_passes(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {"id": "OrderService", "references": [_ref(FIELD_REFERENCE, "OrderRepository")]},
                {"id": "OrderRepository", "kind": "interface"},
            ],
            base_config,
        )
        assert evaluate_interface_abstraction(graph, registry) == []

    def test_unconfigured_pair_passes(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {"id": "OrderController", "references": [_ref(FIELD_REFERENCE, "OrderService")]},
                {"id": "OrderService"},
            ],
            base_config,
        )
        assert evaluate_interface_abstraction(graph, registry) == []


# ---------------------------------------------------------------------------
# TestDataBoundary
# ---------------------------------------------------------------------------


class TestDataBoundary:
    """Presentation carries no Entities, Business carries no DTOs."""

    def test_presentation_entity_parameter(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {
                    "id": "OrderController",
                    "operations": [_op("create", params=["OrderEntity"], returns="OrderVO")],
                    "references": [_ref(PARAMETER_TYPE, "OrderEntity")],
                },
                {"id": "OrderEntity"},
            ],
            base_config,
        )
        violations = evaluate_data_boundary(graph, registry)
        assert len(violations) == 1
        v = violations[0]
        assert v.severity is Severity.ERROR
        assert v.operation == "create"
        assert v.evidence == (
            DependencyEdge("OrderController", "OrderEntity", PARAMETER_TYPE, opaque=True),
        )

    def test_business_dto_parameter(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [{"id": "OrderService", "operations": [_op("place", params=["OrderDTO"])]}],
            base_config,
        )
        violations = evaluate_data_boundary(graph, registry)
        assert len(violations) == 1
        assert violations[0].component == "OrderService"
        assert violations[0].evidence == ()

    def test_allowed_shapes(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {"id": "OrderController", "operations": [_op("create", params=["OrderDTO"])]},
                {"id": "OrderService", "operations": [_op("load", returns="OrderEntity")]},
            ],
            base_config,
        )
        assert evaluate_data_boundary(graph, registry) == []

    def test_undeclared_storage_type_degrades_to_warning(
        self, base_config: dict[str, Any]
    ) -> None:
        graph, registry = _setup(
            [
                {"id": "OrderController", "operations": [_op("show", returns="OrderDao")]},
                {"id": "OrderDao"},
            ],
            base_config,
        )
        (v,) = evaluate_data_boundary(graph, registry)
        assert v.severity is Severity.WARNING
        assert "inferred" in v.message


# ---------------------------------------------------------------------------
# TestEntityLeakage
# ---------------------------------------------------------------------------


class TestEntityLeakage:
    """Presentation operations must not hand out Entities."""

    def test_returning_entity_then_vo(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {
                    "id": "OrderController",
                    "operations": [_op("getX", returns="OrderEntity")],
                    "references": [_ref(RETURN_TYPE, "OrderEntity")],
                },
                {"id": "OrderEntity"},
            ],
            base_config,
        )
        leaks = evaluate_entity_leakage(graph, registry)
        assert len(leaks) == 1
        assert leaks[0].severity is Severity.ERROR
        assert leaks[0].operation == "getX"

        graph, registry = _setup(
            [
                {
                    "id": "OrderController",
                    "operations": [_op("getX", returns="OrderVO")],
                    "references": [_ref(RETURN_TYPE, "OrderVO")],
                },
                {"id": "OrderVO"},
                {"id": "OrderEntity"},
            ],
            base_config,
        )
        assert evaluate_rules(graph, registry) == []

    def test_entity_one_field_away(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {
                    "id": "OrderController",
                    "operations": [_op("getX", returns="OrderVO")],
                    "references": [_ref(RETURN_TYPE, "OrderVO")],
                },
                {"id": "OrderVO", "references": [_ref(FIELD_REFERENCE, "OrderEntity")]},
                {"id": "OrderEntity"},
            ],
            base_config,
        )
        (v,) = evaluate_entity_leakage(graph, registry)
        assert [e.kind for e in v.evidence] == [RETURN_TYPE, FIELD_REFERENCE]
        assert v.evidence[-1].target == "OrderEntity"

    def test_entity_return_reported_once_even_with_entity_fields(
        self, base_config: dict[str, Any]
    ) -> None:
        base_config["boundary_sets"]["Entity"].append("LineEntity")
        graph, registry = _setup(
            [
                {"id": "OrderController", "operations": [_op("getX", returns="OrderEntity")]},
                {"id": "OrderEntity", "references": [_ref(FIELD_REFERENCE, "LineEntity")]},
                {"id": "LineEntity"},
            ],
            base_config,
        )
        assert len(evaluate_entity_leakage(graph, registry)) == 1

    def test_operations_sharing_the_return_edge_report_once(
        self, base_config: dict[str, Any]
    ) -> None:
        graph, registry = _setup(
            [
                {
                    "id": "OrderController",
                    "operations": [
                        _op("get", returns="OrderEntity"),
                        _op("latest", returns="OrderEntity"),
                    ],
                    "references": [_ref(RETURN_TYPE, "OrderEntity")],
                },
                {"id": "OrderEntity"},
            ],
            base_config,
        )
        leaks = evaluate_entity_leakage(graph, registry)
        assert len(leaks) == 2
        (kept,) = build_report(leaks).violations
        assert kept.operation == "get"

    def test_business_layer_may_return_entities(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [{"id": "OrderService", "operations": [_op("load", returns="OrderEntity")]}],
            base_config,
        )
        assert evaluate_entity_leakage(graph, registry) == []

    def test_undeclared_storage_type_degrades_to_warning(
        self, base_config: dict[str, Any]
    ) -> None:
        graph, registry = _setup(
            [
                {"id": "OrderController", "operations": [_op("show", returns="OrderDao")]},
                {"id": "OrderDao"},
            ],
            base_config,
        )
        (v,) = evaluate_entity_leakage(graph, registry)
        assert v.severity is Severity.WARNING


# ---------------------------------------------------------------------------
# TestExceptionBoundary
# ---------------------------------------------------------------------------


def _repository(raises: list[str]) -> dict[str, Any]:
    return {"id": "OrderRepository", "operations": [_op("find", raises=raises)]}


class TestExceptionBoundary:
    """Storage errors must be translated before reaching Presentation."""

    def test_errors_sharing_a_path_are_one_finding(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {
                    "id": "OrderController",
                    "operations": [_op("get", raises=["SQLException", "LockTimeout"])],
                    "references": [_ref(CALL, "OrderRepository")],
                },
                _repository(["SQLException", "LockTimeout"]),
            ],
            base_config,
        )
        (v,) = evaluate_exception_boundary(graph, registry)
        assert "'LockTimeout', 'SQLException'" in v.message

    def test_direct_call_leaks_storage_error(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {
                    "id": "OrderController",
                    "operations": [_op("get", raises=["SQLException"])],
                    "references": [_ref(CALL, "OrderRepository")],
                },
                _repository(["SQLException"]),
            ],
            base_config,
        )
        (v,) = evaluate_exception_boundary(graph, registry)
        assert v.severity is Severity.ERROR
        assert v.operation == "get"
        assert v.evidence == (DependencyEdge("OrderController", "OrderRepository", CALL),)
        assert "SQLException" in v.message

    def test_translating_service_stops_propagation(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {
                    "id": "OrderController",
                    "operations": [_op("get", raises=["SQLException"])],
                    "references": [_ref(CALL, "OrderService")],
                },
                {
                    "id": "OrderService",
                    "operations": [_op("load", raises=["OrderNotFound"])],
                    "references": [_ref(CALL, "OrderRepository")],
                },
                _repository(["SQLException"]),
            ],
            base_config,
        )
        assert evaluate_exception_boundary(graph, registry) == []

    def test_pass_through_service_reports_full_chain(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {
                    "id": "OrderController",
                    "operations": [_op("get", raises=["SQLException"])],
                    "references": [_ref(CALL, "OrderService")],
                },
                {
                    "id": "OrderService",
                    "operations": [_op("load", raises=["SQLException"])],
                    "references": [_ref(CALL, "OrderRepository")],
                },
                _repository(["SQLException"]),
            ],
            base_config,
        )
        (v,) = evaluate_exception_boundary(graph, registry)
        assert v.evidence == (
            DependencyEdge("OrderController", "OrderService", CALL),
            DependencyEdge("OrderService", "OrderRepository", CALL),
        )

    def test_untranslated_side_path_is_found(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {
                    "id": "OrderController",
                    "operations": [_op("get", raises=["SQLException"])],
                    "references": [_ref(CALL, "BillingService"), _ref(CALL, "OrderService")],
                },
                {
                    "id": "BillingService",
                    "operations": [_op("bill", raises=["BillingFailed"])],
                    "references": [_ref(CALL, "OrderRepository")],
                },
                {"id": "OrderService", "references": [_ref(CALL, "OrderRepository")]},
                _repository(["SQLException"]),
            ],
            base_config,
        )
        (v,) = evaluate_exception_boundary(graph, registry)
        assert [e.source for e in v.evidence] == ["OrderController", "OrderService"]

    def test_no_call_path_no_finding(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {"id": "OrderController", "operations": [_op("get", raises=["SQLException"])]},
                _repository(["SQLException"]),
            ],
            base_config,
        )
        assert evaluate_exception_boundary(graph, registry) == []

    def test_non_storage_error_passes(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {
                    "id": "OrderController",
                    "operations": [_op("get", raises=["OrderNotFound"])],
                    "references": [_ref(CALL, "OrderRepository")],
                },
                _repository(["SQLException"]),
            ],
            base_config,
        )
        assert evaluate_exception_boundary(graph, registry) == []


# ---------------------------------------------------------------------------
# TestEngine — rule table, concurrency, scenarios
# ---------------------------------------------------------------------------


class TestEngine:
    """Tests for evaluate_rules()."""

    def test_rule_table_covers_catalogue(self) -> None:
        assert [r.rule_id for r in DEFAULT_RULES] == [
            UNIDIRECTIONAL_DEPENDENCY,
            INTERFACE_ABSTRACTION,
            DATA_BOUNDARY,
            EXCEPTION_BOUNDARY,
            CROSS_LAYER_INVOCATION,
            REVERSE_DEPENDENCY,
            ENTITY_LEAKAGE,
        ]

    def test_presentation_to_data_access_field_reference(
        self, base_config: dict[str, Any]
    ) -> None:
        base_config["abstraction_required_between"] = [
            ["presentation", "data_access"],
            ["business", "data_access"],
        ]
        graph, registry = _setup(
            [
                {"id": "OrderController", "references": [_ref(FIELD_REFERENCE, "OrderRepository")]},
                {"id": "OrderRepository"},
            ],
            base_config,
        )
        violations = evaluate_rules(graph, registry)
        assert Counter(v.rule_id for v in violations) == {
            CROSS_LAYER_INVOCATION: 1,
            INTERFACE_ABSTRACTION: 1,
        }
        by_rule = {v.rule_id: v for v in violations}
        assert by_rule[CROSS_LAYER_INVOCATION].severity is Severity.WARNING
        assert by_rule[INTERFACE_ABSTRACTION].severity is Severity.ERROR

    def test_rule_order_does_not_matter(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup(
            [
                {
                    "id": "OrderController",
                    "operations": [_op("get", returns="OrderEntity", raises=["SQLException"])],
                    "references": [_ref(CALL, "OrderRepository"), _ref(RETURN_TYPE, "OrderEntity")],
                },
                {
                    "id": "OrderRepository",
                    "operations": [_op("find", raises=["SQLException"])],
                    "references": [_ref(CALL, "OrderController")],
                },
                {"id": "OrderEntity"},
            ],
            base_config,
        )
        forward = sorted(evaluate_rules(graph, registry), key=sort_key)
        backward = sorted(
            evaluate_rules(graph, registry, rules=tuple(reversed(DEFAULT_RULES)), max_workers=1),
            key=sort_key,
        )
        assert forward == backward
        assert {v.rule_id for v in forward} >= {
            UNIDIRECTIONAL_DEPENDENCY,
            CROSS_LAYER_INVOCATION,
            EXCEPTION_BOUNDARY,
            ENTITY_LEAKAGE,
            DATA_BOUNDARY,
        }

    def test_expired_deadline(self, base_config: dict[str, Any]) -> None:
        graph, registry = _setup([{"id": "OrderController"}], base_config)
        with pytest.raises(AnalysisTimeout):
            evaluate_rules(graph, registry, deadline=Deadline(0))
