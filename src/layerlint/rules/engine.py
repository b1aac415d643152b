"""Rule engine: run an explicit, immutable table of evaluators over one graph."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from layerlint.concurrency import Deadline, map_with_deadline
from layerlint.findings import (
    CROSS_LAYER_INVOCATION,
    DATA_BOUNDARY,
    ENTITY_LEAKAGE,
    EXCEPTION_BOUNDARY,
    INTERFACE_ABSTRACTION,
    REVERSE_DEPENDENCY,
    UNIDIRECTIONAL_DEPENDENCY,
    Violation,
)
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

logger = logging.getLogger(__name__)

Evaluator = Callable[["DependencyGraph", "BoundaryRegistry"], list[Violation]]


@dataclass(frozen=True)
class RuleDef:
    """One entry of the rule table."""

    rule_id: str
    description: str
    evaluate: Evaluator


DEFAULT_RULES: tuple[RuleDef, ...] = (
    RuleDef(
        UNIDIRECTIONAL_DEPENDENCY,
        "Dependencies flow only to an equal or deeper layer",
        evaluate_unidirectional_dependency,
    ),
    RuleDef(
        INTERFACE_ABSTRACTION,
        "Configured layer pairs depend on abstractions, not concrete components",
        evaluate_interface_abstraction,
    ),
    RuleDef(
        DATA_BOUNDARY,
        "Presentation signatures carry no Entities; Business signatures carry no DTOs",
        evaluate_data_boundary,
    ),
    RuleDef(
        EXCEPTION_BOUNDARY,
        "Storage errors are translated before they reach Presentation",
        evaluate_exception_boundary,
    ),
    RuleDef(
        CROSS_LAYER_INVOCATION,
        "Dependencies do not skip intermediate layers",
        evaluate_cross_layer_invocation,
    ),
    RuleDef(
        REVERSE_DEPENDENCY,
        "Adjacent layers do not reference each other both ways",
        evaluate_reverse_dependency,
    ),
    RuleDef(
        ENTITY_LEAKAGE,
        "Presentation operations do not return Entities",
        evaluate_entity_leakage,
    ),
)


def evaluate_rules(
    graph: DependencyGraph,
    registry: BoundaryRegistry,
    *,
    rules: tuple[RuleDef, ...] = DEFAULT_RULES,
    deadline: Deadline | None = None,
    max_workers: int | None = None,
) -> list[Violation]:
    """Run every rule concurrently and concatenate their findings.

    The result is unordered; ordering is the reporter's job.
    """
    per_rule = map_with_deadline(
        lambda rule: rule.evaluate(graph, registry),
        rules,
        deadline=deadline or Deadline(None),
        stage="rules",
        max_workers=max_workers,
    )

    violations: list[Violation] = []
    for rule, found in zip(rules, per_rule):
        logger.debug("Rule %s: %d findings", rule.rule_id, len(found))
        violations.extend(found)
    return violations
