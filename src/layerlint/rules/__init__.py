"""Rules domain: the fixed rule catalogue and the engine that runs it."""

from layerlint.rules.engine import DEFAULT_RULES, RuleDef, evaluate_rules
from layerlint.rules.evaluators import (
    evaluate_cross_layer_invocation,
    evaluate_data_boundary,
    evaluate_entity_leakage,
    evaluate_exception_boundary,
    evaluate_interface_abstraction,
    evaluate_reverse_dependency,
    evaluate_unidirectional_dependency,
)

__all__ = [
    "DEFAULT_RULES",
    "RuleDef",
    "evaluate_cross_layer_invocation",
    "evaluate_data_boundary",
    "evaluate_entity_leakage",
    "evaluate_exception_boundary",
    "evaluate_interface_abstraction",
    "evaluate_reverse_dependency",
    "evaluate_rules",
    "evaluate_unidirectional_dependency",
]
