"""Findings: severities, rule identifiers and the immutable Violation record."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from layerlint.catalog.symbols import SourceLocation
    from layerlint.graph.builder import DependencyEdge


class Severity(enum.Enum):
    """Severity level for a finding."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @classmethod
    def parse(cls, value: str) -> Severity:
        """Return the member named by *value* (``warn`` is accepted for ``warning``)."""
        normalized = value.strip().lower()
        if normalized == "warn":
            normalized = "warning"
        try:
            return cls(normalized)
        except ValueError:
            msg = f"invalid severity '{value}', must be one of {[s.value for s in cls]}"
            raise ValueError(msg) from None


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.INFO: 0,
    Severity.WARNING: 1,
    Severity.ERROR: 2,
}

# ---------------------------------------------------------------------------
# Rule identifiers
# ---------------------------------------------------------------------------

UNRESOLVED_CLASSIFICATION = "unresolved-classification"
UNRESOLVED_REFERENCE = "unresolved-reference"
UNIDIRECTIONAL_DEPENDENCY = "unidirectional-dependency"
INTERFACE_ABSTRACTION = "interface-abstraction"
DATA_BOUNDARY = "data-boundary"
EXCEPTION_BOUNDARY = "exception-boundary"
CROSS_LAYER_INVOCATION = "cross-layer-invocation"
REVERSE_DEPENDENCY = "reverse-dependency"
ENTITY_LEAKAGE = "entity-leakage"

# Output ordering; lower sorts first.
RULE_PRIORITIES: dict[str, int] = {
    UNRESOLVED_CLASSIFICATION: 0,
    UNRESOLVED_REFERENCE: 1,
    UNIDIRECTIONAL_DEPENDENCY: 2,
    INTERFACE_ABSTRACTION: 3,
    DATA_BOUNDARY: 4,
    EXCEPTION_BOUNDARY: 5,
    CROSS_LAYER_INVOCATION: 6,
    REVERSE_DEPENDENCY: 7,
    ENTITY_LEAKAGE: 8,
}

# Rules whose severity can be overridden from configuration.
RULE_IDS: frozenset[str] = frozenset(RULE_PRIORITIES) - {
    UNRESOLVED_CLASSIFICATION,
    UNRESOLVED_REFERENCE,
}


@dataclass(frozen=True)
class Violation:
    """A single finding produced by a rule or by input resolution."""

    rule_id: str
    severity: Severity
    component: str
    location: SourceLocation
    evidence: tuple[DependencyEdge, ...]
    message: str
    operation: str | None = None

    @property
    def priority(self) -> int:
        return RULE_PRIORITIES.get(self.rule_id, len(RULE_PRIORITIES))

    @property
    def identity(self) -> tuple[object, ...]:
        """Key under which repeats are collapsed.

        A finding is identified by rule, subject and evidence chain.  Findings
        without evidence also keep their operation and message, so diagnostics
        about different missing targets stay distinct.
        """
        if self.evidence:
            return (self.rule_id, self.component, self.evidence)
        return (self.rule_id, self.component, (), self.operation, self.message)
