"""Diagnostic reporter: deduplicate, order, filter, and compute the exit status."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from layerlint.findings import Severity, Violation

if TYPE_CHECKING:
    from collections.abc import Iterable

EXIT_CLEAN = 0
EXIT_VIOLATIONS = 1
EXIT_FAILURE = 2


@dataclass(frozen=True)
class Report:
    """Ordered findings of one analysis pass plus summary counts."""

    violations: tuple[Violation, ...] = ()
    components: int = 0
    edges: int = 0
    rules_evaluated: int = 0
    hidden: int = 0  # findings suppressed by the severity threshold
    elapsed_ms: float = 0.0

    def count(self, severity: Severity) -> int:
        return sum(1 for v in self.violations if v.severity is severity)

    @property
    def has_errors(self) -> bool:
        return any(v.severity is Severity.ERROR for v in self.violations)

    @property
    def exit_status(self) -> int:
        return EXIT_VIOLATIONS if self.has_errors else EXIT_CLEAN


def sort_key(violation: Violation) -> tuple[object, ...]:
    """Total order: priority, file location, rule id, then stable tie-breakers."""
    return (
        violation.priority,
        violation.location.file,
        violation.location.line,
        violation.rule_id,
        violation.component,
        violation.operation or "",
        tuple((e.source, e.target, e.kind) for e in violation.evidence),
        violation.message,
    )


def deduplicate(violations: Iterable[Violation]) -> list[Violation]:
    """Drop repeats of the same identity, keeping the first occurrence."""
    seen: set[tuple[object, ...]] = set()
    unique: list[Violation] = []
    for violation in violations:
        key = violation.identity
        if key in seen:
            continue
        seen.add(key)
        unique.append(violation)
    return unique


def passes_threshold(violation: Violation, threshold: Severity) -> bool:
    """Errors always pass; everything else must reach *threshold*."""
    return violation.severity is Severity.ERROR or violation.severity.rank >= threshold.rank


def build_report(
    violations: Iterable[Violation],
    *,
    threshold: Severity = Severity.INFO,
    components: int = 0,
    edges: int = 0,
    rules_evaluated: int = 0,
    elapsed_ms: float = 0.0,
) -> Report:
    """Turn the unordered finding multiset into an ordered :class:`Report`."""
    # Sort first so the survivor of each duplicate group does not depend on input order.
    ordered = deduplicate(sorted(violations, key=sort_key))
    shown = tuple(v for v in ordered if passes_threshold(v, threshold))
    return Report(
        violations=shown,
        components=components,
        edges=edges,
        rules_evaluated=rules_evaluated,
        hidden=len(ordered) - len(shown),
        elapsed_ms=elapsed_ms,
    )
