"""Analysis pass orchestrator: catalog, graph, rules, report."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from layerlint.catalog.builder import build_catalog
from layerlint.catalog.symbols import load_symbols
from layerlint.concurrency import Deadline
from layerlint.config import load_config
from layerlint.findings import Severity, Violation
from layerlint.graph.builder import build_graph
from layerlint.report.reporter import Report, build_report
from layerlint.rules.engine import DEFAULT_RULES, RuleDef, evaluate_rules

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from layerlint.catalog.builder import Catalog
    from layerlint.catalog.symbols import SymbolRecord
    from layerlint.config import AnalyzerConfig
    from layerlint.graph.builder import DependencyGraph

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Raw, unordered outcome of one pass."""

    catalog: Catalog
    graph: DependencyGraph
    violations: list[Violation] = field(default_factory=list)
    rules_evaluated: int = 0
    elapsed_ms: float = 0.0

    def to_report(self, *, threshold: Severity = Severity.INFO) -> Report:
        return build_report(
            self.violations,
            threshold=threshold,
            components=len(self.catalog),
            edges=len(self.graph),
            rules_evaluated=self.rules_evaluated,
            elapsed_ms=self.elapsed_ms,
        )


def analyze(
    records: Sequence[SymbolRecord],
    config: AnalyzerConfig,
    *,
    timeout: float | None = None,
    max_workers: int | None = None,
    rules: tuple[RuleDef, ...] = DEFAULT_RULES,
) -> AnalysisResult:
    """Run one stateless analysis pass over a snapshot of symbol records.

    Raises
    ------
    InternalError
        When the records break a catalog or graph invariant.
    AnalysisTimeout
        When *timeout* seconds elapse; nothing from the pass is returned.
    """
    start = time.monotonic()
    deadline = Deadline(timeout)

    catalog = build_catalog(
        records,
        stereotypes=config.stereotypes,
        heuristics=config.heuristics,
        deadline=deadline,
        max_workers=max_workers,
    )
    graph, dropped = build_graph(catalog, records, deadline=deadline, max_workers=max_workers)
    found = evaluate_rules(
        graph, config.registry, rules=rules, deadline=deadline, max_workers=max_workers
    )

    elapsed = (time.monotonic() - start) * 1000
    logger.info(
        "Analyzed %d components, %d edges: %d findings in %.1fms",
        len(catalog),
        len(graph),
        len(found),
        elapsed,
    )
    return AnalysisResult(
        catalog=catalog,
        graph=graph,
        violations=[*catalog.diagnostics, *dropped, *found],
        rules_evaluated=len(rules),
        elapsed_ms=elapsed,
    )


def lint(
    symbols_path: Path,
    config_path: Path,
    *,
    threshold: Severity = Severity.INFO,
    timeout: float | None = None,
    max_workers: int | None = None,
) -> Report:
    """Load configuration and symbol records, analyze, and return the report.

    The configuration is validated before any symbol is read, so a bad
    configuration aborts with :class:`ConfigError` and no findings.
    """
    config = load_config(config_path)
    records = load_symbols(symbols_path)
    result = analyze(records, config, timeout=timeout, max_workers=max_workers)
    return result.to_report(threshold=threshold)
