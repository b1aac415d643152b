"""Report renderers: human-readable text, JSON, and porcelain lines."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from layerlint.findings import Severity

if TYPE_CHECKING:
    from layerlint.findings import Violation
    from layerlint.graph.builder import DependencyEdge
    from layerlint.report.reporter import Report

_MARKERS: dict[Severity, str] = {
    Severity.ERROR: "✗",
    Severity.WARNING: "⚠",
    Severity.INFO: "ℹ",
}


def _subject(violation: Violation) -> str:
    if violation.operation is None:
        return violation.component
    return f"{violation.component}.{violation.operation}"


def _edge_dict(edge: DependencyEdge) -> dict[str, object]:
    return {"from": edge.source, "to": edge.target, "kind": edge.kind}


def clean_summary(report: Report) -> str:
    """One-line summary for a pass with no findings at or above the threshold."""
    line = (
        f"✓ No violations found ({report.rules_evaluated} rules evaluated, "
        f"{report.elapsed_ms / 1000:.1f}s)"
    )
    if report.hidden:
        line += f", {report.hidden} below threshold hidden"
    return line


def format_rich(report: Report) -> str:
    """Format a Report as human-readable text.

    Example output with findings::

        Components: 12 catalogued, 30 edges
        Rules: 7 evaluated

        ✗ unidirectional-dependency [error]
          src/repo/order_repo.py:8  app.repo.OrderRepository
          Layer violation: ... Dependencies must flow to an equal or deeper layer.
          evidence: app.repo.OrderRepository -[call]-> app.web.OrderController

        1 error, 0 warnings, 0 info (7 rules evaluated, 0.1s)

    Example output for a clean pass::

        Components: 12 catalogued, 30 edges
        Rules: 7 evaluated

        ✓ No violations found (7 rules evaluated, 0.1s)
    """
    lines: list[str] = []

    lines.append(f"Components: {report.components} catalogued, {report.edges} edges")
    lines.append(f"Rules: {report.rules_evaluated} evaluated")
    lines.append("")

    if not report.violations:
        lines.append(clean_summary(report))
        return "\n".join(lines)

    elapsed_str = f"{report.elapsed_ms / 1000:.1f}s"

    for v in report.violations:
        lines.append(f"{_MARKERS[v.severity]} {v.rule_id} [{v.severity.value}]")
        loc = str(v.location)
        lines.append(f"  {loc}  {_subject(v)}" if loc else f"  {_subject(v)}")
        lines.append(f"  {v.message}")
        for edge in v.evidence:
            lines.append(f"  evidence: {edge}")
        lines.append("")

    errors = report.count(Severity.ERROR)
    warnings = report.count(Severity.WARNING)
    infos = report.count(Severity.INFO)
    summary = (
        f"{errors} error{'s' if errors != 1 else ''}, "
        f"{warnings} warning{'s' if warnings != 1 else ''}, "
        f"{infos} info ({report.rules_evaluated} rules evaluated, {elapsed_str})"
    )
    if report.hidden:
        summary += f", {report.hidden} below threshold hidden"
    lines.append(summary)

    return "\n".join(lines)


def format_json(report: Report) -> str:
    """Format a Report as structured JSON.

    Returns a JSON string with ``violations`` array and ``summary`` object.
    """
    violations_list: list[dict[str, object]] = []
    for v in report.violations:
        violations_list.append(
            {
                "rule_id": v.rule_id,
                "severity": v.severity.value,
                "component": v.component,
                "operation": v.operation,
                "location": {
                    "file": v.location.file or None,
                    "line": v.location.line or None,
                },
                "evidence": [_edge_dict(e) for e in v.evidence],
                "message": v.message,
            }
        )

    output: dict[str, object] = {
        "violations": violations_list,
        "summary": {
            "components": report.components,
            "edges": report.edges,
            "rules_evaluated": report.rules_evaluated,
            "errors": report.count(Severity.ERROR),
            "warnings": report.count(Severity.WARNING),
            "info": report.count(Severity.INFO),
            "hidden": report.hidden,
            "exit_status": report.exit_status,
        },
    }

    return json.dumps(output, indent=2)


def format_porcelain(report: Report) -> str:
    """Format a Report as machine-readable one-line-per-finding output.

    Format: ``rule_id:severity:file:line:subject:evidence`` where evidence
    is ``source>target@kind`` hops joined by ``,``.

    Empty file/line fields are represented as empty strings.
    Returns empty string when there are no findings.
    """
    if not report.violations:
        return ""

    lines: list[str] = []
    for v in report.violations:
        line_number = str(v.location.line) if v.location.line else ""
        evidence = ",".join(f"{e.source}>{e.target}@{e.kind}" for e in v.evidence)
        lines.append(
            f"{v.rule_id}:{v.severity.value}:{v.location.file}:{line_number}:"
            f"{_subject(v)}:{evidence}"
        )

    return "\n".join(lines)


FORMATTERS = {
    "rich": format_rich,
    "json": format_json,
    "porcelain": format_porcelain,
}
