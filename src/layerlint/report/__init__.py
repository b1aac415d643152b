"""Report domain: ordering, filtering, exit status, and rendering of findings."""

from layerlint.report.formatters import (
    FORMATTERS,
    clean_summary,
    format_json,
    format_porcelain,
    format_rich,
)
from layerlint.report.reporter import (
    EXIT_CLEAN,
    EXIT_FAILURE,
    EXIT_VIOLATIONS,
    Report,
    build_report,
    deduplicate,
    passes_threshold,
    sort_key,
)

__all__ = [
    "EXIT_CLEAN",
    "EXIT_FAILURE",
    "EXIT_VIOLATIONS",
    "FORMATTERS",
    "Report",
    "build_report",
    "clean_summary",
    "deduplicate",
    "format_json",
    "format_porcelain",
    "format_rich",
    "passes_threshold",
    "sort_key",
]
