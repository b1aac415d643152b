"""Pass-level failures.

Findings are never raised: they are :class:`~layerlint.findings.Violation`
records.  The exceptions below abort an analysis pass and map to exit status 2.
"""

from __future__ import annotations


class LayerlintError(Exception):
    """Base class for every pass-level failure."""


class ConfigError(LayerlintError):
    """Raised when the layer taxonomy or boundary configuration is invalid."""


class InputError(LayerlintError):
    """Raised when the symbol-record document is malformed."""


class InternalError(LayerlintError):
    """Raised when the catalog or graph breaks one of its own invariants."""


class AnalysisTimeout(LayerlintError):
    """Raised when a pass exceeds its deadline; partial results are discarded."""
