"""Catalog domain: symbol-record input, layer classification, component catalog."""

from layerlint.catalog.builder import (
    STORAGE_LAYERS,
    Catalog,
    Classification,
    Component,
    Heuristic,
    Layer,
    build_catalog,
    classify,
    classify_component,
)
from layerlint.catalog.symbols import (
    VALID_REFERENCE_KINDS,
    Operation,
    Reference,
    SourceLocation,
    SymbolRecord,
    load_symbols,
    parse_symbols,
)

__all__ = [
    "STORAGE_LAYERS",
    "VALID_REFERENCE_KINDS",
    "Catalog",
    "Classification",
    "Component",
    "Heuristic",
    "Layer",
    "Operation",
    "Reference",
    "SourceLocation",
    "SymbolRecord",
    "build_catalog",
    "classify",
    "classify_component",
    "load_symbols",
    "parse_symbols",
]
