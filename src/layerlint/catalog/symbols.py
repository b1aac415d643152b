"""Symbol-record input: the structural facts a source front end hands to the analyzer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import yaml

from layerlint.errors import InputError

if TYPE_CHECKING:
    from pathlib import Path

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FIELD_REFERENCE = "field-reference"
PARAMETER_TYPE = "parameter-type"
RETURN_TYPE = "return-type"
CALL = "call"
INHERITS = "inherits"

VALID_REFERENCE_KINDS: frozenset[str] = frozenset(
    {FIELD_REFERENCE, PARAMETER_TYPE, RETURN_TYPE, CALL, INHERITS}
)
VALID_SYMBOL_KINDS: frozenset[str] = frozenset({"class", "interface", "function"})

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SourceLocation:
    """File and line where a symbol is declared."""

    file: str = ""
    line: int = 0

    def __str__(self) -> str:
        if not self.file:
            return ""
        return f"{self.file}:{self.line}" if self.line else self.file


@dataclass(frozen=True)
class Operation:
    """An exposed operation signature."""

    name: str
    param_types: tuple[str, ...] = ()
    return_type: str | None = None
    raised_errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class Reference:
    """A typed reference from the enclosing symbol to another type."""

    kind: str
    target: str


@dataclass(frozen=True)
class SymbolRecord:
    """One raw entry of the front end's symbol table."""

    id: str
    name: str
    location: SourceLocation
    kind: str = "class"
    abstract: bool = False
    stereotype: str | None = None
    operations: tuple[Operation, ...] = ()
    references: tuple[Reference, ...] = ()


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _str_tuple(raw: object, context: str) -> tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        msg = f"{context} must be a list"
        raise InputError(msg)
    return tuple(str(item) for item in raw)


def _parse_location(raw: object, context: str) -> SourceLocation:
    if raw is None:
        return SourceLocation()
    if isinstance(raw, str):
        # "path/to/file.py:12" shorthand
        path, sep, line = raw.rpartition(":")
        if sep and line.isdigit():
            return SourceLocation(file=path, line=int(line))
        return SourceLocation(file=raw)
    if not isinstance(raw, dict):
        msg = f"{context}: location must be a mapping or 'file:line' string"
        raise InputError(msg)
    try:
        line = int(raw.get("line", 0) or 0)
    except (TypeError, ValueError) as exc:
        msg = f"{context}: location.line must be an integer"
        raise InputError(msg) from exc
    return SourceLocation(file=str(raw.get("file", "")), line=line)


def _parse_operation(raw: object, context: str) -> Operation:
    if not isinstance(raw, dict):
        msg = f"{context} must be a mapping"
        raise InputError(msg)
    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        msg = f"{context} missing required 'name' field"
        raise InputError(msg)
    returns = raw.get("returns")
    return Operation(
        name=name,
        param_types=_str_tuple(raw.get("params"), f"{context}.params"),
        return_type=str(returns) if returns is not None else None,
        raised_errors=_str_tuple(raw.get("raises"), f"{context}.raises"),
    )


def _parse_reference(raw: object, context: str) -> Reference:
    if not isinstance(raw, dict):
        msg = f"{context} must be a mapping"
        raise InputError(msg)
    kind = str(raw.get("kind", ""))
    if kind not in VALID_REFERENCE_KINDS:
        msg = (
            f"{context}: invalid reference kind '{kind}', "
            f"must be one of {sorted(VALID_REFERENCE_KINDS)}"
        )
        raise InputError(msg)
    target = raw.get("target")
    if target is None or not str(target).strip():
        msg = f"{context} missing required 'target' field"
        raise InputError(msg)
    return Reference(kind=kind, target=str(target))


def parse_symbol_record(raw: object, index: int) -> SymbolRecord:
    """Validate one raw mapping and turn it into a :class:`SymbolRecord`."""
    if not isinstance(raw, dict):
        msg = f"symbol at index {index} must be a mapping"
        raise InputError(msg)

    symbol_id = raw.get("id")
    if symbol_id is None or not str(symbol_id).strip():
        msg = f"symbol at index {index} missing required 'id' field"
        raise InputError(msg)
    symbol_id = str(symbol_id)
    context = f"symbol '{symbol_id}'"

    kind = str(raw.get("kind", "class"))
    if kind not in VALID_SYMBOL_KINDS:
        msg = f"{context}: invalid kind '{kind}', must be one of {sorted(VALID_SYMBOL_KINDS)}"
        raise InputError(msg)

    operations_raw = raw.get("operations") or []
    references_raw = raw.get("references") or []
    if not isinstance(operations_raw, list):
        msg = f"{context}: 'operations' must be a list"
        raise InputError(msg)
    if not isinstance(references_raw, list):
        msg = f"{context}: 'references' must be a list"
        raise InputError(msg)

    stereotype = raw.get("stereotype")
    return SymbolRecord(
        id=symbol_id,
        name=str(raw.get("name") or symbol_id.rsplit(".", 1)[-1]),
        location=_parse_location(raw.get("location"), context),
        kind=kind,
        abstract=bool(raw.get("abstract", False)) or kind == "interface",
        stereotype=str(stereotype) if stereotype is not None else None,
        operations=tuple(
            _parse_operation(op, f"{context} operation {i}")
            for i, op in enumerate(operations_raw)
        ),
        references=tuple(
            _parse_reference(ref, f"{context} reference {i}")
            for i, ref in enumerate(references_raw)
        ),
    )


def parse_symbols(data: object) -> list[SymbolRecord]:
    """Parse an already-decoded symbol document (list or ``{symbols: [...]}``)."""
    if isinstance(data, dict):
        data = data.get("symbols", [])
    if data is None:
        return []
    if not isinstance(data, list):
        msg = "symbol document must be a list or a mapping with a 'symbols' list"
        raise InputError(msg)
    return [parse_symbol_record(raw, idx) for idx, raw in enumerate(data)]


def load_symbols(path: Path) -> list[SymbolRecord]:
    """Read a YAML or JSON symbol document from *path*."""
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
        msg = f"Cannot read symbol records from {path}: {exc}"
        raise InputError(msg) from exc
    return parse_symbols(data)
