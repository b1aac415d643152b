"""Shared test fixtures for Layerlint."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
import yaml

if TYPE_CHECKING:
    from pathlib import Path

BASE_CONFIG: dict[str, Any] = {
    "version": 1,
    "layer_ordering": ["presentation", "business", "data_access", "persistence"],
    "stereotypes": {
        "Controller": "presentation",
        "Service": "business",
        "Repository": "data_access",
        "Table": "persistence",
    },
    "heuristics": [
        {"pattern": "*Controller", "layer": "presentation"},
        {"pattern": "*Service", "layer": "business"},
        {"pattern": "*Repository", "layer": "data_access"},
        {"pattern": "*Dao", "layer": "persistence"},
    ],
    "boundary_sets": {
        "DTO": ["OrderDTO"],
        "VO": ["OrderVO"],
        "Entity": ["OrderEntity"],
    },
}


@pytest.fixture()
def base_config() -> dict[str, Any]:
    """A fresh copy of the four-layer configuration used across tests."""
    return yaml.safe_load(yaml.safe_dump(BASE_CONFIG))


@pytest.fixture()
def write_yaml(tmp_path: Path):  # type: ignore[no-untyped-def]
    """Write a Python object to ``tmp_path/<name>`` as YAML and return the path."""

    def _write(name: str, data: object) -> Path:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return path

    return _write
