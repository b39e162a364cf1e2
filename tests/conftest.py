"""Shared fixtures: fixture documents and small builders for loader models."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from mcp_scaffold.loader import Endpoint, ParsedSpec, SpecInfo

FIXTURES = Path(__file__).parent / "fixtures"

ECOMMERCE_SPEC = FIXTURES / "ecommerce.yaml"
SPLIT_SPEC = FIXTURES / "split-main.yaml"
SWAGGER_SPEC = FIXTURES / "swagger2.yaml"
COLLISION_SPEC = FIXTURES / "collisions.yaml"


def make_endpoint(method: str = "GET", path: str = "/items", **fields: Any) -> Endpoint:
    """Build an Endpoint with sensible defaults."""
    return Endpoint(path=path, method=method, **fields)


def make_spec(**fields: Any) -> ParsedSpec:
    """Build a minimal ParsedSpec; keyword arguments override fields."""
    values: dict[str, Any] = {
        "openapi": "3.0.0",
        "info": SpecInfo(title="Test API", version="1.0.0"),
    }
    values.update(fields)
    return ParsedSpec(**values)


def contains_ref(node: Any) -> bool:
    """True when a $ref key survives anywhere in a nested document."""
    if isinstance(node, dict):
        return "$ref" in node or any(contains_ref(v) for v in node.values())
    if isinstance(node, list):
        return any(contains_ref(v) for v in node)
    return False


@pytest.fixture
def ecommerce_spec_path() -> str:
    return str(ECOMMERCE_SPEC)


@pytest.fixture
def write_spec(tmp_path):
    """Write YAML text to a file under tmp_path and return its path."""
    def _write(text: str, name: str = "openapi.yaml") -> str:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return str(path)
    return _write
