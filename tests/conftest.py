"""
Shared pytest fixtures for load-spine tests.

This module provides:
- Sample work items and a YAML source writer
- An in-memory cluster backend
- A config factory bound to a temporary source file

Usage:
    Fixtures are auto-discovered by pytest. Use them as function arguments.
"""

import sys
from pathlib import Path

import pytest
import yaml

# Ensure loadspine package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from loadspine.load.config import LoadConfig  # noqa: E402
from loadspine.load.models import WorkItem  # noqa: E402
from loadspine.runtimes import InMemoryClusterBackend  # noqa: E402


def _record(n: int) -> dict[str, str]:
    return {
        "reference": f"CVE-2020-{1000 + n}",
        "repo": f"https://github.com/example/project-{n}",
        "commit": f"{n:04d}abcdef",
        "description": f"Issue number {n}",
        "links": f"https://nvd.nist.gov/vuln/detail/CVE-2020-{1000 + n}",
    }


@pytest.fixture
def make_records():
    """Factory returning ``n`` raw source records."""

    def _make(n: int) -> list[dict[str, str]]:
        return [_record(i) for i in range(n)]

    return _make


@pytest.fixture
def make_items(make_records):
    """Factory returning ``n`` WorkItems."""

    def _make(n: int) -> list[WorkItem]:
        return [WorkItem.from_mapping(r) for r in make_records(n)]

    return _make


@pytest.fixture
def write_source(tmp_path):
    """Write a YAML document (or raw text) and return its path."""

    def _write(document, name: str = "bugs.yaml") -> Path:
        path = tmp_path / name
        if isinstance(document, str):
            path.write_text(document, encoding="utf-8")
        else:
            path.write_text(yaml.safe_dump(document), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def backend():
    """Fresh in-memory backend whose units all succeed."""
    return InMemoryClusterBackend()


@pytest.fixture
def make_config(tmp_path):
    """LoadConfig factory with test-friendly defaults."""

    def _make(**overrides) -> LoadConfig:
        values = {
            "source": tmp_path / "bugs.yaml",
            "release": "feynman",
            "namespace": "test-ns",
            "wait_timeout_seconds": 1.0,
        }
        values.update(overrides)
        return LoadConfig(**values)

    return _make
