"""Test configuration for local imports without installing the package."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_configure():
    """Ensure the src/ directory is importable for tests."""
    root = Path(__file__).resolve().parents[1] / "src"
    sys.path.insert(0, str(root))


@pytest.fixture
def rng():
    from songevo.core.rng import make_rng

    return make_rng(1234)


@pytest.fixture
def store(tmp_path):
    from songevo.engine.storage import SQLiteStore

    with SQLiteStore(tmp_path / "songs.db") as s:
        s.create_schema()
        yield s
