"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Temporary project directory. manifest.json and generated/ live under it."""
    root = tmp_path / "project"
    root.mkdir()
    return root
