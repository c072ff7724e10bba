"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest


@pytest.fixture
def user_registry_path(tmp_path: Path) -> Path:
    """User registry file location under a temporary home."""
    return tmp_path / "home" / ".config" / "flakegraph" / "registry.json"


@pytest.fixture
def flake_dir(tmp_path: Path) -> Path:
    """Temporary path flake directory."""
    root = tmp_path / "project"
    root.mkdir()
    return root
