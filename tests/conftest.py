"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path


def pytest_sessionstart() -> None:
    """Add api directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    api_path = project_root / "api"
    if str(api_path) not in sys.path:
        sys.path.insert(0, str(api_path))
