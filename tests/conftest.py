"""Top-level pytest configuration for gcl-sink tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Keep the in-tree package importable when the suite runs without an install.
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


def pytest_configure(config: pytest.Config) -> None:  # pragma: no cover - configuration hook
    config.addinivalue_line("markers", "gcl_sink: unit tests for the Cloud Logging sink")
