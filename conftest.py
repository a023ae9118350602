"""Pytest configuration — ensures the project root is importable."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from ledger_integrity.config import get_settings  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """Drop cached settings and point the ledger at the in-memory sample."""
    monkeypatch.setenv("LEDGER_BASE_URL", "")
    monkeypatch.setenv("ALERT_WEBHOOK_URL", "")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
