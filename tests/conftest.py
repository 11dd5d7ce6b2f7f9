"""Pytest configuration for test isolation.

Makes ``packages/`` importable without an install and keeps every test
offline by default: the remote credential and tuning variables are removed
from the environment so no test reaches the network unless it passes
explicit :class:`RemoteSettings` with a stubbed client.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
# Ensure `packages/` precedes the repo root so local packages resolve first.
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]


@pytest.fixture(autouse=True)
def _offline_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "OPENAI_API_KEY",
        "LEDGER_CATEGORIZER_MODEL",
        "LEDGER_CATEGORIZER_TIMEOUT_SEC",
        "LEDGER_CATEGORIZER_EXTRACT_TIMEOUT_SEC",
        "LEDGER_CATEGORIZER_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
