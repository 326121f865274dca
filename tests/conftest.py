"""Pytest configuration for issuequeue tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install (`pip install -e .`).
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def _plain_terminal(monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep CLI assertions free of ANSI escapes and retries free of real sleeps
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.setenv("ISSUEQUEUE_RETRY_MAX_SLEEP", "0")
