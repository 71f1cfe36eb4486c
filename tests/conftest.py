"""Pytest configuration for test suite.

Ensures the project root is on ``sys.path`` so ``import remote_cache``
resolves correctly regardless of the working directory pytest chooses, and
provides a controllable millisecond clock.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_project_root_on_syspath() -> None:
    project_root = Path(__file__).resolve().parents[1]
    project_root_str = str(project_root)
    if project_root_str not in sys.path:
        # Prepend to prefer local sources over site-packages
        sys.path.insert(0, project_root_str)


_ensure_project_root_on_syspath()


class FakeClock:
    """Manually advanced clock returning epoch milliseconds."""

    def __init__(self, start: float = 1_700_000_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class RecordingResolver:
    """Async resolver that uppercases string keys and records every call."""

    def __init__(self, fail_for: tuple = ()) -> None:
        self.calls: list = []
        self.fail_for = set(fail_for)

    async def __call__(self, key):
        self.calls.append(key)
        if key in self.fail_for:
            raise LookupError(f"no such key: {key}")
        return key.upper() if isinstance(key, str) else key


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def resolver() -> RecordingResolver:
    return RecordingResolver()
