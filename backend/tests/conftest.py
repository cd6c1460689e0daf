"""Pytest configuration and fixtures."""

import pytest


class FakeClock:
    """Manually advanced stand-in for time.time()."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Fresh fake clock for each test."""
    return FakeClock()
