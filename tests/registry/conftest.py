"""Shared fixtures for registry tests.

Provides a controllable clock so the state machine can be driven through
its time windows without sleeping.
"""
from __future__ import annotations

import pytest

from greylistd.config import Timeouts
from greylistd.domain.triplet import Triplet
from greylistd.registry.registry import Registry

T0 = 1_700_000_000.0


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: float = T0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def timeouts() -> Timeouts:
    return Timeouts(retry_min=600, retry_max=28_800, expire=5_184_000)


@pytest.fixture()
def registry(timeouts, clock) -> Registry:
    return Registry(timeouts, only_subnet=True, clock=clock)


@pytest.fixture()
def triplet() -> Triplet:
    return Triplet.parse("192.0.2.10 alice@example.org bob@example.net")


@pytest.fixture()
def other_triplet() -> Triplet:
    return Triplet.parse("198.51.100.7 carol@example.com bob@example.net")
