"""Fixtures for state-file tests: a store rooted in tmp_path and a fixed clock."""
from __future__ import annotations

import pytest

from greylistd.config import Timeouts
from greylistd.persistence.state_files import StateStore

T0 = 1_700_000_000.0


class FixedClock:
    def __init__(self, now: float = T0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def timeouts() -> Timeouts:
    return Timeouts(retry_min=600, retry_max=28_800, expire=5_184_000)


@pytest.fixture()
def store(tmp_path) -> StateStore:
    return StateStore(str(tmp_path / "triplets"), str(tmp_path / "states"))
