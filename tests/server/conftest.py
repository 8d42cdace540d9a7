"""Shared fixtures for server tests.

UNIX socket paths are limited to about 108 bytes, so sockets live in a
short mkdtemp() directory rather than under pytest's tmp_path.
"""
from __future__ import annotations

import os
import shutil
import tempfile
import threading

import pytest

from greylistd.config import SocketConfig, Timeouts
from greylistd.persistence.state_files import StateStore
from greylistd.registry.registry import Registry
from greylistd.server.dispatcher import Dispatcher
from greylistd.server.listener import bind_listener


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
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
def store(tmp_path) -> StateStore:
    return StateStore(str(tmp_path / "triplets"), str(tmp_path / "states"))


@pytest.fixture()
def socket_dir():
    path = tempfile.mkdtemp(prefix="gl")
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture()
def socket_config(socket_dir) -> SocketConfig:
    return SocketConfig(path=os.path.join(socket_dir, "sock"), mode=0o660)


class RunningDispatcher:
    """A Dispatcher serving on a background thread, plus its outcome."""

    def __init__(self, dispatcher: Dispatcher, listener) -> None:
        self.dispatcher = dispatcher
        self.listener = listener
        self.result: bool | None = None
        self.error: BaseException | None = None
        self._thread = threading.Thread(target=self._run, daemon=True)

    def _run(self) -> None:
        try:
            self.result = self.dispatcher.run()
        except BaseException as err:  # surfaced by join()
            self.error = err
        finally:
            self.listener.close()

    def start(self) -> None:
        self._thread.start()
        assert self.dispatcher.wait_ready(timeout=5.0)

    def join(self, timeout: float = 5.0) -> bool | None:
        self._thread.join(timeout=timeout)
        assert not self._thread.is_alive(), "dispatcher did not stop"
        if self.error is not None:
            raise self.error
        return self.result

    @property
    def alive(self) -> bool:
        return self._thread.is_alive()


@pytest.fixture()
def server_factory(registry, store, socket_config):
    """Factory that starts a Dispatcher on a fresh socket.

    Accepts the update interval and returns (running, socket_path). Any
    dispatcher still running at teardown is stopped.
    """
    running: list[RunningDispatcher] = []

    def _create(update_interval: float = 3600.0) -> tuple[RunningDispatcher, str]:
        listener = bind_listener(socket_config)
        dispatcher = Dispatcher(registry, store, listener, update_interval)
        srv = RunningDispatcher(dispatcher, listener)
        srv.start()
        running.append(srv)
        return srv, socket_config.path

    yield _create

    for srv in running:
        if srv.alive:
            srv.dispatcher.request_stop()
            srv.join()
