"""Process driver: the reload loop around one serving cycle.

Each cycle loads the configuration, binds the listener, loads the
registry from disk, and runs a Dispatcher until it stops. A socket
handed over by systemd is adopted once and shared by every cycle.
A cycle that ends with reload=True starts over with fresh configuration
and state; the files written by the final save are the hand-off between
the old and the new cycle. A cycle that ends with reload=False ends the process.

Signals: SIGINT and SIGTERM stop the daemon, SIGHUP reloads it. They are
blocked in every thread and received synchronously by a dedicated relay
thread with sigwait(), so no Python code runs inside a signal handler
while the processing lane holds a queue lock.
"""
from __future__ import annotations

import logging
import signal
import threading

from greylistd.config import Config, load_config
from greylistd.persistence.state_files import StateStore
from greylistd.server.dispatcher import Dispatcher
from greylistd.server.listener import Listener, bind_listener, systemd_listener

log = logging.getLogger(__name__)

STOP_SIGNALS = frozenset({signal.SIGINT, signal.SIGTERM})
RELOAD_SIGNALS = frozenset({signal.SIGHUP})


class SignalRelay:
    """Forward OS signals to whichever dispatcher is currently serving.

    A stop that arrives between cycles is remembered and applied to the
    next dispatcher as soon as it is attached.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Dispatcher | None = None
        self._pending: bool | None = None  # reload flag of an undelivered stop
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Block the signals in this thread (inherited by new threads) and listen."""
        signal.pthread_sigmask(signal.SIG_BLOCK, STOP_SIGNALS | RELOAD_SIGNALS)
        self._thread = threading.Thread(
            target=self._wait_loop, daemon=True, name="greylistd-signals"
        )
        self._thread.start()

    def attach(self, dispatcher: Dispatcher | None) -> None:
        with self._lock:
            self._current = dispatcher
            if dispatcher is not None and self._pending is not None:
                dispatcher.request_stop(reload=self._pending)
                self._pending = None

    def deliver(self, reload: bool) -> None:
        with self._lock:
            if self._current is not None:
                self._current.request_stop(reload=reload)
            elif self._pending is None or not reload:
                self._pending = reload

    def _wait_loop(self) -> None:
        while True:
            signum = signal.sigwait(STOP_SIGNALS | RELOAD_SIGNALS)
            reload = signum in RELOAD_SIGNALS
            log.info(
                "received %s, %s",
                signal.Signals(signum).name,
                "reloading" if reload else "stopping",
            )
            self.deliver(reload)


def _serve_on(
    config: Config, listener: Listener, relay: SignalRelay | None
) -> bool:
    store = StateStore(config.data.tripletfile, config.data.statefile)
    registry = store.load_registry(config.timeouts, config.data.onlysubnet)
    dispatcher = Dispatcher(registry, store, listener, config.data.update)
    if relay is not None:
        relay.attach(dispatcher)
    try:
        return dispatcher.run()
    finally:
        if relay is not None:
            relay.attach(None)


def run_cycle(
    config: Config,
    relay: SignalRelay | None = None,
    activated: Listener | None = None,
) -> bool:
    """Serve one configuration until stopped. Returns the reload flag.

    An activated listener is served on and left open for the next cycle;
    otherwise the configured path is bound for this cycle only.
    """
    if activated is not None:
        return _serve_on(config, activated, relay)
    with bind_listener(config.socket) as listener:
        return _serve_on(config, listener, relay)


def serve_forever(config_path: str) -> None:
    """Run cycles until one ends without a reload request.

    Raises:
        GreylistdError: bad configuration, corrupt state or failed save.
        OSError: the socket could not be set up.
    """
    config = load_config(config_path)
    relay = SignalRelay()
    relay.start()
    activated = systemd_listener()
    try:
        while True:
            log.info("starting greylistd with configuration %s", config_path)
            if not run_cycle(config, relay, activated):
                log.info("greylistd stopped")
                return
            log.info("reloading configuration and data")
            config = load_config(config_path)
    finally:
        if activated is not None:
            activated.close()
