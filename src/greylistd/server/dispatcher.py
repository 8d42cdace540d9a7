"""Dispatcher: accept thread + single processing lane.

Architecture:
    Accept thread: listener.accept() in a loop, hands each connection to
        a FIFO queue. Never touches the registry.
    Processing lane (the thread calling run()): takes one item at a time
        from the queue. A connection is served to completion
        (read -> parse -> execute -> write -> close), then the update
        interval is checked and the registry flushed if it is due.
        A stop marker ends the loop.

The registry is single-writer by construction: only the processing lane
calls into it, so there is no registry lock. Saves happen between
commands, never concurrently with a mutation.

Shutdown: the lane does a final save, marks the dispatcher as closing,
then connects to its own listening socket once. That wakes the accept
thread out of accept(), which sees the closing flag and exits.
"""
from __future__ import annotations

import logging
import queue
import socket
import threading

from greylistd.errors import ProtocolError
from greylistd.persistence.state_files import StateStore
from greylistd.protocol.commands import parse_command
from greylistd.protocol.render import INVALID_COMMAND
from greylistd.registry.registry import Registry
from greylistd.server.executor import CommandExecutor, Response
from greylistd.server.listener import Listener

log = logging.getLogger(__name__)

MAX_REQUEST_SIZE = 16 * 1024
DEFAULT_READ_TIMEOUT = 2.0
KICK_TIMEOUT = 5.0
ACCEPT_BACKOFF = 0.1


class _Stop:
    """Queue marker: end the processing loop."""

    __slots__ = ("reload",)

    def __init__(self, reload: bool) -> None:
        self.reload = reload


class Dispatcher:
    """Serve greylisting commands on a listener until stopped or reloaded.

    Args:
        registry: the registry to serve; owned by the processing lane.
        store: where the registry is flushed.
        listener: bound, listening socket.
        update_interval: flush if the last save is older than this (seconds).
        read_timeout: per-connection read timeout (seconds).
    """

    def __init__(
        self,
        registry: Registry,
        store: StateStore,
        listener: Listener,
        update_interval: float,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
    ) -> None:
        self._registry = registry
        self._store = store
        self._listener = listener
        self._update_interval = update_interval
        self._read_timeout = read_timeout
        self._executor = CommandExecutor(registry, store)
        self._inbox: queue.Queue[socket.socket | _Stop] = queue.Queue()
        self._closing = threading.Event()
        self._ready = threading.Event()  # signals when accept loop is running
        self._accept_thread: threading.Thread | None = None
        self._requests_processed = 0

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def requests_processed(self) -> int:
        """Connections served so far. Only meaningful on the processing lane."""
        return self._requests_processed

    def wait_ready(self, timeout: float = 5.0) -> bool:
        """Block until the accept thread is running. For test setup."""
        return self._ready.wait(timeout=timeout)

    def request_stop(self, reload: bool = False) -> None:
        """Ask the processing lane to finish. Safe from any thread."""
        self._inbox.put(_Stop(reload))

    def run(self) -> bool:
        """Serve until stopped. Returns True if a reload was requested.

        Raises:
            PersistenceError: a save failed; the daemon must not continue.
        """
        self._accept_thread = threading.Thread(
            target=self._accept_loop, daemon=True, name="greylistd-accept"
        )
        self._accept_thread.start()
        reload = False
        try:
            while True:
                item = self._inbox.get()
                if isinstance(item, _Stop):
                    reload = item.reload
                    break
                response = self._serve(item)
                self._requests_processed += 1
                if response is not None and response.reload:
                    log.info("reload requested by client")
                    reload = True
                    break
                if self._registry.seconds_since_save() > self._update_interval:
                    self._store.save(self._registry)
            self._store.save(self._registry)
        finally:
            self._shutdown()
        return reload

    # -- accept thread ----------------------------------------------------

    def _accept_loop(self) -> None:
        """Hand accepted connections to the processing lane.

        Blocks only in accept(). Exits once the dispatcher is closing,
        which the processing lane signals by connecting to us.
        """
        self._ready.set()
        while True:
            try:
                conn = self._listener.accept()
            except OSError:
                if self._closing.is_set():
                    return
                log.exception("accept failed")
                self._closing.wait(ACCEPT_BACKOFF)
                continue
            if self._closing.is_set():
                conn.close()
                return
            self._inbox.put(conn)

    # -- processing lane ----------------------------------------------------

    def _serve(self, conn: socket.socket) -> Response | None:
        """Handle one connection: read, decode, execute, reply, close.

        Socket errors are logged and end only this connection.
        """
        with conn:
            try:
                conn.settimeout(self._read_timeout)
                raw = conn.recv(MAX_REQUEST_SIZE)
            except socket.timeout:
                log.warning("client sent nothing within %.1fs", self._read_timeout)
                return None
            except OSError as err:
                log.warning("failed to read request: %s", err)
                return None

            response = self._respond(raw)
            try:
                conn.sendall(response.text.encode("utf-8"))
            except OSError as err:
                log.warning("failed to send response: %s", err)
            return response

    def _respond(self, raw: bytes) -> Response:
        try:
            command = parse_command(raw.decode("utf-8"))
        except (UnicodeDecodeError, ProtocolError) as err:
            log.debug("invalid command %r: %s", raw[:200], err)
            return Response(INVALID_COMMAND)
        log.debug("executing %r", command)
        return self._executor.execute(command)

    def _shutdown(self) -> None:
        """Wake and join the accept thread, drop connections still queued."""
        self._closing.set()
        try:
            with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as kick:
                kick.settimeout(KICK_TIMEOUT)
                kick.connect(self._listener.address)
        except OSError as err:
            log.warning("shutdown kick failed: %s", err)
        if self._accept_thread is not None:
            self._accept_thread.join(timeout=KICK_TIMEOUT)
            self._accept_thread = None
        while True:
            try:
                item = self._inbox.get_nowait()
            except queue.Empty:
                break
            if not isinstance(item, _Stop):
                item.close()
