"""Listening UNIX socket: bind our own, or take one from systemd.

With socket activation (LISTEN_PID is our pid, LISTEN_FDS >= 1) the
service manager owns the socket path, so we neither create nor remove
it, and the adopted socket is kept open across reload cycles. Otherwise we bind the configured path, apply the configured file
mode, and remove the path again on close().
"""
from __future__ import annotations

import logging
import os
import socket
import stat

from greylistd.config import SocketConfig

log = logging.getLogger(__name__)

SD_LISTEN_FDS_START = 3
SD_LISTEN_ENV = ("LISTEN_PID", "LISTEN_FDS", "LISTEN_FDNAMES")
BACKLOG = 128


class Listener:
    """A listening stream socket plus the path we are responsible for.

    Args:
        sock: bound, listening AF_UNIX stream socket.
        owned_path: path to unlink on close(); None when handed to us.
    """

    def __init__(self, sock: socket.socket, owned_path: str | None) -> None:
        self._sock = sock
        self._owned_path = owned_path
        self._address = sock.getsockname()

    @property
    def socket(self) -> socket.socket:
        return self._sock

    @property
    def address(self) -> str:
        """Filesystem path clients (and the shutdown kick) connect to."""
        return self._address

    @property
    def owned_path(self) -> str | None:
        return self._owned_path

    def accept(self) -> socket.socket:
        conn, _ = self._sock.accept()
        return conn

    def close(self) -> None:
        try:
            self._sock.close()
        except OSError:
            pass
        if self._owned_path is not None:
            try:
                os.unlink(self._owned_path)
            except FileNotFoundError:
                pass
            self._owned_path = None

    def __enter__(self) -> Listener:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def systemd_listener() -> Listener | None:
    """Adopt the first activated AF_UNIX stream socket, if any.

    The activation variables are removed once read, so a later call (for
    example on reload) never adopts the same descriptors twice. The caller
    keeps the returned listener open for the life of the process.
    """
    try:
        pid = int(os.environ.get("LISTEN_PID", ""))
        nfds = int(os.environ.get("LISTEN_FDS", ""))
    except ValueError:
        return None
    if pid != os.getpid() or nfds < 1:
        return None
    for name in SD_LISTEN_ENV:
        os.environ.pop(name, None)

    for fd in range(SD_LISTEN_FDS_START, SD_LISTEN_FDS_START + nfds):
        sock = socket.socket(fileno=fd)
        if sock.family == socket.AF_UNIX and sock.type == socket.SOCK_STREAM:
            log.info("using socket-activated listener on fd %d", fd)
            return Listener(sock, owned_path=None)
        log.warning("ignoring activated fd %d: not a UNIX stream socket", fd)
        sock.detach()
    return None


def bind_listener(config: SocketConfig) -> Listener:
    """Bind the configured path, replacing a stale socket file."""
    path = config.path
    try:
        if stat.S_ISSOCK(os.lstat(path).st_mode):
            log.warning("removing stale socket %s", path)
            os.unlink(path)
    except FileNotFoundError:
        pass

    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        sock.bind(path)
        os.chmod(path, config.mode)
        sock.listen(BACKLOG)
    except OSError:
        sock.close()
        raise
    log.info("listening on %s (mode %04o)", path, config.mode)
    return Listener(sock, owned_path=path)

