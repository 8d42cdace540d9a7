"""One-shot client for a running greylistd.

One connection per command: send the line, half-close, read the reply
until the daemon closes the connection.
"""
from __future__ import annotations

import socket

DEFAULT_SOCKET_PATH = "/var/run/greylistd/socket"


def send_command(socket_path: str, text: str, timeout: float = 5.0) -> str:
    """Send one command and return the daemon's reply.

    Raises:
        OSError: the daemon is not reachable or the exchange timed out.
    """
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
        sock.settimeout(timeout)
        sock.connect(socket_path)
        sock.sendall(text.encode("utf-8"))
        sock.shutdown(socket.SHUT_WR)
        chunks: list[bytes] = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks).decode("utf-8")
