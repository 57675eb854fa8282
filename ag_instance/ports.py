"""Ephemeral port allocation for service instances."""

from __future__ import annotations

import socket

LOOPBACK = "127.0.0.1"


def allocate_port(host: str = LOOPBACK) -> int:
    """Return a TCP port that is currently free on ``host``.

    The socket is released before returning, so nothing is reserved: another
    process may claim the port before the caller binds it.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        return sock.getsockname()[1]


def allocate_ports(count: int, host: str = LOOPBACK) -> list[int]:
    """Allocate ``count`` distinct ports."""
    ports: list[int] = []
    while len(ports) < count:
        port = allocate_port(host)
        if port not in ports:
            ports.append(port)
    return ports
