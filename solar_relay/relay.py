"""UDP fan-out of encoded OSC messages."""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from typing import Callable, Iterable, List

from .osc import encode_message

logger = logging.getLogger(__name__)

SocketFactory = Callable[[], socket.socket]


@dataclass(frozen=True)
class Destination:
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def address(self) -> tuple[str, int]:
        return (self.host, self.port)


def parse_destination(value: str) -> Destination:
    """Parse ``host:port`` into a Destination."""
    text = (value or "").strip()
    host, sep, port_text = text.rpartition(":")
    if not sep or not host:
        raise ValueError(f"Destination must look like HOST:PORT, got {value!r}")
    try:
        port = int(port_text)
    except ValueError as exc:
        raise ValueError(f"Invalid port in destination {value!r}") from exc
    if not 0 < port < 65536:
        raise ValueError(f"Port out of range in destination {value!r}")
    return Destination(host.strip(), port)


def udp_socket() -> socket.socket:
    return socket.socket(socket.AF_INET, socket.SOCK_DGRAM)


class Relay:
    """Send each message once to every destination, in order.

    A fresh socket is opened per datagram and closed right after. Failures
    for one destination are logged and never stop delivery to the rest.
    """

    def __init__(self, socket_factory: SocketFactory = udp_socket) -> None:
        self._socket_factory = socket_factory

    def send(self, message: bytes, destinations: Iterable[Destination]) -> List[Destination]:
        delivered: List[Destination] = []
        for dest in destinations:
            try:
                with self._socket_factory() as sock:
                    sock.sendto(message, dest.address)
            except (OSError, ValueError, OverflowError) as exc:
                logger.warning("send to %s failed: %s", dest, exc)
                continue
            delivered.append(dest)
        return delivered

    def send_value(self, address: str, argument: str, destinations: Iterable[Destination]) -> List[Destination]:
        message = encode_message(address, argument)
        delivered = self.send(message, destinations)
        logger.debug("%s %s -> %s", address, argument, ", ".join(str(d) for d in delivered) or "nobody")
        return delivered
