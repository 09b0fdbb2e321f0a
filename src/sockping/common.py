from __future__ import annotations

import enum
import itertools
import socket
import sys
from dataclasses import dataclass
from typing import Iterable

LOOPBACK = "127.0.0.1"
PAYLOAD = b"ping"
BUFFER_SIZE = 1024
INTERVAL = 1.0


class PingError(RuntimeError):
    """A foreground socket operation failed; the message names the operation."""


@dataclass(frozen=True)
class Endpoint:
    host: str
    port: int

    @classmethod
    def from_sockname(cls, sock: socket.socket) -> Endpoint:
        try:
            host, port = sock.getsockname()[:2]
        except OSError as exc:
            raise PingError("failed to get local address") from exc
        return cls(host, port)

    def as_tuple(self) -> tuple[str, int]:
        return (self.host, self.port)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class Mode(enum.Enum):
    """Listener/client variant.

    PING: the listener echoes every read back and the client waits for one
    reply per iteration. WRITE: the listener only logs what it read and the
    client never waits.
    """

    PING = "ping"
    WRITE = "write"

    @property
    def reply(self) -> bool:
        return self is Mode.PING


@dataclass(frozen=True)
class ListenerConfig:
    accept_limit: int | None = None
    mode: Mode = Mode.PING

    def iterations(self) -> Iterable[int]:
        if self.accept_limit is None:
            return itertools.count()
        return range(self.accept_limit)


def log(message: str) -> None:
    print(message, file=sys.stderr, flush=True)


def bind_loopback(kind: int) -> tuple[socket.socket, Endpoint]:
    """Bind a new socket of type `kind` to an ephemeral loopback port.

    Stream sockets are also put into listening state.
    """
    sock = socket.socket(socket.AF_INET, kind)
    try:
        sock.bind((LOOPBACK, 0))
        if kind == socket.SOCK_STREAM:
            sock.listen(128)
    except OSError as exc:
        sock.close()
        raise PingError("failed to bind") from exc
    try:
        addr = Endpoint.from_sockname(sock)
    except PingError:
        sock.close()
        raise
    return sock, addr
