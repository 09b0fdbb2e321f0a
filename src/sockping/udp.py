from __future__ import annotations

import socket
import threading
import time

from sockping.common import (
    BUFFER_SIZE,
    INTERVAL,
    PAYLOAD,
    Endpoint,
    ListenerConfig,
    Mode,
    PingError,
    bind_loopback,
    log,
)


def spawn_udp_listener(config: ListenerConfig) -> Endpoint:
    """Bind an ephemeral loopback UDP port and receive on it from a daemon thread.

    The receive budget covers the socket's whole lifetime, not a single peer.
    """
    sock, addr = bind_loopback(socket.SOCK_DGRAM)

    def recv_loop() -> None:
        with sock:
            for _ in config.iterations():
                try:
                    data, peer = sock.recvfrom(BUFFER_SIZE)
                    if config.mode.reply:
                        sock.sendto(data, peer)
                    else:
                        log(f"read {len(data)} bytes from {Endpoint(*peer[:2])}")
                except OSError:
                    return

    threading.Thread(target=recv_loop, name="udp-listener", daemon=True).start()
    return addr


def run_udp_client(
    target: Endpoint,
    mode: Mode = Mode.PING,
    count: int | None = None,
    interval: float = INTERVAL,
) -> None:
    """Send PAYLOAD to `target` from a fresh ephemeral UDP socket.

    UDP is connectionless: nothing is checked up front, and in PING mode any
    datagram that arrives counts as the reply.
    """
    sock, _ = bind_loopback(socket.SOCK_DGRAM)
    with sock:
        n = 0
        while count is None or n < count:
            log(f"ping {n}")
            try:
                sock.sendto(PAYLOAD, target.as_tuple())
            except OSError as exc:
                raise PingError("failed to send") from exc
            if mode.reply:
                try:
                    sock.recvfrom(BUFFER_SIZE)
                except OSError as exc:
                    raise PingError("failed to receive") from exc
            n += 1
            time.sleep(interval)
