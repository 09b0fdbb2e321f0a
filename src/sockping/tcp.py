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


def _serve_connection(conn: socket.socket, peer: Endpoint, config: ListenerConfig) -> bool:
    """Read from one accepted connection until EOF, an error or the budget runs out.

    Returns True only when the budget was used up with the peer still connected.
    """
    for _ in config.iterations():
        try:
            data = conn.recv(BUFFER_SIZE)
        except OSError:
            return False
        if not data:
            return False
        if config.mode.reply:
            try:
                conn.sendall(data)
            except OSError:
                return False
        else:
            log(f"read {len(data)} bytes from {peer}")
    return True


def spawn_tcp_listener(config: ListenerConfig) -> Endpoint:
    """Listen on an ephemeral loopback port and serve it from a daemon thread.

    Connections are served one after another on that single thread. The
    thread exits silently if accept() fails; there is no way to stop it
    otherwise.
    """
    server, addr = bind_loopback(socket.SOCK_STREAM)

    def accept_loop() -> None:
        # Connections whose budget ran out stay open; nothing reads them again.
        exhausted: list[socket.socket] = []
        with server:
            while True:
                try:
                    conn, peer = server.accept()
                except OSError:
                    return
                # Grows by at most one socket per client served.
                if _serve_connection(conn, Endpoint(*peer[:2]), config):
                    exhausted.append(conn)
                else:
                    conn.close()

    threading.Thread(target=accept_loop, name="tcp-listener", daemon=True).start()
    return addr


def run_tcp_client(
    target: Endpoint,
    mode: Mode = Mode.PING,
    count: int | None = None,
    interval: float = INTERVAL,
) -> None:
    """Connect to `target` and send PAYLOAD every `interval` seconds.

    Loops forever unless `count` is given. Any socket error is raised as
    PingError.
    """
    try:
        stream = socket.create_connection(target.as_tuple())
    except OSError as exc:
        raise PingError("failed to connect") from exc

    with stream:
        n = 0
        while count is None or n < count:
            log(f"ping {n}")
            try:
                stream.sendall(PAYLOAD)
            except OSError as exc:
                raise PingError("failed to send") from exc
            if mode.reply:
                try:
                    stream.recv(BUFFER_SIZE)
                except OSError as exc:
                    raise PingError("failed to receive") from exc
            n += 1
            time.sleep(interval)
