from __future__ import annotations

import socket
import time
from typing import Callable

import pytest


@pytest.fixture
def wait_stderr(capsys: pytest.CaptureFixture[str]) -> Callable[..., str]:
    """Poll captured stderr until `predicate(text)` holds or the timeout passes.

    Listener threads log asynchronously, so a single readouterr() can miss lines.
    """
    seen: list[str] = []

    def wait(predicate: Callable[[str], bool], timeout: float = 2.0) -> str:
        deadline = time.monotonic() + timeout
        while True:
            seen.append(capsys.readouterr().err)
            text = "".join(seen)
            if predicate(text) or time.monotonic() >= deadline:
                return text
            time.sleep(0.01)

    return wait


@pytest.fixture
def closed_port() -> int:
    """A loopback port that had a socket a moment ago and has none now."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
