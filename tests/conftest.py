from __future__ import annotations

import socket
import threading
from collections.abc import Callable, Iterator

import pytest

from tor_control.core.connection import ControlReply


class FakeConnection:
    """Stands in for ControlConnection and records what dispatch does with it."""

    def __init__(self, *, connect_ok: bool = True, auth_ok: bool = True, replies: list[ControlReply] | None = None):
        self.connect_ok = connect_ok
        self.auth_ok = auth_ok
        self.replies = list(replies or [])
        self.calls: list[str] = []
        self.sent: list[str] = []
        self.close_count = 0
        self.opened_with: tuple | None = None

    def __call__(self, address: str, port: int, *, timeout: float) -> FakeConnection:
        self.opened_with = (address, port, timeout)
        return self

    def connect(self) -> bool:
        self.calls.append("connect")
        return self.connect_ok

    def authenticate(self, secret: str = "") -> bool:
        self.calls.append("authenticate")
        self.secret = secret
        return self.auth_ok

    def send_command(self, line: str) -> ControlReply:
        self.calls.append("send_command")
        self.sent.append(line)
        return self.replies.pop(0)

    def close(self) -> None:
        self.close_count += 1

    def __enter__(self) -> FakeConnection:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ScriptedControlPort:
    """A one-connection TCP server answering control lines from a script."""

    def __init__(self, replies: dict[str, str | bytes]):
        self.replies = replies
        self.received: list[str] = []
        self._server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._server.bind(("127.0.0.1", 0))
        self._server.listen(1)
        self._server.settimeout(5)
        self.port = self._server.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def _serve(self) -> None:
        try:
            client, _ = self._server.accept()
        except OSError:
            return
        with client, client.makefile("rb") as reader:
            for raw in reader:
                line = raw.decode().rstrip("\r\n")
                self.received.append(line)
                if line == "QUIT":
                    client.sendall(b"250 closing connection\r\n")
                    return
                reply = self.replies.get(line, "510 Unrecognized command\r\n")
                client.sendall(reply if isinstance(reply, bytes) else reply.encode())

    def start(self) -> ScriptedControlPort:
        self._thread.start()
        return self

    def stop(self) -> None:
        self._thread.join(timeout=5)
        self._server.close()


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def control_port() -> Iterator[Callable[[dict[str, str | bytes]], ScriptedControlPort]]:
    servers: list[ScriptedControlPort] = []

    def start(replies: dict[str, str | bytes]) -> ScriptedControlPort:
        server = ScriptedControlPort(replies).start()
        servers.append(server)
        return server

    yield start
    for server in servers:
        server.stop()


@pytest.fixture
def unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
