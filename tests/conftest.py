from __future__ import annotations

import json
import socket
import threading
from typing import Iterator

import pytest


def create_response(exec_id: str = "abc123") -> bytes:
    body = json.dumps({"Id": exec_id}).encode("utf-8")
    head = (
        "HTTP/1.1 201 Created\r\n"
        "Api-Version: 1.41\r\n"
        "Content-Type: application/json\r\n"
        f"Content-Length: {len(body)}\r\n"
        "\r\n"
    )
    return head.encode("ascii") + body


def upgrade_response(ack: bytes = b"ok\r\n") -> bytes:
    return (
        b"HTTP/1.1 101 UPGRADED\r\n"
        b"Content-Type: application/vnd.docker.raw-stream\r\n"
        b"Connection: Upgrade\r\n"
        b"Upgrade: tcp\r\n"
        b"\r\n" + ack
    )


def _read_request(reader) -> tuple[bytes, bytes] | None:
    head = b""
    while True:
        line = reader.readline()
        if not line:
            return None
        head += line
        if line in (b"\r\n", b"\n"):
            break
    length = 0
    for raw in head.split(b"\r\n"):
        name, _, value = raw.partition(b":")
        if name.strip().lower() == b"content-length":
            length = int(value.strip())
    return head, reader.read(length)


class ScriptedEngine:
    """Single-connection engine that replays canned responses.

    Each incoming request is answered with the next scripted response. Once
    the script is exhausted everything else the client sends is collected
    into ``payload`` until the client closes. With ``hangup`` the server
    half-closes right after the last response.
    """

    def __init__(self, responses: list[bytes], *, hangup: bool = False) -> None:
        self.responses = responses
        self.hangup = hangup
        self.requests: list[tuple[bytes, bytes]] = []
        self.payload = b""
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen(1)
        self.port = self._listener.getsockname()[1]
        self.url = f"http://127.0.0.1:{self.port}"
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    @property
    def request_lines(self) -> list[str]:
        return [head.split(b"\r\n", 1)[0].decode("ascii") for head, _ in self.requests]

    def join(self, timeout: float = 5.0) -> None:
        self._thread.join(timeout)
        assert not self._thread.is_alive(), "scripted engine did not finish"

    def close(self) -> None:
        self._listener.close()

    def _serve(self) -> None:
        conn, _ = self._listener.accept()
        with conn:
            reader = conn.makefile("rb")
            try:
                for response in self.responses:
                    request = _read_request(reader)
                    if request is None:
                        return
                    self.requests.append(request)
                    conn.sendall(response)
                if self.hangup:
                    conn.shutdown(socket.SHUT_WR)
                self.payload = reader.read()
            finally:
                reader.close()


@pytest.fixture
def engine_factory() -> Iterator:
    engines: list[ScriptedEngine] = []

    def factory(responses: list[bytes], *, hangup: bool = False) -> ScriptedEngine:
        engine = ScriptedEngine(responses, hangup=hangup)
        engines.append(engine)
        return engine

    yield factory
    for engine in engines:
        engine.close()
