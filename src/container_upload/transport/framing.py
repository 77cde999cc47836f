"""Hand-rolled HTTP/1.1 framing for the exec create and start requests.

Only two request shapes are ever sent. The reader never consumes bytes
beyond the response it was asked for: after the upgrade the same
connection carries raw exec data.
"""

from __future__ import annotations

import json
from typing import Any, BinaryIO, Mapping

from ..errors import ConnectionError, ProtocolError
from ..logger import BoundLogger, create_logger
from ..parser import parse_status_code
from .base import HandshakeResponse

CRLF = "\r\n"
MAX_LINE_BYTES = 64 * 1024


def build_request(
    target: str,
    host: str,
    payload: Mapping[str, Any],
    *,
    upgrade: str | None = None,
) -> bytes:
    body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    lines = [f"POST {target} HTTP/1.1"]
    if upgrade:
        lines.append(f"Upgrade: {upgrade}")
        lines.append("Connection: Upgrade")
    lines.extend(
        [
            f"Host: {host}",
            "Content-Type: application/json",
            f"Content-Length: {len(body)}",
            "",
            "",
        ]
    )
    return CRLF.join(lines).encode("utf-8") + body


class FrameWriter:
    def __init__(self, stream: BinaryIO, *, logger: BoundLogger | None = None) -> None:
        self._stream = stream
        self._logger = (logger or create_logger()).child("writer")

    def post_json(
        self,
        target: str,
        host: str,
        payload: Mapping[str, Any],
        *,
        upgrade: str | None = None,
    ) -> int:
        request = build_request(target, host, payload, upgrade=upgrade)
        self._logger.debug("POST %s bytes=%d upgrade=%s", target, len(request), upgrade or "-")
        try:
            self._stream.write(request)
            self._stream.flush()
        except OSError as exc:
            raise ConnectionError(f"Request write failed: {exc}", context=target) from exc
        return len(request)


class FrameReader:
    def __init__(self, stream: BinaryIO, *, logger: BoundLogger | None = None) -> None:
        self._stream = stream
        self._logger = (logger or create_logger()).child("reader")

    def readline(self) -> bytes:
        """Read one raw line including its terminator; ``b""`` at end of stream."""
        try:
            line = self._stream.readline(MAX_LINE_BYTES + 1)
        except TimeoutError as exc:
            raise ConnectionError("Read timed out waiting for the engine") from exc
        except OSError as exc:
            raise ConnectionError(f"Read failed: {exc}") from exc
        if len(line) > MAX_LINE_BYTES:
            raise ProtocolError(f"Response line exceeds {MAX_LINE_BYTES} bytes")
        return line

    def read_line(self) -> str | None:
        line = self.readline()
        if not line:
            return None
        return line.rstrip(b"\r\n").decode("utf-8", errors="replace")

    def read_status_line(self) -> str:
        line = self.read_line()
        if line is None:
            raise ProtocolError("Connection closed before a status line was received")
        self._logger.debug("status: %s", line)
        return line

    def read_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        while True:
            line = self.read_line()
            if line is None:
                raise ProtocolError("Connection closed while reading response headers")
            if line == "":
                return headers
            self._logger.trace("header: %s", line)
            name, sep, value = line.partition(":")
            if sep:
                headers[name.strip().lower()] = value.strip()

    def read_response_head(self) -> HandshakeResponse:
        status_line = self.read_status_line()
        status = parse_status_code(status_line)
        headers = self.read_headers()
        return HandshakeResponse(status_line=status_line, status=status, headers=headers)

    def read_body(self, headers: Mapping[str, str]) -> bytes | None:
        """Read a framed body, or return ``None`` when the response carries no framing."""
        if "chunked" in headers.get("transfer-encoding", "").lower():
            return self._read_chunked()
        length = headers.get("content-length")
        if length is None:
            return None
        try:
            size = int(length)
        except ValueError as exc:
            raise ProtocolError(f"Invalid Content-Length: {length!r}") from exc
        if size < 0:
            raise ProtocolError(f"Invalid Content-Length: {length!r}")
        return self._read_exact(size)

    def _read_exact(self, size: int) -> bytes:
        try:
            data = self._stream.read(size)
        except TimeoutError as exc:
            raise ConnectionError("Read timed out waiting for the engine") from exc
        except OSError as exc:
            raise ConnectionError(f"Read failed: {exc}") from exc
        if len(data) < size:
            raise ProtocolError(f"Connection closed after {len(data)} of {size} body bytes")
        return data

    def _read_chunked(self) -> bytes:
        chunks: list[bytes] = []
        while True:
            line = self.read_line()
            if line is None:
                raise ProtocolError("Connection closed inside a chunked body")
            size_text = line.split(";", 1)[0].strip()
            try:
                size = int(size_text, 16)
            except ValueError as exc:
                raise ProtocolError(f"Invalid chunk size: {line!r}") from exc
            if size == 0:
                break
            chunks.append(self._read_exact(size))
            self._read_exact(2)
        # trailers
        while True:
            line = self.read_line()
            if line is None or line == "":
                break
        return b"".join(chunks)


__all__ = ["CRLF", "FrameReader", "FrameWriter", "MAX_LINE_BYTES", "build_request"]
