"""TCP/TLS connection using the standard library socket module."""

from __future__ import annotations

import socket
import ssl
from typing import BinaryIO

from ..endpoint import Endpoint
from ..errors import ConnectionError
from ..logger import BoundLogger, create_logger


class TcpConnection:
    """Owns one socket plus the buffered reader and writer layered on it.

    The socket is only released once both file objects are closed, so
    ``close`` tears down all three.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        *,
        connect_timeout: float | None = None,
        read_timeout: float | None = None,
        ssl_context: ssl.SSLContext | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._ssl_context = ssl_context
        self._logger = (logger or create_logger()).child("tcp")
        self._socket: socket.socket | ssl.SSLSocket | None = None
        self._reader: BinaryIO | None = None
        self._writer: BinaryIO | None = None

    @property
    def reader(self) -> BinaryIO:
        if self._reader is None:
            raise ConnectionError("Connection is not open")
        return self._reader

    @property
    def writer(self) -> BinaryIO:
        if self._writer is None:
            raise ConnectionError("Connection is not open")
        return self._writer

    @property
    def closed(self) -> bool:
        return self._socket is None

    @property
    def timeout(self) -> float | None:
        if self._socket is None:
            return None
        return self._socket.gettimeout()

    def settimeout(self, timeout: float | None) -> None:
        if self._socket is not None:
            self._socket.settimeout(timeout)

    def connect(self) -> "TcpConnection":
        if self._socket is not None:
            return self
        host, port = self._endpoint.host, self._endpoint.port
        self._logger.info("Connecting to %s:%s (%s)", host, port, self._endpoint.scheme)
        try:
            raw_socket = socket.create_connection((host, port), timeout=self._connect_timeout)
            raw_socket.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            raw_socket.settimeout(self._read_timeout)
            self._socket = raw_socket
            if self._endpoint.use_ssl:
                context = self._ssl_context or ssl.create_default_context()
                self._socket = context.wrap_socket(raw_socket, server_hostname=host)
            self._reader = self._socket.makefile("rb")
            self._writer = self._socket.makefile("wb")
        except (OSError, ssl.SSLError) as exc:
            self.close()
            raise ConnectionError(f"Cannot connect to {host}:{port}: {exc}", context=self._endpoint) from exc
        return self

    def close(self) -> None:
        for stream in (self._reader, self._writer):
            if stream is None:
                continue
            try:
                stream.close()
            except Exception:
                pass
        self._reader = None
        self._writer = None
        if self._socket is not None:
            try:
                self._socket.close()
            except Exception:
                pass
            self._socket = None
            self._logger.debug("Closed connection to %s:%s", self._endpoint.host, self._endpoint.port)


def open_connection(
    endpoint: Endpoint,
    *,
    connect_timeout: float | None = None,
    read_timeout: float | None = None,
    ssl_context: ssl.SSLContext | None = None,
    logger: BoundLogger | None = None,
) -> TcpConnection:
    connection = TcpConnection(
        endpoint,
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        ssl_context=ssl_context,
        logger=logger,
    )
    return connection.connect()


__all__ = ["TcpConnection", "open_connection"]
