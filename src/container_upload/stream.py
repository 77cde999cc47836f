"""Byte sink over an upgraded exec connection."""

from __future__ import annotations

import io
from typing import Any, Callable

from .logger import BoundLogger, create_logger
from .transport.base import Connection


class UploadStream(io.RawIOBase):
    """Forwards every write verbatim to the remote ``cat`` and owns the connection.

    Closing flushes and closes the connection, which gives ``cat`` its end of
    input. Close is idempotent. Writes are flushed immediately, so a stalled
    remote command blocks the caller through the socket's send buffer.
    """

    def __init__(
        self,
        connection: Connection,
        *,
        on_close: Callable[[], None] | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        super().__init__()
        self._connection = connection
        self._sink = connection.writer
        self._on_close = on_close
        self._logger = (logger or create_logger()).child("stream")
        self._bytes_written = 0

    @property
    def bytes_written(self) -> int:
        return self._bytes_written

    def writable(self) -> bool:
        return True

    def write(self, data: Any) -> int:
        if self.closed:
            raise ValueError("write to closed upload stream")
        size = memoryview(data).nbytes
        if not size:
            return 0
        self._sink.write(data)
        self._sink.flush()
        self._bytes_written += size
        self._logger.trace("forwarded %d bytes", size)
        return size

    def flush(self) -> None:
        super().flush()
        self._sink.flush()

    def close(self) -> None:
        if self.closed:
            return
        try:
            super().close()
        finally:
            self._connection.close()
            self._logger.debug("Upload stream closed after %d bytes", self._bytes_written)
            if self._on_close is not None:
                self._on_close()


__all__ = ["UploadStream"]
