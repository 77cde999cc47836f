"""High-level entry points for streaming a file into a container."""

from __future__ import annotations

import ssl
from dataclasses import dataclass
from typing import Any, Iterable, Union

from .endpoint import Endpoint, parse_endpoint
from .logger import LogLevel, create_logger
from .session import DEFAULT_SHELL, ExecSession
from .stream import UploadStream
from .types import UploadResult

Payload = Union[bytes, bytearray, memoryview, Iterable[bytes]]


@dataclass
class UploadOptions:
    base_url: str
    shell: str = DEFAULT_SHELL
    connect_timeout: float | None = None
    read_timeout: float | None = None
    ssl_context: ssl.SSLContext | None = None
    logger: object | None = None
    log_level: LogLevel = "info"


class UploadClient:
    """Opens one exec session per upload against a container engine."""

    def __init__(
        self,
        *,
        base_url: str,
        shell: str = DEFAULT_SHELL,
        connect_timeout: float | None = None,
        read_timeout: float | None = None,
        ssl_context: ssl.SSLContext | None = None,
        logger: object | None = None,
        log_level: LogLevel = "info",
    ) -> None:
        options = UploadOptions(
            base_url=base_url,
            shell=shell,
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            ssl_context=ssl_context,
            logger=logger,
            log_level=log_level,
        )
        self.options = options
        self.endpoint: Endpoint = parse_endpoint(options.base_url)
        self._logger = create_logger(logger=options.logger, level=options.log_level)
        self._logger.debug("Upload client ready for %s", options.base_url)

    def open(self, container_id: str, filename: str) -> UploadStream:
        session = ExecSession(
            self.endpoint,
            container_id,
            filename,
            shell=self.options.shell,
            connect_timeout=self.options.connect_timeout,
            read_timeout=self.options.read_timeout,
            ssl_context=self.options.ssl_context,
            logger=self._logger,
        )
        return session.open_stream()

    def upload(self, container_id: str, filename: str, data: Payload) -> int:
        stream = self.open(container_id, filename)
        try:
            if isinstance(data, (bytes, bytearray, memoryview)):
                stream.write(data)
            else:
                for chunk in data:
                    stream.write(chunk)
        except BaseException:
            try:
                stream.close()
            except OSError as exc:
                self._logger.warn("Closing %s:%s after a failed write also failed: %s", container_id, filename, exc)
            raise
        stream.close()
        self._logger.info("Uploaded %d bytes to %s:%s", stream.bytes_written, container_id, filename)
        return stream.bytes_written

    def upload_safe(self, container_id: str, filename: str, data: Payload) -> UploadResult[int]:
        try:
            written = self.upload(container_id, filename, data)
            return UploadResult(ok=True, data=written)
        except Exception as exc:
            return UploadResult(ok=False, error=exc)


def upload_file(server_address: str, container_id: str, filename: str, **options: Any) -> UploadStream:
    """Return a byte sink whose writes land in ``filename`` inside ``container_id``."""
    return UploadClient(base_url=server_address, **options).open(container_id, filename)


__all__ = ["UploadClient", "UploadOptions", "upload_file"]
