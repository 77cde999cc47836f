"""Two-phase exec protocol driver: create the exec, then start it with an upgrade."""

from __future__ import annotations

import shlex
import ssl
from contextlib import contextmanager
from typing import Any, Iterator

from .endpoint import Endpoint, parse_endpoint
from .errors import (
    ConfigurationError,
    ContainerNotFoundError,
    HandshakeError,
    ProtocolError,
    SessionStateError,
    StreamSyncError,
)
from .logger import BoundLogger, create_logger
from .parser import (
    ACK_TOKEN,
    UPGRADE_STATUS_LINE,
    extract_error_message,
    extract_exec_id,
    is_ack,
    normalize_ack,
    parse_status_code,
)
from .stream import UploadStream
from .transport import Connection, FrameReader, FrameWriter, HandshakeResponse, open_connection
from .types import SessionState

DEFAULT_SHELL = "/bin/sh"

ATTACH_FLAGS: dict[str, Any] = {
    "AttachStdin": True,
    "AttachStdout": True,
    "AttachStderr": True,
    "Detach": False,
    "Tty": False,
}


def build_exec_command(filename: str) -> str:
    """Shell line that prints the ack token once the file is writable, then copies stdin into it.

    ``&& false ||`` makes ``cat`` run whatever ``touch`` returned, while the
    ack is printed only when ``touch`` succeeded.
    """
    target = shlex.quote(filename)
    return f"touch {target} && echo '{ACK_TOKEN}' && false || cat > {target}"


def build_exec_create_payload(filename: str, shell: str = DEFAULT_SHELL) -> dict[str, Any]:
    return {**ATTACH_FLAGS, "Cmd": [shell, "-c", build_exec_command(filename)]}


class ExecSession:
    """Single-use session that turns one engine connection into an upload stream.

    The connection is opened on construction. Until :meth:`open_stream`
    returns, the session closes it on any failure; afterwards the returned
    :class:`UploadStream` owns it.
    """

    def __init__(
        self,
        endpoint: Endpoint | str,
        container_id: str,
        filename: str,
        *,
        shell: str = DEFAULT_SHELL,
        connection: Connection | None = None,
        connect_timeout: float | None = None,
        read_timeout: float | None = None,
        ssl_context: ssl.SSLContext | None = None,
        logger: Any | None = None,
    ) -> None:
        if not container_id:
            raise ConfigurationError("Container ID is required")
        if not filename or "\x00" in filename:
            raise ConfigurationError(f"Invalid target filename: {filename!r}")

        self.endpoint = endpoint if isinstance(endpoint, Endpoint) else parse_endpoint(endpoint)
        self.container_id = container_id
        self.filename = filename
        self.shell = shell
        self.exec_id: str | None = None
        self.state = SessionState.INIT

        base_logger: BoundLogger = create_logger(logger=logger)
        self._logger = base_logger.child("session")
        self._connection = connection or open_connection(
            self.endpoint,
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            ssl_context=ssl_context,
            logger=base_logger,
        )
        self._writer = FrameWriter(self._connection.writer, logger=base_logger)
        self._reader = FrameReader(self._connection.reader, logger=base_logger)
        self._base_logger = base_logger
        self.state = SessionState.CONNECTED

    @property
    def connection(self) -> Connection:
        return self._connection

    def create_exec(self) -> str:
        self._require(SessionState.CONNECTED, "create an exec")
        with self._guard():
            target = self.endpoint.target("containers", self.container_id, "exec")
            payload = build_exec_create_payload(self.filename, self.shell)
            self._writer.post_json(target, self.endpoint.host_header, payload)

            status_line = self._reader.read_status_line()
            status = parse_status_code(status_line)
            if status == 404:
                raise ContainerNotFoundError(
                    f"Container with ID {self.container_id} not found", context=status_line
                )
            response = HandshakeResponse(status_line, status, self._reader.read_headers())
            if not response.ok:
                body = self._reader.read_body(response.headers)
                message = extract_error_message(body.decode("utf-8", errors="replace") if body else None)
                raise ProtocolError(f"Exec create failed with status {status}: {message}", context=response)

            self.exec_id = self._read_exec_id(response)
        self.state = SessionState.EXEC_CREATED
        self._logger.debug("Created exec %s in container %s", self.exec_id, self.container_id)
        return self.exec_id

    def start_and_upgrade(self) -> None:
        self._require(SessionState.EXEC_CREATED, "start the exec")
        assert self.exec_id is not None
        with self._guard():
            target = self.endpoint.target("exec", self.exec_id, "start")
            self._writer.post_json(target, self.endpoint.host_header, ATTACH_FLAGS, upgrade="tcp")

            status_line = self._reader.read_status_line()
            if status_line != UPGRADE_STATUS_LINE:
                raise HandshakeError(f"Invalid handshake response: {status_line}", context=status_line)
            self._reader.read_headers()
            self.state = SessionState.UPGRADED
            self._await_ack()
        self._logger.debug("Exec %s upgraded and acknowledged", self.exec_id)

    def open_stream(self) -> UploadStream:
        """Run whichever handshake phases remain and return the upload stream."""
        if self.state is SessionState.CONNECTED:
            self.create_exec()
        if self.state is SessionState.EXEC_CREATED:
            self.start_and_upgrade()
        self._require(SessionState.UPGRADED, "open an upload stream")
        # Writes block on backpressure; the read deadline only covers the handshake.
        self._connection.settimeout(None)
        stream = UploadStream(self._connection, on_close=self._mark_closed, logger=self._base_logger)
        self.state = SessionState.STREAMING
        self._logger.info("Streaming into %s:%s", self.container_id, self.filename)
        return stream

    def close(self) -> None:
        """Abandon the session before streaming starts.

        Once a stream has been handed out it owns the connection, so this is a
        no-op in the STREAMING and CLOSED states.
        """
        if self.state in (SessionState.STREAMING, SessionState.CLOSED):
            return
        self._connection.close()
        if self.state is not SessionState.FAILED:
            self.state = SessionState.CLOSED

    def _read_exec_id(self, response: HandshakeResponse) -> str:
        body = self._reader.read_body(response.headers)
        if body is not None:
            exec_id = extract_exec_id(body.decode("utf-8", errors="replace"))
            if not exec_id:
                raise ProtocolError("Exec create response carries no Id", context=body)
            return exec_id

        # Unframed body: scan up to the first line naming the Id.
        while True:
            line = self._reader.read_line()
            if line is None:
                raise ProtocolError("Connection closed before an exec Id was received")
            if '"Id"' not in line:
                continue
            exec_id = extract_exec_id(line)
            if not exec_id:
                raise ProtocolError(f"Cannot read exec Id from {line!r}", context=line)
            return exec_id

    def _await_ack(self) -> None:
        line = self._reader.readline()
        if not line:
            raise StreamSyncError("Connection closed before the remote shell acknowledged")
        if not is_ack(line):
            raise StreamSyncError(
                f"Unexpected result of touch on {self.filename}: {normalize_ack(line)!r}", context=line
            )

    def _require(self, expected: SessionState, action: str) -> None:
        if self.state is not expected:
            raise SessionStateError(f"Cannot {action} in state {self.state.value}", context=self.state)

    def _mark_closed(self) -> None:
        self.state = SessionState.CLOSED

    @contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except BaseException as exc:
            self.state = SessionState.FAILED
            self._connection.close()
            self._logger.warn("Session for %s failed: %s", self.container_id, exc)
            raise


__all__ = [
    "ATTACH_FLAGS",
    "DEFAULT_SHELL",
    "ExecSession",
    "build_exec_command",
    "build_exec_create_payload",
]
