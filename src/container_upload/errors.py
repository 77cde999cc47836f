"""Exceptions raised while opening an upload stream into a container."""

from __future__ import annotations

from typing import Any


class ContainerUploadError(Exception):
    """Base error for all upload failures."""

    def __init__(self, message: str, *, context: Any | None = None) -> None:
        super().__init__(message)
        self.context = context


class ConfigurationError(ContainerUploadError):
    """Raised when the server address cannot be used."""


class ConnectionError(ContainerUploadError):
    """Raised when the engine cannot be reached or the socket fails mid-handshake."""


class ContainerNotFoundError(ContainerUploadError):
    """Raised when the engine reports that the target container does not exist."""


class ProtocolError(ContainerUploadError):
    """Raised when a response does not have the expected shape."""


class HandshakeError(ProtocolError):
    """Raised when the engine refuses to upgrade the exec start request."""


class StreamSyncError(ContainerUploadError):
    """Raised when the remote shell does not acknowledge with ``ok``."""


class SessionStateError(ContainerUploadError):
    """Raised when session phases are called out of order or twice."""


__all__ = [
    "ConfigurationError",
    "ConnectionError",
    "ContainerNotFoundError",
    "ContainerUploadError",
    "HandshakeError",
    "ProtocolError",
    "SessionStateError",
    "StreamSyncError",
]
