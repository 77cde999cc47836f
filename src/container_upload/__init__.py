"""Public surface for streaming files into running containers."""

from .client import UploadClient, UploadOptions, upload_file
from .endpoint import Endpoint, parse_endpoint
from .errors import (
    ConfigurationError,
    ConnectionError,
    ContainerNotFoundError,
    ContainerUploadError,
    HandshakeError,
    ProtocolError,
    SessionStateError,
    StreamSyncError,
)
from .session import ExecSession
from .stream import UploadStream
from .types import SessionState, UploadResult
from .version import __version__

__all__ = [
    "__version__",
    "ConfigurationError",
    "ConnectionError",
    "ContainerNotFoundError",
    "ContainerUploadError",
    "Endpoint",
    "ExecSession",
    "HandshakeError",
    "ProtocolError",
    "SessionState",
    "SessionStateError",
    "StreamSyncError",
    "UploadClient",
    "UploadOptions",
    "UploadResult",
    "UploadStream",
    "parse_endpoint",
    "upload_file",
]
