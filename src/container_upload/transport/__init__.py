"""Socket connection and HTTP framing used by the exec session."""

from .base import Connection, HandshakeResponse
from .framing import FrameReader, FrameWriter, build_request
from .tcp import TcpConnection, open_connection

__all__ = [
    "Connection",
    "FrameReader",
    "FrameWriter",
    "HandshakeResponse",
    "TcpConnection",
    "build_request",
    "open_connection",
]
