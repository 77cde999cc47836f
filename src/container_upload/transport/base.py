"""Common transport abstractions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import BinaryIO, Mapping, Protocol, runtime_checkable


@dataclass
class HandshakeResponse:
    status_line: str
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@runtime_checkable
class Connection(Protocol):
    """A duplex byte stream: buffered reader and writer over one socket."""

    @property
    def reader(self) -> BinaryIO: ...

    @property
    def writer(self) -> BinaryIO: ...

    @property
    def closed(self) -> bool: ...

    def settimeout(self, timeout: float | None) -> None: ...

    def close(self) -> None: ...


__all__ = ["Connection", "HandshakeResponse"]
