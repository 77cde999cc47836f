"""Shared typing helpers."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class SessionState(str, enum.Enum):
    INIT = "init"
    CONNECTED = "connected"
    EXEC_CREATED = "exec_created"
    UPGRADED = "upgraded"
    STREAMING = "streaming"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass
class UploadResult(Generic[T]):
    ok: bool
    data: T | None = None
    error: Exception | None = None


__all__ = ["SessionState", "UploadResult"]
