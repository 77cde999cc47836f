"""Field extraction for the two fixed engine responses."""

from __future__ import annotations

import json
import re

from .errors import ProtocolError

ACK_TOKEN = "ok"

UPGRADE_STATUS_LINE = "HTTP/1.1 101 UPGRADED"

# Whitespace plus the control bytes of an engine stream frame header
_ACK_STRIP = bytes(range(0x21))

_STATUS_PATTERN = re.compile(r"^HTTP/\d\.\d\s+(\d{3})(?:\s|$)")
_ID_PATTERN = re.compile(r'"Id"\s*:\s*"([^"\\]+)"')


def parse_status_code(status_line: str) -> int:
    match = _STATUS_PATTERN.match(status_line)
    if not match:
        raise ProtocolError(f"Malformed status line: {status_line!r}", context=status_line)
    return int(match.group(1))


def extract_exec_id(body: str | None) -> str | None:
    """Return the exec ``Id`` from a create response body or fragment.

    A complete JSON document is decoded structurally. A fragment that is not
    valid JSON on its own (one line of a pretty-printed body) is matched
    against the fixed ``"Id": "<value>"`` shape.
    """
    text = (body or "").strip()
    if not text:
        return None

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        match = _ID_PATTERN.search(text)
        return match.group(1) if match else None

    if isinstance(parsed, dict):
        value = parsed.get("Id")
        if isinstance(value, str) and value:
            return value
    return None


def extract_error_message(body: str | None) -> str:
    if not body:
        return "Error occurred"
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError:
        return body.strip() or "Error occurred"

    if isinstance(parsed, dict) and "message" in parsed:
        return str(parsed["message"])
    return body.strip() or "Error occurred"


def normalize_ack(line: bytes) -> str:
    return line.strip(_ACK_STRIP).decode("utf-8", errors="replace")


def is_ack(line: bytes) -> bool:
    return normalize_ack(line) == ACK_TOKEN


__all__ = [
    "ACK_TOKEN",
    "UPGRADE_STATUS_LINE",
    "extract_error_message",
    "extract_exec_id",
    "is_ack",
    "normalize_ack",
    "parse_status_code",
]
