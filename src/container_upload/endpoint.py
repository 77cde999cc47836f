"""Server address parsing."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote, urlparse

from .errors import ConfigurationError

DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class Endpoint:
    scheme: str
    host: str
    port: int
    base_path: str = "/"
    query: str | None = None

    @property
    def use_ssl(self) -> bool:
        return self.scheme == "https"

    @property
    def host_header(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.port == DEFAULT_PORTS[self.scheme]:
            return host
        return f"{host}:{self.port}"

    def target(self, *segments: str) -> str:
        """Build a request target below the base path, percent-encoding each segment."""
        path = self.base_path + "/".join(quote(segment, safe="") for segment in segments)
        if self.query:
            return f"{path}?{self.query}"
        return path


def parse_endpoint(address: str) -> Endpoint:
    parsed = urlparse(address.strip())
    scheme = parsed.scheme.lower()
    if scheme not in DEFAULT_PORTS:
        raise ConfigurationError(f"Unsupported scheme: {parsed.scheme or '(none)'}", context=address)

    host = parsed.hostname
    if not host:
        raise ConfigurationError(f"Missing host in server address: {address}", context=address)

    try:
        port = parsed.port or DEFAULT_PORTS[scheme]
    except ValueError as exc:
        raise ConfigurationError(f"Invalid port in server address: {address}", context=address) from exc

    base_path = parsed.path or "/"
    if not base_path.endswith("/"):
        base_path += "/"

    return Endpoint(
        scheme=scheme,
        host=host,
        port=port,
        base_path=base_path,
        query=parsed.query or None,
    )


__all__ = ["DEFAULT_PORTS", "Endpoint", "parse_endpoint"]
