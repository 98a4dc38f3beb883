"""Network endpoints that requests or bastions are sent to."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import urlsplit

from funcie.utils import str_field

_PORT_RE = re.compile(r"[+-]?\d+")


def _split_host_port(hostport: str) -> tuple[str, str]:
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise ValueError(f"address {hostport}: missing ']' in address")
        host, rest = hostport[1:end], hostport[end + 1 :]
        if not rest.startswith(":"):
            raise ValueError(f"address {hostport}: missing port in address")
        port = rest[1:]
        if ":" in port:
            raise ValueError(f"address {hostport}: too many colons in address")
        return host, port
    if ":" not in hostport:
        raise ValueError(f"address {hostport}: missing port in address")
    host, _, port = hostport.rpartition(":")
    if ":" in host:
        raise ValueError(f"address {hostport}: too many colons in address")
    return host, port


@dataclass(frozen=True)
class Endpoint:
    """A target destination: scheme, host name or IP, and port."""

    scheme: str
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    @classmethod
    def from_address(cls, address: str) -> Endpoint:
        """Parse an address such as ``https://127.0.0.1:8080``."""
        try:
            parts = urlsplit(address)
        except ValueError as exc:
            raise ValueError(f"parsing address {address}: {exc}") from exc
        netloc = parts.netloc.rpartition("@")[2]
        try:
            host, port = _split_host_port(netloc)
        except ValueError as exc:
            raise ValueError(f"splitting host and port from address {address}: {exc}") from exc
        if not _PORT_RE.fullmatch(port):
            raise ValueError(f"converting port {port} to int: invalid syntax")
        return cls(parts.scheme, host, int(port))

    def to_dict(self) -> dict[str, Any]:
        return {"protocol": self.scheme, "host": self.host, "port": self.port}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Endpoint:
        if not isinstance(data, Mapping):
            raise ValueError("endpoint must be a JSON object")
        port = data.get("port")
        if port is None:
            port = 0
        if isinstance(port, bool) or not isinstance(port, int):
            raise ValueError(f"endpoint port must be an integer, not {port!r}")
        return cls(str_field(data, "protocol"), str_field(data, "host"), port)