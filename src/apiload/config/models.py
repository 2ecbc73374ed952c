from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"

    @property
    def carries_body(self) -> bool:
        return self in _BODY_METHODS


_BODY_METHODS = frozenset({HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH, HttpMethod.DELETE})


class CredentialMode(str, Enum):
    EMBED = "embed"  # payload field or bootKey query parameter
    HEADER = "header"  # Authorization header


@dataclass(frozen=True, slots=True)
class TransportConfig:
    timeout_sec: float = 30.0
    max_connections: int = 1024
    keepalive_expiry_sec: float = 600.0
    follow_redirects: bool = False
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RunConfig:
    url: str
    method: HttpMethod = HttpMethod.GET
    credential: str | None = None
    concurrency: int = 1
    requests_per_worker: int = 1
    delay_sec: float = 0.0
    body: str | None = None
    credential_mode: CredentialMode = CredentialMode.EMBED
    transport: TransportConfig = field(default_factory=TransportConfig)

    @property
    def planned_requests(self) -> int:
        return self.concurrency * self.requests_per_worker

    def to_metadata(self) -> Mapping[str, Any]:
        return {
            "url": self.url,
            "method": self.method.value,
            "credential": _mask(self.credential),
            "credential_mode": self.credential_mode.value,
            "concurrency": self.concurrency,
            "requests_per_worker": self.requests_per_worker,
            "delay_sec": self.delay_sec,
            "body_bytes": len(self.body.encode("utf-8")) if self.body else 0,
            "transport": {
                "timeout_sec": self.transport.timeout_sec,
                "max_connections": self.transport.max_connections,
                "keepalive_expiry_sec": self.transport.keepalive_expiry_sec,
                "follow_redirects": self.transport.follow_redirects,
                "headers": sorted(self.transport.headers),
            },
        }


def _mask(value: str | None) -> str:
    if value is None or not value.strip():
        return "(empty)"
    if len(value) <= 4:
        return "****"
    return value[:2] + "*" * (len(value) - 4) + value[-2:]
