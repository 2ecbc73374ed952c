from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncContextManager, AsyncIterator, Awaitable, Callable, Mapping, Protocol

import httpx

from apiload.config import TransportConfig
from apiload.metrics import ErrorType

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TransportResponse:
    status_code: int
    reason_phrase: str
    success: bool
    read_body: Callable[[], Awaitable[str]]


class Transport(Protocol):
    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: str | None,
    ) -> AsyncContextManager[TransportResponse]:
        ...


def is_success_status(status_code: int) -> bool:
    return 200 <= status_code < 400


def classify_exception(exc: BaseException) -> ErrorType:
    if isinstance(exc, httpx.TimeoutException):
        return ErrorType.TIMEOUT
    if isinstance(exc, httpx.ConnectError):
        return ErrorType.CONNECT
    if isinstance(exc, httpx.ReadError):
        return ErrorType.READ
    return ErrorType.OTHER


class HttpxTransport:
    def __init__(self, client: httpx.AsyncClient, owns_client: bool = False) -> None:
        self._client = client
        self._owns_client = owns_client

    @classmethod
    def from_config(cls, config: TransportConfig) -> HttpxTransport:
        limits = httpx.Limits(
            max_connections=config.max_connections,
            max_keepalive_connections=config.max_connections,
            keepalive_expiry=config.keepalive_expiry_sec,
        )
        client = httpx.AsyncClient(
            timeout=config.timeout_sec,
            limits=limits,
            follow_redirects=config.follow_redirects,
            headers=dict(config.headers),
        )
        logger.debug(
            "httpx client ready: max_connections=%d timeout=%.1fs",
            config.max_connections,
            config.timeout_sec,
        )
        return cls(client, owns_client=True)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @asynccontextmanager
    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: str | None,
    ) -> AsyncIterator[TransportResponse]:
        content = body.encode("utf-8") if body is not None else None
        request = self._client.build_request(method, url, headers=dict(headers), content=content)
        response = await self._client.send(request, stream=True)
        try:
            yield TransportResponse(
                status_code=response.status_code,
                reason_phrase=response.reason_phrase,
                success=is_success_status(response.status_code),
                read_body=lambda: _read_text(response),
            )
        finally:
            await response.aclose()


async def _read_text(response: httpx.Response) -> str:
    await response.aread()
    return response.text
