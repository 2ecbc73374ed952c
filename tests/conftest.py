from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Mapping

import pytest

from apiload.loadgen.client import TransportResponse, is_success_status


@dataclass
class SentRequest:
    method: str
    url: str
    headers: dict[str, str]
    body: str | None


@dataclass
class StubTransport:
    """In-memory transport answering every request with ``respond``."""

    respond: Callable[[SentRequest], int | BaseException] = lambda _: 200
    body_text: str = "  boom  "
    body_error: BaseException | None = None
    latency_sec: float = 0.0
    sent: list[SentRequest] = field(default_factory=list)
    on_response: Callable[[int], None] | None = None

    @asynccontextmanager
    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: str | None,
    ) -> AsyncIterator[TransportResponse]:
        request = SentRequest(method, url, dict(headers), body)
        self.sent.append(request)
        if self.latency_sec:
            await asyncio.sleep(self.latency_sec)
        outcome = self.respond(request)
        if isinstance(outcome, BaseException):
            raise outcome
        if self.on_response is not None:
            self.on_response(len(self.sent))
        yield TransportResponse(
            status_code=outcome,
            reason_phrase="Stub",
            success=is_success_status(outcome),
            read_body=self._read_body,
        )

    async def _read_body(self) -> str:
        if self.body_error is not None:
            raise self.body_error
        return self.body_text


@pytest.fixture
def stub_transport() -> StubTransport:
    return StubTransport()
