from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from enum import Enum
from typing import AsyncIterator

from apiload.config import CredentialMode, HttpMethod, RunConfig, TransportConfig
from apiload.loadgen.cancel import DEFAULT_POLL_INTERVAL_SEC, CancellationController, StopSource
from apiload.loadgen.client import HttpxTransport, Transport
from apiload.loadgen.worker import run_worker
from apiload.metrics import ErrorSink, RunSummary, summarize

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class LoadRunner:
    def __init__(
        self,
        transport: Transport | None = None,
        stop_source: StopSource | None = None,
        poll_interval_sec: float = DEFAULT_POLL_INTERVAL_SEC,
    ) -> None:
        self._transport = transport
        self._stop_source = stop_source
        self._poll_interval_sec = poll_interval_sec
        self._controller: CancellationController | None = None
        self.state = RunState.IDLE
        self.last_outcome: RunState | None = None

    def cancel(self, reason: str = "cancel requested") -> bool:
        if self._controller is None:
            return False
        return self._controller.cancel(reason)

    async def run(self, config: RunConfig) -> RunSummary:
        if self.state is RunState.RUNNING:
            msg = "A run is already in progress"
            raise RuntimeError(msg)
        self.state = RunState.RUNNING
        try:
            summary = await self._execute(config)
        except BaseException:
            self.state = RunState.IDLE
            raise
        self.last_outcome = RunState.CANCELLED if summary.cancelled else RunState.COMPLETED
        self.state = RunState.IDLE
        return summary

    async def _execute(self, config: RunConfig) -> RunSummary:
        errors = ErrorSink()
        controller = CancellationController(self._stop_source, self._poll_interval_sec)
        logger.info("Starting run: %s", config.to_metadata())
        async with self._open_transport(config.transport) as transport:
            self._controller = controller
            started = time.perf_counter()
            controller.start_watcher()
            try:
                tallies = await asyncio.gather(
                    *(
                        run_worker(worker_id, config, transport, controller, errors)
                        for worker_id in range(1, config.concurrency + 1)
                    )
                )
            finally:
                controller.close()
                self._controller = None
            elapsed = time.perf_counter() - started
        summary = summarize(tallies, errors, elapsed, cancelled=controller.cancelled)
        logger.info(
            "Run %s: %d ok, %d failed in %.2fs (%.2f req/s)",
            RunState.CANCELLED.value if summary.cancelled else RunState.COMPLETED.value,
            summary.success,
            summary.failure,
            summary.elapsed_sec,
            summary.requests_per_second,
        )
        return summary

    @asynccontextmanager
    async def _open_transport(self, config: TransportConfig) -> AsyncIterator[Transport]:
        if self._transport is not None:
            yield self._transport
            return
        async with HttpxTransport.from_config(config) as transport:
            yield transport


async def run_load(
    url: str,
    credential: str | None,
    method: HttpMethod | str,
    concurrency: int,
    requests_per_worker: int,
    delay_sec: float,
    body: str | None = None,
    *,
    stop_source: StopSource | None = None,
    transport: Transport | None = None,
    transport_config: TransportConfig | None = None,
    credential_mode: CredentialMode = CredentialMode.EMBED,
) -> RunSummary:
    config = RunConfig(
        url=url,
        method=HttpMethod(method.upper()),
        credential=credential,
        concurrency=concurrency,
        requests_per_worker=requests_per_worker,
        delay_sec=delay_sec,
        body=body,
        credential_mode=credential_mode,
        transport=transport_config or TransportConfig(),
    )
    runner = LoadRunner(transport=transport, stop_source=stop_source)
    return await runner.run(config)
