from __future__ import annotations

import asyncio
import logging
import sys
import threading
import time
from typing import Awaitable, Protocol, TextIO, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_POLL_INTERVAL_SEC = 0.05


class RunCancelled(Exception):
    """Raised inside a worker when the shared stop signal wins a race."""


class StopSource(Protocol):
    def stop_requested(self) -> bool:
        ...


class ManualStop:
    def __init__(self) -> None:
        self._flag = threading.Event()

    def request_stop(self) -> None:
        self._flag.set()

    def stop_requested(self) -> bool:
        return self._flag.is_set()


class TimerStop:
    def __init__(self, after_sec: float) -> None:
        self.after_sec = after_sec
        self._started: float | None = None

    def stop_requested(self) -> bool:
        now = time.monotonic()
        if self._started is None:
            self._started = now
        return now - self._started >= self.after_sec


class KeyboardStop:
    def __init__(self, key: str = "s", stream: TextIO | None = None) -> None:
        self.key = key.lower()
        self._stream = stream
        self._flag = threading.Event()
        self._thread: threading.Thread | None = None

    def stop_requested(self) -> bool:
        if self._thread is None:
            self._thread = threading.Thread(target=self._read, name="apiload-keyboard", daemon=True)
            self._thread.start()
        return self._flag.is_set()

    def _read(self) -> None:
        stream = self._stream if self._stream is not None else sys.stdin
        for line in stream:
            if line.strip().lower().startswith(self.key):
                self._flag.set()
                return


class AnyStop:
    def __init__(self, *sources: StopSource) -> None:
        self.sources = sources

    def stop_requested(self) -> bool:
        return any(source.stop_requested() for source in self.sources)


class CancellationController:
    """Shared, edge-triggered stop signal for one run."""

    def __init__(
        self,
        source: StopSource | None = None,
        poll_interval_sec: float = DEFAULT_POLL_INTERVAL_SEC,
    ) -> None:
        self._source = source
        self._poll_interval_sec = poll_interval_sec
        self._event = asyncio.Event()
        self._watcher: asyncio.Task[None] | None = None
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancel requested") -> bool:
        if self._event.is_set():
            return False
        self.reason = reason
        self._event.set()
        logger.info("Stopping run: %s", reason)
        return True

    def start_watcher(self) -> asyncio.Task[None] | None:
        if self._source is None or self._watcher is not None:
            return self._watcher
        self._watcher = asyncio.create_task(self._watch(self._source), name="apiload-stop-watcher")
        return self._watcher

    async def _watch(self, source: StopSource) -> None:
        while not self._event.is_set():
            try:
                requested = source.stop_requested()
            except Exception:
                logger.exception("Stop source failed; the run can no longer be stopped through it")
                return
            if requested:
                self.cancel("stop requested")
                return
            await asyncio.sleep(self._poll_interval_sec)

    def close(self) -> None:
        if self._watcher is not None and not self._watcher.done():
            self._watcher.cancel()

    async def sleep(self, delay_sec: float) -> bool:
        """Wait ``delay_sec``; return False if the signal trips first."""
        if self._event.is_set():
            return False
        if delay_sec <= 0:
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay_sec)
        except asyncio.TimeoutError:
            return True
        return False

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable``; raise RunCancelled if the signal trips first."""
        task = asyncio.ensure_future(awaitable)
        if self._event.is_set():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise RunCancelled
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()
        if task.done():
            return task.result()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise RunCancelled
