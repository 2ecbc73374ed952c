from __future__ import annotations

import asyncio
import io
import logging
import time

import pytest

from apiload.loadgen.cancel import (
    AnyStop,
    CancellationController,
    KeyboardStop,
    ManualStop,
    RunCancelled,
    TimerStop,
)


def test_cancel_trips_once() -> None:
    async def go() -> tuple[bool, bool, bool]:
        controller = CancellationController()
        first = controller.cancel("first")
        second = controller.cancel("second")
        return first, second, controller.cancelled

    assert asyncio.run(go()) == (True, False, True)


def test_watcher_trips_on_stop_request() -> None:
    source = ManualStop()

    async def go() -> CancellationController:
        controller = CancellationController(source, poll_interval_sec=0.01)
        watcher = controller.start_watcher()
        await asyncio.sleep(0.03)
        assert not controller.cancelled
        source.request_stop()
        await asyncio.wait_for(watcher, timeout=1.0)
        return controller

    controller = asyncio.run(go())
    assert controller.cancelled
    assert controller.reason == "stop requested"


def test_no_source_means_no_watcher() -> None:
    async def go() -> object:
        return CancellationController().start_watcher()

    assert asyncio.run(go()) is None


def test_close_stops_polling_watcher() -> None:
    async def go() -> bool:
        controller = CancellationController(ManualStop(), poll_interval_sec=0.01)
        watcher = controller.start_watcher()
        controller.close()
        await asyncio.gather(watcher, return_exceptions=True)
        return watcher.cancelled() and not controller.cancelled

    assert asyncio.run(go())


def test_sleep_completes_or_is_interrupted() -> None:
    async def go() -> tuple[bool, bool, bool]:
        controller = CancellationController()
        elapsed = await controller.sleep(0.01)
        asyncio.get_running_loop().call_later(0.02, controller.cancel)
        interrupted = await asyncio.wait_for(controller.sleep(10.0), timeout=1.0)
        after = await controller.sleep(0.0)
        return elapsed, interrupted, after

    assert asyncio.run(go()) == (True, False, False)


def test_guard_returns_result_when_not_cancelled() -> None:
    async def work() -> int:
        await asyncio.sleep(0)
        return 7

    async def go() -> int:
        return await CancellationController().guard(work())

    assert asyncio.run(go()) == 7


def test_guard_raises_and_cancels_in_flight_work() -> None:
    state = {"finished": False}

    async def slow() -> None:
        await asyncio.sleep(10)
        state["finished"] = True

    async def go() -> None:
        controller = CancellationController()
        asyncio.get_running_loop().call_later(0.02, controller.cancel)
        await controller.guard(slow())

    with pytest.raises(RunCancelled):
        asyncio.run(asyncio.wait_for(go(), timeout=1.0))
    assert not state["finished"]


def test_guard_propagates_work_errors() -> None:
    async def broken() -> None:
        raise ValueError("nope")

    async def go() -> None:
        await CancellationController().guard(broken())

    with pytest.raises(ValueError, match="nope"):
        asyncio.run(go())


def test_timer_stop(monkeypatch: pytest.MonkeyPatch) -> None:
    now = [100.0]
    monkeypatch.setattr("apiload.loadgen.cancel.time.monotonic", lambda: now[0])
    stop = TimerStop(2.0)
    assert not stop.stop_requested()
    now[0] = 101.9
    assert not stop.stop_requested()
    now[0] = 102.0
    assert stop.stop_requested()


def _wait_for_stop(stop: KeyboardStop, timeout: float) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if stop.stop_requested():
            return True
        time.sleep(0.01)
    return False


def test_keyboard_stop_reads_stream() -> None:
    stop = KeyboardStop(stream=io.StringIO("go\nS\n"))
    assert _wait_for_stop(stop, timeout=1.0)


def test_keyboard_stop_ignores_other_keys() -> None:
    stop = KeyboardStop(stream=io.StringIO("x\nq\n"))
    assert not _wait_for_stop(stop, timeout=0.2)

def test_any_stop() -> None:
    first, second = ManualStop(), ManualStop()
    combined = AnyStop(first, second)
    assert not combined.stop_requested()
    second.request_stop()
    assert combined.stop_requested()


class FailingStop:
    def stop_requested(self) -> bool:
        raise OSError("stdin closed")


def test_failing_stop_source_is_logged_and_watcher_exits(caplog: pytest.LogCaptureFixture) -> None:
    async def go() -> CancellationController:
        controller = CancellationController(FailingStop(), poll_interval_sec=0.01)
        watcher = controller.start_watcher()
        assert await asyncio.wait_for(watcher, timeout=1.0) is None
        return controller

    with caplog.at_level(logging.ERROR, logger="apiload.loadgen.cancel"):
        controller = asyncio.run(go())
    assert not controller.cancelled
    records = [r for r in caplog.records if r.name == "apiload.loadgen.cancel"]
    assert len(records) == 1
    assert "Stop source failed" in records[0].getMessage()
    assert records[0].exc_info is not None
    assert isinstance(records[0].exc_info[1], OSError)
