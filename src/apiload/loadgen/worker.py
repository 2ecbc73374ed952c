from __future__ import annotations

import logging

from apiload.config import CredentialMode, RunConfig
from apiload.loadgen.cancel import CancellationController, RunCancelled
from apiload.loadgen.client import Transport, TransportResponse, classify_exception
from apiload.loadgen.request import BuiltRequest, build_request
from apiload.metrics import ErrorSink, WorkerTally

logger = logging.getLogger(__name__)


async def run_worker(
    worker_id: int,
    config: RunConfig,
    transport: Transport,
    controller: CancellationController,
    errors: ErrorSink,
) -> WorkerTally:
    ok = bad = 0
    header_mode = config.credential_mode is CredentialMode.HEADER
    headers: dict[str, str] = {}
    if header_mode and config.credential and config.credential.strip():
        headers["Authorization"] = config.credential

    for index in range(1, config.requests_per_worker + 1):
        if controller.cancelled:
            break
        request = build_request(
            config.method,
            config.url,
            worker_id,
            index,
            credential=None if header_mode else config.credential,
            body=config.body,
        )
        try:
            detail = await controller.guard(_attempt(transport, config.method.value, request, headers))
        except RunCancelled:
            break
        except Exception as exc:
            bad += 1
            errors.record(f"[{worker_id}:{index}] {classify_exception(exc).value} {type(exc).__name__}: {exc}")
        else:
            if detail is None:
                ok += 1
            else:
                bad += 1
                errors.record(f"[{worker_id}:{index}] {detail}")

        if index < config.requests_per_worker and config.delay_sec > 0:
            if not await controller.sleep(config.delay_sec):
                break

    logger.debug("Worker %d finished: %d ok, %d failed", worker_id, ok, bad)
    return WorkerTally(success=ok, failure=bad)


async def _attempt(
    transport: Transport,
    method: str,
    request: BuiltRequest,
    headers: dict[str, str],
) -> str | None:
    """Send one request; return None on success or the failure detail."""
    if request.content_type is not None:
        headers = {**headers, "Content-Type": request.content_type}
    async with transport.send(method, request.url, headers, request.body) as response:
        if response.success:
            return None
        text = await _safe_read(response)
        return f"HTTP {response.status_code} {response.reason_phrase} - {text}"


async def _safe_read(response: TransportResponse) -> str:
    try:
        return (await response.read_body()).strip()
    except Exception:
        logger.debug("Could not read body of HTTP %d response", response.status_code, exc_info=True)
        return ""
