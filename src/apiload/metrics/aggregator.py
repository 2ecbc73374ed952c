from __future__ import annotations

from typing import Iterable

from apiload.metrics.errors import SAMPLE_LIMIT, ErrorSink
from apiload.metrics.models import RunSummary, WorkerTally


def summarize(
    tallies: Iterable[WorkerTally],
    errors: ErrorSink,
    elapsed_sec: float,
    cancelled: bool = False,
) -> RunSummary:
    folded = sum(tallies, WorkerTally())
    total = folded.total
    rps = total / elapsed_sec if elapsed_sec > 0 else 0.0
    success_rate = folded.success / total * 100 if total > 0 else 0.0
    sample, error_count = errors.snapshot(SAMPLE_LIMIT)
    return RunSummary(
        elapsed_sec=elapsed_sec,
        success=folded.success,
        failure=folded.failure,
        total=total,
        requests_per_second=rps,
        success_rate=success_rate,
        sample_errors=tuple(sample),
        error_overflow_count=max(0, error_count - SAMPLE_LIMIT),
        cancelled=cancelled,
    )


def render_summary(summary: RunSummary) -> str:
    lines = [
        "==== Summary ====",
        f"Elapsed: {_format_elapsed(summary.elapsed_sec)}",
        f"Success: {summary.success}",
        f"Failed : {summary.failure}",
        f"Total  : {summary.total}",
        f"Success Rate : {summary.success_rate:.2f}%",
        f"Requests/sec: {summary.requests_per_second:.2f}",
    ]
    if summary.cancelled:
        lines.append("Stopped early on request.")
    if summary.sample_errors:
        lines.append("-- First few errors --")
        lines.extend(summary.sample_errors)
        if summary.error_overflow_count:
            lines.append(f"...and {summary.error_overflow_count} more")
    return "\n".join(lines)


def _format_elapsed(seconds: float) -> str:
    minutes, secs = divmod(max(0.0, seconds), 60)
    hours, minutes = divmod(int(minutes), 60)
    return f"{hours}:{minutes:02d}:{secs:06.3f}"
