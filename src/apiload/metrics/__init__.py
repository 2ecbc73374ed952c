from __future__ import annotations

from apiload.metrics.aggregator import render_summary, summarize
from apiload.metrics.errors import SAMPLE_LIMIT, ErrorSink
from apiload.metrics.models import ErrorType, RunSummary, WorkerTally

__all__ = [
    "SAMPLE_LIMIT",
    "ErrorSink",
    "ErrorType",
    "RunSummary",
    "WorkerTally",
    "render_summary",
    "summarize",
]
