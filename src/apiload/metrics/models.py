from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorType(str, Enum):
    TIMEOUT = "timeout"
    CONNECT = "connect"
    READ = "read"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class WorkerTally:
    success: int = 0
    failure: int = 0

    @property
    def total(self) -> int:
        return self.success + self.failure

    def __add__(self, other: WorkerTally) -> WorkerTally:
        if not isinstance(other, WorkerTally):
            return NotImplemented
        return WorkerTally(self.success + other.success, self.failure + other.failure)


@dataclass(frozen=True, slots=True)
class RunSummary:
    elapsed_sec: float
    success: int
    failure: int
    total: int
    requests_per_second: float
    success_rate: float
    sample_errors: tuple[str, ...]
    error_overflow_count: int
    cancelled: bool = False
