from __future__ import annotations

import threading

SAMPLE_LIMIT = 10


class ErrorSink:
    __slots__ = ("_entries", "_lock")

    def __init__(self) -> None:
        self._entries: list[str] = []
        self._lock = threading.Lock()

    def record(self, entry: str) -> None:
        with self._lock:
            self._entries.append(entry)

    def snapshot(self, limit: int = SAMPLE_LIMIT) -> tuple[list[str], int]:
        with self._lock:
            return self._entries[: max(0, limit)], len(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
