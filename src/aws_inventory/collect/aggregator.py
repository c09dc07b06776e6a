from __future__ import annotations

import threading
from typing import Dict, Iterable, List

from .model import OutputRecord


class RecordAggregator:
    """
    Thread-safe accumulator for the records of one run. Records are appended as
    produced and never replaced or deduplicated; the same (resource_type, partition)
    may legitimately appear more than once.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: List[OutputRecord] = []
        self._failures = 0
        self._tasks = 0

    def add(self, records: Iterable[OutputRecord], *, failures: int = 0) -> None:
        batch = list(records)
        with self._lock:
            self._records.extend(batch)
            self._failures += failures
            self._tasks += 1

    def snapshot(self) -> List[OutputRecord]:
        with self._lock:
            return list(self._records)

    @property
    def failures(self) -> int:
        with self._lock:
            return self._failures

    @property
    def tasks(self) -> int:
        with self._lock:
            return self._tasks

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def counts_by_service(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for rec in self.snapshot():
            counts[rec.source] = counts.get(rec.source, 0) + 1
        return dict(sorted(counts.items()))
