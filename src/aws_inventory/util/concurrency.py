from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Iterable, List, Sequence, Set, TypeVar

T = TypeVar("T")
R = TypeVar("R")

MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 10


def clamp_concurrency(value: int, low: int = MIN_CONCURRENCY, high: int = MAX_CONCURRENCY) -> int:
    """
    Clamp a user supplied concurrency into [low, high].
    """
    return max(low, min(high, int(value)))


def parallel_map_unordered(
    func: Callable[[T], R],
    items: Sequence[T] | Iterable[T],
    max_workers: int,
) -> List[R]:
    """
    Execute func over items in a thread pool with at most max_workers calls in
    flight and return results in completion order.

    func is expected to encode failure in its return value. If it raises anyway,
    the remaining queued items are cancelled and the exception is propagated.

    Uses a sliding window of futures so large iterables are not materialized.
    """
    if max_workers < 1:
        raise ValueError(f"max_workers must be >= 1, got {max_workers}")

    results: List[R] = []
    iterator = iter(items)
    inflight: Set[Future[R]] = set()

    def _submit_next() -> bool:
        try:
            item = next(iterator)
        except StopIteration:
            return False
        inflight.add(executor.submit(func, item))
        return True

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        for _ in range(max_workers):
            if not _submit_next():
                break

        while inflight:
            done, _ = wait(inflight, return_when=FIRST_COMPLETED)
            for fut in done:
                inflight.discard(fut)
                try:
                    results.append(fut.result())
                except BaseException:
                    for pending_fut in inflight:
                        pending_fut.cancel()
                    raise
            for _ in range(len(done)):
                if not _submit_next():
                    break

    return results
