from __future__ import annotations

import threading
import time
from typing import Iterable

import pytest

from aws_inventory.util.concurrency import clamp_concurrency, parallel_map_unordered


def test_parallel_map_unordered_returns_every_result() -> None:
    results = parallel_map_unordered(lambda x: x * 2, range(6), max_workers=3)

    assert sorted(results) == [0, 2, 4, 6, 8, 10]


def test_parallel_map_unordered_respects_max_workers() -> None:
    lock = threading.Lock()
    state = {"inflight": 0, "peak": 0}

    def work(x: int) -> int:
        with lock:
            state["inflight"] += 1
            state["peak"] = max(state["peak"], state["inflight"])
        time.sleep(0.01)
        with lock:
            state["inflight"] -= 1
        return x

    parallel_map_unordered(work, range(20), max_workers=3)

    assert 1 <= state["peak"] <= 3


def test_parallel_map_unordered_pulls_lazily() -> None:
    consumed: list[int] = []

    def gen() -> Iterable[int]:
        for i in range(5):
            consumed.append(i)
            yield i

    results = parallel_map_unordered(lambda x: x, gen(), max_workers=1)

    assert sorted(results) == [0, 1, 2, 3, 4]
    assert consumed == [0, 1, 2, 3, 4]


def test_parallel_map_unordered_empty_input() -> None:
    assert parallel_map_unordered(lambda x: x, [], max_workers=4) == []


def test_parallel_map_unordered_rejects_zero_workers() -> None:
    with pytest.raises(ValueError):
        parallel_map_unordered(lambda x: x, [1], max_workers=0)


def test_parallel_map_unordered_propagates_errors() -> None:
    def boom(x: int) -> int:
        if x == 2:
            raise RuntimeError("boom")
        return x

    with pytest.raises(RuntimeError):
        parallel_map_unordered(boom, range(4), max_workers=2)


def test_clamp_concurrency_bounds() -> None:
    assert clamp_concurrency(0) == 1
    assert clamp_concurrency(5) == 5
    assert clamp_concurrency(99) == 10
    assert clamp_concurrency(3, 1, 2) == 2
