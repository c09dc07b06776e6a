from __future__ import annotations

import threading

from aws_inventory.collect.aggregator import RecordAggregator
from aws_inventory.collect.model import OutputRecord


def _rec(source: str, resource_type: str, partition: str = "eu-west-1") -> OutputRecord:
    return OutputRecord(source, partition, resource_type, {}, "2024-01-01T00:00:00+00:00")


def test_aggregator_keeps_duplicates() -> None:
    agg = RecordAggregator()
    agg.add([_rec("ec2", "vpcs")])
    agg.add([_rec("ec2", "vpcs")])

    assert len(agg) == 2
    assert agg.tasks == 2


def test_aggregator_concurrent_appends() -> None:
    agg = RecordAggregator()

    def worker(i: int) -> None:
        for j in range(50):
            agg.add([_rec(f"svc{i}", f"t{j}")], failures=j % 2)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(agg) == 400
    assert agg.failures == 200
    assert agg.tasks == 400


def test_snapshot_is_a_copy() -> None:
    agg = RecordAggregator()
    agg.add([_rec("s3", "buckets")])
    snap = agg.snapshot()
    snap.clear()

    assert len(agg) == 1


def test_counts_by_service_sorted() -> None:
    agg = RecordAggregator()
    agg.add([_rec("sqs", "queues"), _rec("ec2", "vpcs"), _rec("ec2", "subnets")])

    assert agg.counts_by_service() == {"ec2": 2, "sqs": 1}
