from __future__ import annotations

import json

import pytest

from aws_inventory.collect.model import OutputRecord
from aws_inventory.export import json_files
from aws_inventory.export import parquet as parquet_mod
from aws_inventory.export.json_files import (
    group_records,
    grouped_file_name,
    write_grouped_json,
    write_run_summary,
)
from aws_inventory.export.jsonl import write_jsonl

TS = "2024-01-01T00:00:00+00:00"


def _records():
    return [
        OutputRecord("ec2", "eu-west-1", "vpcs", {"Vpcs": [{"VpcId": "vpc-1"}]}, TS),
        OutputRecord("ec2", "eu-west-1", "subnets", {"Subnets": []}, "2024-01-01T00:00:05+00:00"),
        OutputRecord("ec2", "us-east-1", "vpcs", {"Vpcs": []}, TS),
        OutputRecord("iam", "global", "users", {"Users": []}, TS),
    ]


def test_grouped_file_name() -> None:
    assert grouped_file_name("ec2", "eu-west-1") == "ec2_eu-west-1_all.json"
    assert grouped_file_name("ec2", "eu-west-1", timestamp="20240101_000000") == "ec2_eu-west-1_all_20240101_000000.json"


def test_group_records_by_service_and_region() -> None:
    grouped = group_records(_records())

    assert list(grouped) == [("ec2", "eu-west-1"), ("ec2", "us-east-1"), ("iam", "global")]
    doc = grouped[("ec2", "eu-west-1")]
    assert doc["service"] == "ec2"
    assert doc["region"] == "eu-west-1"
    assert sorted(doc["resources"]) == ["subnets", "vpcs"]
    assert doc["collected_at"] == "2024-01-01T00:00:05+00:00"


def test_write_grouped_json(tmp_path) -> None:
    paths = write_grouped_json(_records(), tmp_path, profile="dev")

    names = sorted(p.name for p in paths)
    assert names == ["ec2_eu-west-1_all.json", "ec2_us-east-1_all.json", "iam_global_all.json"]
    data = json.loads((tmp_path / "dev" / "ec2_eu-west-1_all.json").read_text(encoding="utf-8"))
    assert data["resources"]["vpcs"] == {"Vpcs": [{"VpcId": "vpc-1"}]}


def test_write_grouped_json_timestamped(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(json_files, "file_timestamp", lambda: "20240101_120000")

    paths = write_grouped_json(_records()[:1], tmp_path, profile="default", create_new_file=True)

    assert [p.name for p in paths] == ["ec2_eu-west-1_all_20240101_120000.json"]


def test_write_jsonl_sorted_and_stable(tmp_path) -> None:
    path = tmp_path / "records.jsonl"
    count = write_jsonl(reversed(_records()), path)

    lines = path.read_text(encoding="utf-8").splitlines()
    assert count == 4
    parsed = [json.loads(line) for line in lines]
    assert [(p["service"], p["region"], p["resource_type"]) for p in parsed] == [
        ("ec2", "eu-west-1", "subnets"),
        ("ec2", "eu-west-1", "vpcs"),
        ("ec2", "us-east-1", "vpcs"),
        ("iam", "global", "users"),
    ]
    assert lines[0].startswith('{"collected_at"')


def test_write_run_summary(tmp_path) -> None:
    path = write_run_summary(tmp_path / "dev", {"metrics": {"records": 3}})

    assert path.name == "run_summary.json"
    assert json.loads(path.read_text(encoding="utf-8")) == {"metrics": {"records": 3}}


def test_write_parquet_raises_when_pyarrow_missing(monkeypatch, tmp_path) -> None:
    def _raise():
        raise parquet_mod.ParquetNotAvailable("pyarrow is required for Parquet export.")

    monkeypatch.setattr(parquet_mod, "_require_pyarrow", _raise)

    with pytest.raises(parquet_mod.ParquetNotAvailable):
        parquet_mod.write_parquet(_records(), tmp_path / "records.parquet")


def test_write_parquet_flat_columns(tmp_path) -> None:
    pq = pytest.importorskip("pyarrow.parquet")
    path = tmp_path / "records.parquet"

    rows = parquet_mod.write_parquet(_records(), path, batch_size=2)

    table = pq.read_table(path)
    assert rows == 4
    assert table.column_names == list(parquet_mod.PARQUET_COLUMNS)
    first = table.to_pylist()[0]
    assert first["source"] == "ec2"
    assert json.loads(first["payload_json"]) == {"Subnets": []}


def test_write_parquet_empty(tmp_path) -> None:
    pq = pytest.importorskip("pyarrow.parquet")
    path = tmp_path / "empty.parquet"

    assert parquet_mod.write_parquet([], path) == 0
    assert pq.read_table(path).num_rows == 0
