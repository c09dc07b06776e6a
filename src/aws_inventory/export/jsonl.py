from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Tuple

from ..collect.model import OutputRecord
from ..util.serialization import stable_json_dumps


def record_sort_key(r: OutputRecord) -> Tuple[str, str, str]:
    return (r.source, r.partition, r.resource_type)


def write_jsonl(records: Iterable[OutputRecord], path: Path) -> int:
    """
    Write records to a JSONL file with stable key ordering and deterministic line order.
    Ordering: sort by source, then partition, then resource_type.
    Returns the number of lines written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    sorted_records: List[OutputRecord] = sorted(records, key=record_sort_key)

    with path.open("w", encoding="utf-8") as f:
        for rec in sorted_records:
            f.write(stable_json_dumps(rec.to_dict()))
            f.write("\n")
    return len(sorted_records)
