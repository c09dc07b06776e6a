from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..collect.model import OutputRecord
from ..logging import get_logger
from ..util.errors import ExportError
from ..util.serialization import pretty_json_dumps
from ..util.time import file_timestamp

LOG = get_logger(__name__)

RUN_SUMMARY_FILE = "run_summary.json"


def grouped_file_name(service: str, partition: str, *, timestamp: Optional[str] = None) -> str:
    """
    <service>_<partition>_all.json, or <service>_<partition>_all_<YYYYmmdd_HHMMSS>.json
    when a timestamp is given.
    """
    if timestamp:
        return f"{service}_{partition}_all_{timestamp}.json"
    return f"{service}_{partition}_all.json"


def group_records(records: Iterable[OutputRecord]) -> Dict[Tuple[str, str], Dict[str, Any]]:
    """
    Group records into one document per (source, partition):
      {service, region, resources: {resource_type: payload}, collected_at}

    A later record for the same resource_type replaces an earlier one in the
    grouped view; collected_at is the latest observed_at of the group.
    """
    grouped: Dict[Tuple[str, str], Dict[str, Any]] = {}
    for rec in sorted(records, key=lambda r: (r.source, r.partition, r.observed_at)):
        key = (rec.source, rec.partition)
        doc = grouped.get(key)
        if doc is None:
            doc = {"service": rec.source, "region": rec.partition, "resources": {}, "collected_at": rec.observed_at}
            grouped[key] = doc
        doc["resources"][rec.resource_type] = rec.payload
        if rec.observed_at > doc["collected_at"]:
            doc["collected_at"] = rec.observed_at
    for doc in grouped.values():
        doc["resources"] = dict(sorted(doc["resources"].items()))
    return dict(sorted(grouped.items()))


def _write_text(path: Path, text: str) -> None:
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise ExportError(f"Failed to write {path}: {e}") from e


def write_grouped_json(
    records: Iterable[OutputRecord],
    outdir: Path,
    *,
    profile: str,
    create_new_file: bool = False,
) -> List[Path]:
    """
    Write one pretty-printed JSON file per (service, region) under <outdir>/<profile>/.
    Existing files are overwritten unless create_new_file is set.
    """
    target = outdir / profile
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ExportError(f"Failed to create output directory {target}: {e}") from e

    timestamp = file_timestamp() if create_new_file else None
    written: List[Path] = []
    for (service, partition), doc in group_records(records).items():
        path = target / grouped_file_name(service, partition, timestamp=timestamp)
        _write_text(path, pretty_json_dumps(doc) + "\n")
        written.append(path)
        LOG.debug(
            "Wrote grouped output",
            extra={"step": "export", "phase": "write", "artifact": "json", "path": str(path)},
        )
    return written


def write_run_summary(outdir: Path, summary: Mapping[str, Any]) -> Path:
    outdir.mkdir(parents=True, exist_ok=True)
    path = outdir / RUN_SUMMARY_FILE
    _write_text(path, pretty_json_dumps(dict(summary)) + "\n")
    return path
