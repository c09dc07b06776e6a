from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..collect.model import OutputRecord
from ..logging import get_logger
from ..util.serialization import stable_json_dumps
from .jsonl import record_sort_key

LOG = get_logger(__name__)

PARQUET_COLUMNS = ("source", "partition", "resource_type", "observed_at", "payload_json")


class ParquetNotAvailable(RuntimeError):
    pass


def _require_pyarrow():
    try:
        import pyarrow as pa  # type: ignore
        import pyarrow.parquet as pq  # type: ignore
    except ImportError as e:  # pragma: no cover
        raise ParquetNotAvailable(
            "pyarrow is required for Parquet export. Install with: pip install .[parquet]"
        ) from e
    return pa, pq


def ensure_parquet_available() -> None:
    """
    Raise ParquetNotAvailable unless pyarrow can be imported. Lets callers fail
    before collecting rather than at export time.
    """
    _require_pyarrow()


def _schema(pa) -> Any:
    return pa.schema([pa.field(name, pa.string(), nullable=False) for name in PARQUET_COLUMNS])


def _row(rec: OutputRecord) -> Dict[str, str]:
    return {
        "source": rec.source,
        "partition": rec.partition,
        "resource_type": rec.resource_type,
        "observed_at": rec.observed_at,
        "payload_json": stable_json_dumps(rec.payload),
    }


def write_parquet(
    records: Iterable[OutputRecord],
    path: Path,
    *,
    batch_size: int = 1000,
) -> int:
    """
    Write a flat Parquet table, one row per record. Payloads are kept as stable
    JSON strings because AWS response shapes differ per resource type.
    Returns the number of rows written.
    """
    pa, pq = _require_pyarrow()
    path.parent.mkdir(parents=True, exist_ok=True)
    schema = _schema(pa)

    if batch_size < 1:
        batch_size = 1000

    writer: Optional[Any] = None
    rows: List[Dict[str, str]] = []
    written = 0

    def _flush_rows() -> None:
        nonlocal writer, rows, written
        if not rows:
            return
        try:
            table = pa.Table.from_pylist(rows, schema=schema)
        except (pa.ArrowInvalid, pa.ArrowTypeError) as exc:
            LOG.error(
                "Parquet batch write failed",
                extra={"step": "export", "phase": "error", "artifact": "parquet", "error": str(exc)},
            )
            raise
        if writer is None:
            writer = pq.ParquetWriter(str(path), schema)
        writer.write_table(table)
        written += len(rows)
        rows = []

    try:
        for rec in sorted(records, key=record_sort_key):
            rows.append(_row(rec))
            if len(rows) >= batch_size:
                _flush_rows()
        _flush_rows()
        if writer is None:
            pq.write_table(schema.empty_table(), str(path))
    finally:
        if writer is not None:
            writer.close()
    return written
