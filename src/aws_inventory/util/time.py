from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

FILE_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def utc_now_iso() -> str:
    """
    Return current UTC time as an RFC 3339 string with seconds precision.
    """
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def file_timestamp(now: Optional[datetime] = None) -> str:
    """
    Timestamp suffix used for non-overwriting output file names, e.g. 20240131_235959.
    """
    return (now or datetime.now(timezone.utc)).strftime(FILE_TIMESTAMP_FORMAT)
