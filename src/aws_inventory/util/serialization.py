from __future__ import annotations

import copy
import json
from datetime import datetime
from typing import Any


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def stable_json_dumps(obj: Any) -> str:
    """
    Dump JSON with sort_keys=True and compact separators to ensure stable output.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=_json_default)


def pretty_json_dumps(obj: Any) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False, default=_json_default)


def copy_document(doc: Any) -> Any:
    """
    Deep copy a decoded JSON document so later steps never share nested
    containers with the step that produced it.
    """
    return copy.deepcopy(doc)
