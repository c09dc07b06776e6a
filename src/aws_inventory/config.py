from __future__ import annotations

import argparse
import json
import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .util.concurrency import MAX_CONCURRENCY, MIN_CONCURRENCY, clamp_concurrency
from .util.errors import ConfigError
from .util.time import utc_now_iso

# --------
# Defaults
# --------
DEFAULT_OUTDIR = "output"
DEFAULT_PROFILE = "default"
DEFAULT_CONCURRENCY = 5
DEFAULT_OPERATION_TIMEOUT = 300
ALLOWED_CONFIG_KEYS = {
    "outdir",
    "profile",
    "regions",
    "region_services",
    "services",
    "concurrency",
    "operation_timeout",
    "create_new_file",
    "jsonl",
    "parquet",
    "json_logs",
    "log_level",
    "progress",
}
LIST_CONFIG_KEYS = {"regions", "region_services", "services"}
BOOL_CONFIG_KEYS = {"create_new_file", "jsonl", "parquet", "json_logs", "progress"}
INT_CONFIG_KEYS = {"concurrency", "operation_timeout"}
PATH_CONFIG_KEYS = {"outdir"}
STR_CONFIG_KEYS = {"profile", "log_level"}


@dataclass(frozen=True)
class RunConfig:
    # General
    outdir: Path
    profile: str = DEFAULT_PROFILE
    json_logs: bool = False
    log_level: str = "INFO"
    progress: bool = True

    # Scope
    regions: Optional[List[str]] = None  # additional to the profile default
    region_services: Optional[List[str]] = None  # only these services in additional regions
    services: Optional[List[str]] = None  # None = whole catalog

    # Performance
    concurrency: int = DEFAULT_CONCURRENCY
    operation_timeout: int = DEFAULT_OPERATION_TIMEOUT

    # Output
    create_new_file: bool = False
    jsonl: bool = False
    parquet: bool = False

    # Internal/derived
    collected_at: str = field(default_factory=utc_now_iso)


def _parse_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except (ValueError, yaml.YAMLError) as e:
        raise ValueError(f"Failed to parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Top-level config must be an object")
    return data


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    if not raw:
        return None
    return raw


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip().lower()
    if not raw:
        return None
    return raw in {"1", "true", "yes", "on"}


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        raw = value.strip().lower()
        if raw in {"1", "true", "yes", "on"}:
            return True
        if raw in {"0", "false", "no", "off"}:
            return False
    raise ValueError(f"Config field '{key}' must be a boolean")


def _coerce_int(key: str, value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return int(value)
        except ValueError:
            pass
    raise ValueError(f"Config field '{key}' must be an integer")


def _split_csv(value: Any, key: str) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return [v.strip() for v in value if v.strip()]
    raise ValueError(f"Config field '{key}' must be a list of strings or comma-separated string")


def _normalize_config_file(data: Dict[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(data.keys()) - ALLOWED_CONFIG_KEYS)
    if unknown:
        warnings.warn(f"Unknown config keys ignored: {', '.join(unknown)}")
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in ALLOWED_CONFIG_KEYS:
            continue
        if value is None:
            normalized[key] = None
            continue
        if key in LIST_CONFIG_KEYS:
            normalized[key] = _split_csv(value, key)
        elif key in BOOL_CONFIG_KEYS:
            normalized[key] = _coerce_bool(key, value)
        elif key in INT_CONFIG_KEYS:
            normalized[key] = _coerce_int(key, value)
        elif key in PATH_CONFIG_KEYS:
            if isinstance(value, (str, Path)):
                normalized[key] = value
            else:
                raise ValueError(f"Config field '{key}' must be a string path")
        elif key in STR_CONFIG_KEYS:
            if isinstance(value, str):
                normalized[key] = value
            else:
                raise ValueError(f"Config field '{key}' must be a string")
    return _compact_dict(normalized)


def _compact_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop keys with None values so they don't override lower-precedence config.
    """
    return {k: v for k, v in data.items() if v is not None}


def _merge_dicts(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow merge: values in b override a.
    """
    merged = dict(a)
    merged.update(b)
    return merged


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="aws-inv", description="AWS Inventory CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # common flags builder
    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", type=Path, help="Optional YAML/JSON config file")
        p.add_argument(
            "--json-logs",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Enable JSON logs",
        )
        p.add_argument("--log-level", default=None, help="Log level (INFO, DEBUG, ...)")
        p.add_argument("-p", "--profile", default=None, help=f"AWS CLI profile (default: {DEFAULT_PROFILE})")
        p.add_argument(
            "--timeout",
            dest="operation_timeout",
            type=int,
            default=None,
            help=f"Per-call AWS CLI timeout in seconds (default {DEFAULT_OPERATION_TIMEOUT})",
        )

    # collect
    p_col = subparsers.add_parser("collect", help="Collect AWS resources")
    add_common(p_col)
    p_col.add_argument("--outdir", type=Path, default=None, help=f"Output base directory (default ./{DEFAULT_OUTDIR})")
    p_col.add_argument(
        "-r",
        "--regions",
        default=None,
        help="Additional regions to collect from (comma-separated)",
    )
    p_col.add_argument(
        "-s",
        "--region-services",
        default=None,
        help="Services to collect from additional regions (comma-separated; default all)",
    )
    p_col.add_argument(
        "--services",
        default=None,
        help="Limit collection to these services (comma-separated; default all)",
    )
    p_col.add_argument(
        "-n",
        "--create-new-file",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Write timestamped files instead of overwriting",
    )
    p_col.add_argument(
        "-j",
        "--concurrency",
        type=int,
        default=None,
        help=f"Max concurrent collection tasks ({MIN_CONCURRENCY}-{MAX_CONCURRENCY}, default {DEFAULT_CONCURRENCY})",
    )
    p_col.add_argument(
        "--jsonl",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Also write records.jsonl",
    )
    p_col.add_argument(
        "--parquet",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Also write Parquet (pyarrow)",
    )
    p_col.add_argument(
        "--progress",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Show a progress bar on interactive terminals",
    )

    # list-services
    p_ls = subparsers.add_parser("list-services", aliases=["ls"], help="List collectable AWS services")
    p_ls.set_defaults(command="list-services")
    add_common(p_ls)

    # list-regions
    p_lr = subparsers.add_parser("list-regions", help="List regions known to the profile")
    add_common(p_lr)

    # validate-auth
    p_val = subparsers.add_parser("validate-auth", help="Validate AWS CLI credentials")
    add_common(p_val)

    return parser


def load_run_config(
    args: Optional[argparse.Namespace] = None,
    argv: Optional[List[str]] = None,
) -> Tuple[str, RunConfig]:
    """
    Build RunConfig by merging defaults, optional config file, env vars, and CLI args.
    Precedence (low -> high): defaults < config file < env < CLI.

    Returns:
      (command, RunConfig) where command is one of: collect|list-services|list-regions|validate-auth
    """
    ns = args if args is not None else build_parser().parse_args(argv)
    command = "list-services" if ns.command == "ls" else ns.command

    # defaults
    base: Dict[str, Any] = {
        "outdir": DEFAULT_OUTDIR,
        "profile": DEFAULT_PROFILE,
        "concurrency": DEFAULT_CONCURRENCY,
        "operation_timeout": DEFAULT_OPERATION_TIMEOUT,
        "create_new_file": False,
        "jsonl": False,
        "parquet": False,
        "json_logs": False,
        "log_level": "INFO",
        "progress": True,
    }

    # config file
    file_cfg: Dict[str, Any] = {}
    if getattr(ns, "config", None):
        file_cfg = _normalize_config_file(_parse_config_file(Path(ns.config)))

    # env
    env_cfg: Dict[str, Any] = _compact_dict(
        {
            "outdir": _env_str("AWS_INV_OUTDIR"),
            "profile": _env_str("AWS_INV_PROFILE"),
            "regions": _env_str("AWS_INV_REGIONS"),
            "region_services": _env_str("AWS_INV_REGION_SERVICES"),
            "services": _env_str("AWS_INV_SERVICES"),
            "concurrency": _env_int("AWS_INV_CONCURRENCY"),
            "operation_timeout": _env_int("AWS_INV_OPERATION_TIMEOUT"),
            "create_new_file": _env_bool("AWS_INV_CREATE_NEW_FILE"),
            "jsonl": _env_bool("AWS_INV_JSONL"),
            "parquet": _env_bool("AWS_INV_PARQUET"),
            "json_logs": _env_bool("AWS_INV_JSON_LOGS"),
            "log_level": _env_str("AWS_INV_LOG_LEVEL"),
            "progress": _env_bool("AWS_INV_PROGRESS"),
        }
    )

    # CLI
    cli_cfg: Dict[str, Any] = _compact_dict(
        {
            "outdir": getattr(ns, "outdir", None),
            "profile": getattr(ns, "profile", None),
            "regions": getattr(ns, "regions", None),
            "region_services": getattr(ns, "region_services", None),
            "services": getattr(ns, "services", None),
            "concurrency": getattr(ns, "concurrency", None),
            "operation_timeout": getattr(ns, "operation_timeout", None),
            "create_new_file": getattr(ns, "create_new_file", None),
            "jsonl": getattr(ns, "jsonl", None),
            "parquet": getattr(ns, "parquet", None),
            "json_logs": getattr(ns, "json_logs", None),
            "log_level": getattr(ns, "log_level", None),
            "progress": getattr(ns, "progress", None),
        }
    )

    merged = _merge_dicts(base, _merge_dicts(file_cfg, _merge_dicts(env_cfg, cli_cfg)))

    # Normalize/construct types
    regions = _split_csv(merged.get("regions"), "regions")
    region_services = _split_csv(merged.get("region_services"), "region_services")
    services = _split_csv(merged.get("services"), "services")
    if region_services and not regions:
        raise ConfigError("--region-services requires --regions")

    operation_timeout = int(merged["operation_timeout"] or DEFAULT_OPERATION_TIMEOUT)
    if operation_timeout < 1:
        raise ConfigError(f"operation_timeout must be >= 1 second, got {operation_timeout}")

    cfg = RunConfig(
        outdir=Path(merged["outdir"] or DEFAULT_OUTDIR),
        profile=str(merged.get("profile") or DEFAULT_PROFILE),
        json_logs=bool(merged["json_logs"]),
        log_level=(merged.get("log_level") or "INFO").upper(),
        progress=bool(merged["progress"]),
        regions=regions or None,
        region_services=region_services or None,
        services=[s.lower() for s in services] if services else None,
        concurrency=clamp_concurrency(int(merged["concurrency"]), MIN_CONCURRENCY, MAX_CONCURRENCY),
        operation_timeout=operation_timeout,
        create_new_file=bool(merged["create_new_file"]),
        jsonl=bool(merged["jsonl"]),
        parquet=bool(merged["parquet"]),
    )
    return command, cfg


def dump_config(cfg: RunConfig) -> Dict[str, Any]:
    return {
        "outdir": str(cfg.outdir),
        "profile": cfg.profile,
        "regions": cfg.regions,
        "region_services": cfg.region_services,
        "services": cfg.services,
        "concurrency": cfg.concurrency,
        "operation_timeout": cfg.operation_timeout,
        "create_new_file": cfg.create_new_file,
        "jsonl": cfg.jsonl,
        "parquet": cfg.parquet,
        "json_logs": cfg.json_logs,
        "log_level": cfg.log_level,
        "progress": cfg.progress,
        "collected_at": cfg.collected_at,
    }
