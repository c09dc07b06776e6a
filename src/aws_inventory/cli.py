from __future__ import annotations

import logging
import sys
from pathlib import Path
from time import perf_counter
from typing import Any, Dict, List, Optional

from .aws.cli import AwsCli
from .aws.regions import PartitionResolver
from .collect.aggregator import RecordAggregator
from .collect.orchestrator import plan_tasks, run_collection
from .config import RunConfig, dump_config, load_run_config
from .logging import LogConfig, add_run_log_file, get_logger, setup_logging
from .services import build_collectors, resolve_services, services_by_category
from .util.errors import ConfigError, as_exit_code

LOG = get_logger(__name__)

OUT_SCHEMA_VERSION = "1"
RUN_LOG_FILE = "collect.log"
JSONL_FILE = "records.jsonl"
PARQUET_FILE = "records.parquet"


class _StepTimers:
    def __init__(self) -> None:
        self._starts: Dict[str, float] = {}

    def start(self, key: str) -> None:
        self._starts[key] = perf_counter()

    def finish(self, key: str) -> Optional[int]:
        started = self._starts.pop(key, None)
        if started is None:
            return None
        return int((perf_counter() - started) * 1000)


def _log_event(
    logger: Any,
    level: int,
    message: str,
    *,
    step: str,
    phase: str,
    timers: Optional[_StepTimers] = None,
    timer_key: Optional[str] = None,
    **extra: Any,
) -> None:
    key = timer_key or step
    duration_ms = None
    if timers is not None:
        if phase == "start":
            timers.start(key)
        elif phase in {"complete", "error", "warning", "skipped"}:
            duration_ms = timers.finish(key)
    payload: Dict[str, Any] = {"step": step, "phase": phase, "event": f"{step}.{phase}"}
    if duration_ms is not None:
        payload["duration_ms"] = duration_ms
    payload.update(extra)
    logger.log(level, message, extra=payload)


def _client(cfg: RunConfig) -> AwsCli:
    return AwsCli(profile=cfg.profile, timeout=float(cfg.operation_timeout))


def _check_region_services(cfg: RunConfig) -> None:
    if cfg.region_services:
        # Unknown names raise ConfigError before anything touches AWS.
        resolve_services(cfg.region_services)


def _check_export_support(cfg: RunConfig) -> None:
    if not cfg.parquet:
        return
    from .export.parquet import ParquetNotAvailable, ensure_parquet_available

    try:
        ensure_parquet_available()
    except ParquetNotAvailable as e:
        raise ConfigError(str(e)) from e


def _preflight(client: AwsCli, cfg: RunConfig, timers: _StepTimers) -> List[str]:
    """
    CLI availability, credentials and region validation. Any failure here is fatal.
    """
    _log_event(LOG, logging.INFO, "Pre-flight checks started", step="preflight", phase="start", timers=timers)
    version = client.check_available()
    identity = client.validate_credentials()
    partitions = PartitionResolver(client).resolve(cfg.regions)
    _log_event(
        LOG,
        logging.INFO,
        "Pre-flight checks passed",
        step="preflight",
        phase="complete",
        timers=timers,
        aws_cli=version,
        account=identity.get("Account") if isinstance(identity, dict) else None,
        profile=cfg.profile,
        regions=partitions,
    )
    return partitions


def _write_outputs(cfg: RunConfig, records: List[Any], timers: _StepTimers) -> Dict[str, Any]:
    from .export.json_files import write_grouped_json
    from .export.jsonl import write_jsonl

    run_dir = cfg.outdir / cfg.profile
    _log_event(LOG, logging.INFO, "Writing outputs", step="export", phase="start", timers=timers, outdir=str(run_dir))
    written = write_grouped_json(records, cfg.outdir, profile=cfg.profile, create_new_file=cfg.create_new_file)
    artifacts: Dict[str, Any] = {"files": len(written), "json": [str(p) for p in written]}
    if cfg.jsonl:
        path = run_dir / JSONL_FILE
        write_jsonl(records, path)
        artifacts["jsonl"] = str(path)
    if cfg.parquet:
        from .export.parquet import write_parquet

        path = run_dir / PARQUET_FILE
        write_parquet(records, path)
        artifacts["parquet"] = str(path)
    _log_event(
        LOG,
        logging.INFO,
        "Outputs written",
        step="export",
        phase="complete",
        timers=timers,
        files=len(written),
    )
    return artifacts


def cmd_collect(cfg: RunConfig) -> int:
    from .export.json_files import write_run_summary
    from .util.rich_progress import CollectionProgress, render_run_summary_table

    timers = _StepTimers()
    client = _client(cfg)
    run_dir = cfg.outdir / cfg.profile

    collectors = build_collectors(cfg.services)
    _check_region_services(cfg)
    _check_export_support(cfg)

    _log_event(
        LOG,
        logging.INFO,
        "Starting AWS collection",
        step="run",
        phase="start",
        timers=timers,
        profile=cfg.profile,
        services=len(collectors),
        concurrency=cfg.concurrency,
    )
    partitions = _preflight(client, cfg, timers)
    add_run_log_file(run_dir / RUN_LOG_FILE)

    default_partition = partitions[0]
    total = len(
        plan_tasks(
            collectors,
            partitions,
            default_partition=default_partition,
            region_services=cfg.region_services,
        )
    )

    aggregator = RecordAggregator()
    with CollectionProgress(enabled=cfg.progress) as progress:
        progress.start(total)
        records = run_collection(
            client,
            collectors,
            cfg.concurrency,
            partitions,
            default_partition=default_partition,
            region_services=cfg.region_services,
            observer=progress,
            aggregator=aggregator,
            observed_at=cfg.collected_at,
        )
    artifacts = _write_outputs(cfg, records, timers)
    metrics: Dict[str, Any] = {
        "tasks": aggregator.tasks,
        "failed_tasks": progress.failed_tasks,
        "records": len(records),
        "failures": aggregator.failures,
        "files": artifacts["files"],
        "records_by_service": aggregator.counts_by_service(),
        "tasks_by_service": progress.done_by_service,
    }
    write_run_summary(
        run_dir,
        {
            "schema_version": OUT_SCHEMA_VERSION,
            "regions": partitions,
            "metrics": metrics,
            "artifacts": artifacts,
            "config": dump_config(cfg),
        },
    )
    _log_event(
        LOG,
        logging.INFO,
        "AWS collection complete",
        step="run",
        phase="complete",
        timers=timers,
        outdir=str(run_dir),
    )

    render_run_summary_table(
        enabled=progress.enabled,
        profile=cfg.profile,
        regions=partitions,
        metrics=metrics,
        outdir=str(run_dir),
    )
    print(f"Collected {len(records)} resource sets into {artifacts['files']} files under {run_dir}")
    return 0


def cmd_list_services(cfg: RunConfig) -> int:
    print("Available AWS services:")
    for category, names in services_by_category().items():
        print(f"\n{category.display_name}:")
        for name in names:
            print(f"  - {name}")
    return 0


def cmd_list_regions(cfg: RunConfig) -> int:
    client = _client(cfg)
    client.check_available()
    for region in PartitionResolver(client).known_partitions():
        print(region)
    return 0


def cmd_validate_auth(cfg: RunConfig) -> int:
    client = _client(cfg)
    client.check_available()
    identity = client.validate_credentials()
    region = client.get_default_region()
    arn = identity.get("Arn") if isinstance(identity, dict) else None
    account = identity.get("Account") if isinstance(identity, dict) else None
    LOG.info("Authentication validated", extra={"profile": cfg.profile, "account": account, "region": region})
    # Print to stdout a concise success message (no secrets)
    print(f"OK: profile '{cfg.profile}' authenticated as {arn or 'unknown'} (account {account or 'unknown'}); default region {region}")
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    try:
        command, cfg = load_run_config(argv=argv)
        setup_logging(LogConfig(level=cfg.log_level, json_logs=cfg.json_logs))

        if command == "collect":
            code = cmd_collect(cfg)
        elif command == "list-services":
            code = cmd_list_services(cfg)
        elif command == "list-regions":
            code = cmd_list_regions(cfg)
        elif command == "validate-auth":
            code = cmd_validate_auth(cfg)
        else:
            raise ConfigError(f"Unknown command: {command}")

        sys.exit(code)
    except SystemExit:
        raise
    except BrokenPipeError:
        # Common when users pipe to `head` or similar tools.
        sys.exit(0)
    except Exception as e:
        setup_logging(LogConfig())
        LOG.error("Execution failed", extra={"error": str(e)})
        sys.exit(as_exit_code(e))


if __name__ == "__main__":
    main()
