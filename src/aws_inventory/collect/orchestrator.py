from __future__ import annotations

import logging
import threading
from contextlib import nullcontext
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Callable, ContextManager, List, Optional, Protocol, Sequence, Set, Tuple

from ..logging import get_logger
from ..util.concurrency import parallel_map_unordered
from ..util.errors import ConfigError, OperationError
from ..util.time import utc_now_iso
from .aggregator import RecordAggregator
from .augment import augment_item, extract_array, extract_identifier
from .model import (
    CollectorConfig,
    Document,
    IndependentBatch,
    ListThenDescribe,
    ListThenEnrich,
    Operation,
    OperationClient,
    OutputRecord,
    ParentScope,
    PlainList,
    ResourceConfig,
)

LOG = get_logger(__name__)


@dataclass(frozen=True)
class CollectionTask:
    service: str
    partition: str
    resource: ResourceConfig

    @property
    def label(self) -> str:
        return f"{self.service}/{self.resource.resource_type}@{self.partition}"


@dataclass
class CollectionResult:
    records: List[OutputRecord] = field(default_factory=list)
    failures: int = 0

    @property
    def ok(self) -> bool:
        return self.failures == 0


class CollectionObserver(Protocol):
    """
    Receives task lifecycle events. Observers never influence the outcome of a run.
    """

    def task_started(self, task: CollectionTask) -> None:
        ...

    def task_finished(self, task: CollectionTask, result: CollectionResult, duration_ms: int) -> None:
        ...


def _log_event(level: int, message: str, *, step: str, phase: str, **extra: Any) -> None:
    payload = {"step": step, "phase": phase, "event": f"{step}.{phase}"}
    payload.update(extra)
    LOG.log(level, message, extra=payload)


@dataclass(frozen=True)
class _Context:
    """
    Per-task collection context. The gate is shared by every listing call of a
    run so batch entries and per-parent listings stay under the outer ceiling.
    """

    client: OperationClient
    service: str
    partition: str
    resource_type: str
    observed_at: str
    gate: Optional[threading.Semaphore] = None

    def record(self, resource_type: str, payload: Document) -> OutputRecord:
        return OutputRecord(self.service, self.partition, resource_type, payload, self.observed_at)


def _perform(ctx: _Context, operation: Operation, *, resource_type: Optional[str] = None) -> Tuple[bool, Document]:
    resource_type = resource_type or ctx.resource_type
    gate: ContextManager[Any] = ctx.gate if ctx.gate is not None else nullcontext()
    try:
        with gate:
            return True, ctx.client.perform(operation.with_partition(ctx.partition))
    except OperationError as e:
        _log_event(
            logging.WARNING,
            f"Listing failed; skipping {ctx.service}/{resource_type} in {ctx.partition}",
            step="collect",
            phase="warning",
            service=ctx.service,
            resource_type=resource_type,
            region=ctx.partition,
            error=str(e),
        )
        return False, None


def _list_array(
    ctx: _Context, tokens: Tuple[str, ...], array_key: str, *, empty_when_missing: bool = False
) -> Optional[List[Any]]:
    """
    Run one listing and return the array at array_key, or None when the call
    failed or the response has no such array.
    """
    ok, doc = _perform(ctx, Operation(tokens))
    if not ok:
        return None
    items = extract_array(doc, array_key)
    if items is None and empty_when_missing and isinstance(doc, dict):
        return []
    if items is None:
        _log_event(
            logging.WARNING,
            f"Listing response has no '{array_key}' array; skipping {ctx.service}/{ctx.resource_type} in {ctx.partition}",
            step="collect",
            phase="warning",
            service=ctx.service,
            resource_type=ctx.resource_type,
            region=ctx.partition,
        )
    return items


def _list_identifiers(
    ctx: _Context, tokens: Tuple[str, ...], array_key: str, identifier_key: Optional[str]
) -> Optional[List[str]]:
    items = _list_array(ctx, tokens, array_key)
    if items is None:
        return None
    identifiers = (extract_identifier(item, identifier_key) for item in items)
    return [i for i in identifiers if i is not None]


def _per_parent(
    ctx: _Context,
    parent: ParentScope,
    concurrency: int,
    collect: Callable[[Tuple[str, ...]], Optional[List[Any]]],
) -> Tuple[Optional[List[Any]], int]:
    """
    List the parents, run collect(scope_args) for each and concatenate the
    results in parent order. Returns (None, 0) when the parent listing failed;
    otherwise the items and the number of failed per-parent listings.
    """
    parents = _list_identifiers(ctx, parent.list_operation, parent.array_key, parent.identifier_key)
    if parents is None:
        return None, 0

    def _one(entry: Tuple[int, str]) -> Tuple[int, Optional[List[Any]]]:
        index, identifier = entry
        return index, collect(parent.scope_args(identifier))

    outcomes = parallel_map_unordered(_one, list(enumerate(parents)), max_workers=concurrency) if parents else []
    outcomes.sort(key=lambda o: o[0])
    items: List[Any] = []
    failures = 0
    for _, part in outcomes:
        if part is None:
            failures += 1
        else:
            items.extend(part)
    return items, failures


def _collect_plain(ctx: _Context, mode: PlainList) -> CollectionResult:
    ok, doc = _perform(ctx, Operation(mode.operation))
    if not ok:
        return CollectionResult(failures=1)
    return CollectionResult([ctx.record(ctx.resource_type, doc)])


def _collect_batch(ctx: _Context, mode: IndependentBatch, concurrency: int) -> CollectionResult:
    def _one(entry: Tuple[int, Tuple[str, Tuple[str, ...]]]) -> Tuple[int, Optional[OutputRecord]]:
        index, (name, tokens) = entry
        ok, doc = _perform(ctx, Operation(tokens), resource_type=name)
        return index, ctx.record(name, doc) if ok else None

    outcomes = parallel_map_unordered(_one, list(enumerate(mode.named_operations)), max_workers=concurrency)
    outcomes.sort(key=lambda o: o[0])
    records = [rec for _, rec in outcomes if rec is not None]
    return CollectionResult(records, failures=len(outcomes) - len(records))


def _enrich_items(ctx: _Context, mode: ListThenEnrich, items: List[Any]) -> List[Any]:
    def _enrich(entry: Tuple[int, Document]) -> Tuple[int, Document]:
        index, item = entry
        return index, augment_item(ctx.client, item, mode.identifier_key, mode.detail_templates, ctx.partition)

    enriched = list(items)
    if items and mode.detail_templates:
        for index, item in parallel_map_unordered(_enrich, list(enumerate(items)), max_workers=mode.enrich_concurrency):
            enriched[index] = item
    return enriched


def _collect_enriched(ctx: _Context, mode: ListThenEnrich) -> CollectionResult:
    def _list(scope: Tuple[str, ...]) -> Optional[List[Any]]:
        return _list_array(
            ctx, mode.list_operation + scope, mode.item_array_key, empty_when_missing=mode.empty_when_missing
        )

    failures = 0
    if mode.parent is None:
        items = _list(())
    else:
        items, failures = _per_parent(ctx, mode.parent, mode.enrich_concurrency, _list)
    if items is None:
        return CollectionResult(failures=1)

    payload = {mode.payload_key: _enrich_items(ctx, mode, items)}
    return CollectionResult([ctx.record(ctx.resource_type, payload)], failures=failures)


def _describe(ctx: _Context, mode: ListThenDescribe, scope: Tuple[str, ...]) -> Optional[List[Any]]:
    """
    List identifiers (within scope) and describe them in batches. A failed
    describe batch drops only that batch.
    """
    identifiers = _list_identifiers(ctx, mode.list_operation + scope, mode.identifier_array_key, None)
    if identifiers is None:
        return None
    described: List[Any] = []
    size = mode.describe_batch_size
    for start in range(0, len(identifiers), size):
        ok, doc = _perform(ctx, mode.describe(identifiers[start : start + size], scope))
        items = extract_array(doc, mode.result_array_key) if ok else None
        if items is not None:
            described.extend(items)
    return described


def _collect_described(ctx: _Context, mode: ListThenDescribe) -> CollectionResult:
    failures = 0
    if mode.parent is None:
        items = _describe(ctx, mode, ())
    else:
        items, failures = _per_parent(ctx, mode.parent, mode.scope_concurrency, lambda scope: _describe(ctx, mode, scope))
    if items is None:
        return CollectionResult(failures=1)
    return CollectionResult([ctx.record(ctx.resource_type, {mode.result_array_key: items})], failures=failures)


def collect_resource(
    client: OperationClient,
    service: str,
    partition: str,
    resource: ResourceConfig,
    *,
    batch_concurrency: int,
    observed_at: Optional[str] = None,
    listing_gate: Optional[threading.Semaphore] = None,
) -> CollectionResult:
    """
    Evaluate one resource config in one partition.

    Listing failures produce no records; enrichment failures only drop the
    affected fields. Remote failures never raise out of this function.
    listing_gate, when given, bounds listing calls across concurrent callers.
    """
    ctx = _Context(client, service, partition, resource.resource_type, observed_at or utc_now_iso(), listing_gate)
    mode = resource.mode
    if isinstance(mode, PlainList):
        return _collect_plain(ctx, mode)
    if isinstance(mode, IndependentBatch):
        return _collect_batch(ctx, mode, batch_concurrency)
    if isinstance(mode, ListThenEnrich):
        return _collect_enriched(ctx, mode)
    if isinstance(mode, ListThenDescribe):
        return _collect_described(ctx, mode)
    raise ConfigError(f"Unsupported collection mode: {type(mode).__name__}")


def plan_tasks(
    collectors: Sequence[CollectorConfig],
    partitions: Sequence[str],
    *,
    default_partition: Optional[str] = None,
    region_services: Optional[Sequence[str]] = None,
) -> List[CollectionTask]:
    """
    Expand collector configs across partitions into independent tasks.

    - Additional (non-default) partitions only include services in region_services, when given.
    - Global and fixed-partition services resolve to the same partition for every
      region and are scheduled once.
    - Resource configs restricted to other partitions are skipped.
    """
    if not partitions:
        return []
    default = default_partition or partitions[0]
    allowed = {s.strip() for s in region_services if s.strip()} if region_services else None
    seen: Set[Tuple[str, str, int]] = set()
    tasks: List[CollectionTask] = []
    for collector in collectors:
        for region in partitions:
            if region != default and allowed is not None and collector.service not in allowed:
                continue
            partition = collector.policy.resolve(region)
            for index, resource in enumerate(collector.resources):
                if not resource.applies_to(partition):
                    continue
                key = (collector.service, partition, index)
                if key in seen:
                    continue
                seen.add(key)
                tasks.append(CollectionTask(collector.service, partition, resource))
    return tasks


def _notify(observer: Optional[CollectionObserver], method: str, *args: Any) -> None:
    if observer is None:
        return
    try:
        getattr(observer, method)(*args)
    except Exception as e:
        LOG.debug("Progress observer failed", extra={"step": "collect", "phase": "observer", "error": str(e)})


def run_collection(
    client: OperationClient,
    collectors: Sequence[CollectorConfig],
    outer_concurrency: int,
    partitions: Sequence[str],
    *,
    default_partition: Optional[str] = None,
    region_services: Optional[Sequence[str]] = None,
    observer: Optional[CollectionObserver] = None,
    aggregator: Optional[RecordAggregator] = None,
    observed_at: Optional[str] = None,
) -> List[OutputRecord]:
    """
    Collect every planned (service, partition, resource) task with at most
    outer_concurrency tasks in flight and return all records produced.

    Listing calls, including batch entries and per-parent listings, share one
    gate of outer_concurrency slots. Detail calls are bounded per listing by
    enrich_concurrency instead.

    A failing task contributes nothing and never aborts its siblings. Every
    record of the run carries observed_at (default: the run start time).
    """
    if outer_concurrency < 1:
        raise ConfigError(f"outer concurrency must be >= 1, got {outer_concurrency}")
    run_started = perf_counter()
    observed_at = observed_at or utc_now_iso()
    listing_gate = threading.BoundedSemaphore(outer_concurrency)
    aggregator = aggregator if aggregator is not None else RecordAggregator()
    tasks = plan_tasks(
        collectors,
        partitions,
        default_partition=default_partition,
        region_services=region_services,
    )
    _log_event(
        logging.INFO,
        "Collection started",
        step="collect",
        phase="start",
        task_count=len(tasks),
        regions=list(partitions),
        concurrency=outer_concurrency,
    )

    def _run_task(task: CollectionTask) -> None:
        _notify(observer, "task_started", task)
        started = perf_counter()
        try:
            result = collect_resource(
                client,
                task.service,
                task.partition,
                task.resource,
                batch_concurrency=outer_concurrency,
                observed_at=observed_at,
                listing_gate=listing_gate,
            )
        except Exception as e:
            LOG.error(
                f"Collection task crashed: {task.label}",
                exc_info=True,
                extra={"step": "collect", "phase": "error", "task": task.label, "error": str(e)},
            )
            result = CollectionResult(failures=1)
        duration_ms = int((perf_counter() - started) * 1000)
        aggregator.add(result.records, failures=result.failures)
        _log_event(
            logging.DEBUG,
            f"Collected {task.label}",
            step="collect",
            phase="complete",
            task=task.label,
            records=len(result.records),
            failures=result.failures,
            duration_ms=duration_ms,
        )
        _notify(observer, "task_finished", task, result, duration_ms)

    parallel_map_unordered(_run_task, tasks, max_workers=outer_concurrency)

    records = aggregator.snapshot()
    failures = aggregator.failures
    _log_event(
        logging.WARNING if failures else logging.INFO,
        "Collection complete" if not failures else f"Collection complete; {failures} listing(s) failed",
        step="collect",
        phase="warning" if failures else "complete",
        task_count=len(tasks),
        records=len(records),
        failures=failures,
        duration_ms=int((perf_counter() - run_started) * 1000),
    )
    return records
