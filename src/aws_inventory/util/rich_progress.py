from __future__ import annotations

import threading
from typing import Any, Dict, Mapping, Optional, Sequence

from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn
from rich.table import Table


def _format_service_counts(running: Dict[str, int], *, max_services: int = 4) -> str:
    active = sorted((name, count) for name, count in running.items() if count > 0)
    if not active:
        return ""
    shown = active[:max_services]
    tail = len(active) - len(shown)
    rendered = ", ".join([f"{name}={count}" for name, count in shown])
    if tail > 0:
        rendered = f"{rendered} (+{tail} more)"
    return rendered


class CollectionProgress:
    """
    Collection observer rendering one rich progress bar over all planned tasks,
    with the services currently in flight alongside it.
    Disabled (all methods no-op) unless enabled and the console is a terminal.
    """

    def __init__(self, *, enabled: bool, console: Optional[Console] = None) -> None:
        self._console = console or Console(stderr=True)
        self._enabled = bool(enabled and self._console.is_terminal)
        self._progress: Optional[Progress] = None
        self._task_id: Optional[Any] = None
        self._running: Dict[str, int] = {}
        self._done: Dict[str, int] = {}
        self._failed = 0
        self._lock = threading.Lock()
        self._started = False
        if self._enabled:
            self._progress = Progress(
                TextColumn("{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                TextColumn("{task.fields[services]}", justify="left"),
                TimeElapsedColumn(),
                console=self._console,
                transient=True,
            )

    def __enter__(self) -> CollectionProgress:
        if self._enabled and self._progress and not self._started:
            self._progress.start()
            self._started = True
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        if self._enabled and self._progress and self._started:
            self._progress.stop()
            self._started = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def done_by_service(self) -> Dict[str, int]:
        with self._lock:
            return dict(sorted(self._done.items()))

    @property
    def failed_tasks(self) -> int:
        with self._lock:
            return self._failed

    def start(self, total: int) -> None:
        if not self._enabled or not self._progress:
            return
        self._task_id = self._progress.add_task("Collecting", total=total, services="")

    def task_started(self, task: Any) -> None:
        with self._lock:
            self._running[task.service] = self._running.get(task.service, 0) + 1
            rendered = _format_service_counts(self._running)
        if self._progress and self._task_id is not None:
            self._progress.update(self._task_id, services=rendered)

    def task_finished(self, task: Any, result: Any, duration_ms: int) -> None:
        with self._lock:
            self._running[task.service] = max(0, self._running.get(task.service, 0) - 1)
            self._done[task.service] = self._done.get(task.service, 0) + 1
            if not result.ok:
                self._failed += 1
            rendered = _format_service_counts(self._running)
        if self._progress and self._task_id is not None:
            self._progress.update(self._task_id, advance=1, services=rendered)


def render_run_summary_table(
    *,
    enabled: bool,
    profile: str,
    regions: Sequence[str],
    metrics: Mapping[str, Any],
    outdir: str,
    console: Optional[Console] = None,
) -> None:
    if not enabled:
        return
    table = Table(title="Collection Summary", show_header=True, header_style="bold")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Profile", profile)
    table.add_row("Regions", ", ".join(regions))
    table.add_row("Tasks", str(metrics.get("tasks", 0)))
    table.add_row("Tasks with failures", str(metrics.get("failed_tasks", 0)))
    table.add_row("Records", str(metrics.get("records", 0)))
    table.add_row("Failed listings", str(metrics.get("failures", 0)))
    table.add_row("Files written", str(metrics.get("files", 0)))
    table.add_row("Output dir", outdir)
    for label, key in (("Tasks by service", "tasks_by_service"), ("Records by service", "records_by_service")):
        per_service = metrics.get(key) or {}
        if per_service:
            table.add_row(label, ", ".join(f"{name}={count}" for name, count in sorted(per_service.items())))
    (console or Console()).print(table)
