from __future__ import annotations

import io
from types import SimpleNamespace

from rich.console import Console

from aws_inventory.util.rich_progress import CollectionProgress, render_run_summary_table


def test_progress_counts_tasks_when_disabled() -> None:
    progress = CollectionProgress(enabled=False, console=Console(file=io.StringIO()))

    with progress:
        progress.start(3)
        for service, ok in (("iam", True), ("sqs", False), ("iam", False)):
            task = SimpleNamespace(service=service)
            progress.task_started(task)
            progress.task_finished(task, SimpleNamespace(ok=ok), 5)

    assert not progress.enabled
    assert progress.done_by_service == {"iam": 2, "sqs": 1}
    assert progress.failed_tasks == 2


def test_summary_table_lists_service_counts() -> None:
    out = io.StringIO()
    console = Console(file=out, width=160, force_terminal=False)

    render_run_summary_table(
        enabled=True,
        profile="dev",
        regions=["eu-west-1"],
        metrics={
            "tasks": 3,
            "failed_tasks": 1,
            "records": 2,
            "tasks_by_service": {"sqs": 1, "iam": 2},
            "records_by_service": {"iam": 2},
        },
        outdir="output/dev",
        console=console,
    )

    text = out.getvalue()
    assert "Tasks with failures" in text
    assert "iam=2, sqs=1" in text
    assert "output/dev" in text


def test_summary_table_disabled_prints_nothing() -> None:
    out = io.StringIO()

    render_run_summary_table(
        enabled=False, profile="dev", regions=[], metrics={}, outdir="x", console=Console(file=out)
    )

    assert out.getvalue() == ""
