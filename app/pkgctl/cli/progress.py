"""Progress rendering for running jobs.

The executor works on its own thread. The main thread consumes the job
tree's event queue and renders one progress bar per top-level job.
Ctrl+C cancels the root job and keeps rendering until it completes.
"""

import logging
import queue

from rich.progress import BarColumn, Progress, TaskID, TextColumn, TimeRemainingColumn

from pkgctl.core.job import Job, JobEvent, JobEventType
from pkgctl.utils.formatting import console

logger = logging.getLogger(__name__)

# Seconds between checks for completion while no events arrive
POLL_INTERVAL = 0.2


def _create_progress() -> Progress:
    return Progress(
        TextColumn("[bold]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeRemainingColumn(),
        TextColumn("[muted]{task.fields[hint]}"),
        console=console,
        transient=False,
    )


def watch_job(job: Job, quiet: bool = False) -> None:
    """Render the progress of a job until it completes.

    Args:
        job: Root job, usually started by ``OperationExecutor.start``.
        quiet: If True, only wait without rendering.
    """
    events = job.tree.subscribe()
    try:
        if quiet:
            _wait(job)
            return
        with _create_progress() as progress:
            task = progress.add_task(job.title, total=1.0, hint=job.hint)
            _consume(job, events, progress, task)
            state = job.state()
            progress.update(task, completed=state.progress, hint=state.hint)
    finally:
        job.tree.unsubscribe(events)


def _wait(job: Job) -> None:
    try:
        job.wait()
    except KeyboardInterrupt:
        _cancel(job)


def _cancel(job: Job) -> None:
    console.print("[warning]Cancelling...[/]")
    job.cancel()
    job.wait()


def _consume(job: Job, events: "queue.Queue[JobEvent]", progress: Progress, task: TaskID) -> None:
    try:
        while not job.is_completed():
            try:
                event = events.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                continue
            if event.job_id != job.id or event.event_type == JobEventType.CREATED:
                continue
            progress.update(task, completed=event.state.progress, hint=event.state.hint)
    except KeyboardInterrupt:
        _cancel(job)
