"""Cancellable, hierarchical progress reporting.

A job is a unit of long-running work. The code performing the work polls
:meth:`Job.should_proceed` between discrete steps and calls
:meth:`Job.complete` exactly once on every exit path::

    def long_running(job: Job) -> None:
        try:
            for i in range(100):
                if not job.should_proceed(f"Processing step {i}"):
                    break
                ...
                job.set_progress(i / 100)
        finally:
            job.complete()

Jobs live in a :class:`JobTree` arena and refer to their parent by id.
Observers receive change events through queues returned by
:meth:`JobTree.subscribe`, so no callback ever runs on the worker thread.
"""

from __future__ import annotations

import itertools
import logging
import queue
import threading
import time
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class JobEventType(Enum):
    """Kind of change reported for a job."""

    CREATED = "created"
    CHANGED = "changed"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class JobState:
    """Immutable snapshot of a job, safe to hand to other threads.

    Attributes:
        job_id: Id of the job inside its tree.
        parent_id: Id of the parent job or None for a root job.
        title: Job title.
        hint: Description of the current step.
        progress: Progress between 0 and 1.
        error_message: Error message or "" if there is no error.
        cancel_requested: Whether this job or an ancestor was cancelled.
        completed: Whether the job was completed.
        started_at: Creation time as a UNIX timestamp.
    """

    job_id: int
    parent_id: int | None
    title: str
    hint: str
    progress: float
    error_message: str
    cancel_requested: bool
    completed: bool
    started_at: float

    @property
    def remaining_seconds(self) -> float | None:
        """Estimated remaining time based on the progress so far."""
        if self.completed or self.progress <= 0 or self.progress >= 1:
            return None
        elapsed = time.time() - self.started_at
        return elapsed * (1 - self.progress) / self.progress


@dataclass(frozen=True, slots=True)
class JobEvent:
    """Change notification delivered to subscribers."""

    event_type: JobEventType
    state: JobState

    @property
    def job_id(self) -> int:
        return self.state.job_id


class JobTree:
    """Arena holding jobs addressed by integer ids.

    One re-entrant lock guards every job of the tree so that progress
    propagation from a child to its ancestors is atomic.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._completion = threading.Condition(self._lock)
        self._jobs: dict[int, Job] = {}
        self._ids = itertools.count(1)
        self._subscribers: list[queue.Queue[JobEvent]] = []

    def create_job(self, title: str = "") -> Job:
        """Create a new root job."""
        with self._lock:
            job = Job(self, next(self._ids), title)
            self._jobs[job.id] = job
            self._publish(JobEventType.CREATED, job)
            return job

    def get(self, job_id: int | None) -> Job | None:
        """Return the job with the given id or None if it does not exist."""
        if job_id is None:
            return None
        with self._lock:
            return self._jobs.get(job_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._jobs

    def subscribe(self) -> queue.Queue[JobEvent]:
        """Register a new observer queue for all job events of this tree."""
        events: queue.Queue[JobEvent] = queue.Queue()
        with self._lock:
            self._subscribers.append(events)
        return events

    def unsubscribe(self, events: queue.Queue[JobEvent]) -> None:
        """Stop delivering events to the given queue."""
        with self._lock:
            if events in self._subscribers:
                self._subscribers.remove(events)

    def dispose(self, job_id: int) -> None:
        """Remove a job and all of its descendants from the arena."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return
            parent = self._jobs.get(job.parent_id) if job.parent_id is not None else None
            if parent is not None and job_id in parent._children:
                parent._children.remove(job_id)
            pending = [job_id]
            while pending:
                current = self._jobs.pop(pending.pop(), None)
                if current is not None:
                    pending.extend(current._children)

    def _add_child(self, parent: Job, child: Job) -> None:
        self._jobs[child.id] = child
        parent._children.append(child.id)
        self._publish(JobEventType.CREATED, child)

    def _publish(self, event_type: JobEventType, job: Job) -> None:
        if not self._subscribers:
            return
        event = JobEvent(event_type, job._snapshot())
        for events in self._subscribers:
            events.put_nowait(event)


class Job:
    """Thread-safe progress and state node of a :class:`JobTree`.

    Jobs are created with :meth:`JobTree.create_job` or
    :meth:`Job.new_sub_job`; never instantiate this class directly.

    Progress is only informational: the runtime does not clamp it and does
    not enforce monotonicity. Once the job is completed its progress is
    frozen. Errors and cancellation are independent of completion.
    """

    def __init__(
        self,
        tree: JobTree,
        job_id: int,
        title: str = "",
        parent_id: int | None = None,
        fraction: float = 0.0,
        parent_progress_base: float = 0.0,
        parent_hint_base: str = "",
        update_parent_hint: bool = False,
        update_parent_progress: bool = False,
    ) -> None:
        self._tree = tree
        self.id = job_id
        self.parent_id = parent_id
        self._title = title
        self._hint = ""
        self._progress = 0.0
        self._error_message = ""
        self._cancel_requested = False
        self._completed = False
        self._started_at = time.time()
        self._children: list[int] = []
        self._fraction = fraction
        self._parent_progress_base = parent_progress_base
        self._parent_hint_base = parent_hint_base
        self._update_parent_hint = update_parent_hint
        self._update_parent_progress = update_parent_progress

    def __repr__(self) -> str:
        return f"Job(id={self.id}, title={self._title!r})"

    @property
    def tree(self) -> JobTree:
        return self._tree

    # -- tree navigation ---------------------------------------------------

    def new_sub_job(
        self,
        fraction: float,
        title: str = "",
        update_parent_hint: bool = True,
        update_parent_progress: bool = True,
    ) -> Job:
        """Create a child job covering a part of this job.

        The child's progress ``p`` is mapped to ``base + p * fraction`` of
        this job, where ``base`` is this job's progress right now. Fractions
        are not validated; keeping them consistent is up to the caller.
        The child's error message does not propagate automatically.

        Args:
            fraction: Part (0..1) of this job covered by the child.
            title: Title of the new job.
            update_parent_hint: Whether child hints update this job's hint.
            update_parent_progress: Whether child progress updates this job.

        Returns:
            The new child job.
        """
        with self._tree._lock:
            child = Job(
                self._tree,
                next(self._tree._ids),
                title,
                parent_id=self.id,
                fraction=fraction,
                parent_progress_base=self._progress,
                parent_hint_base=self._hint,
                update_parent_hint=update_parent_hint,
                update_parent_progress=update_parent_progress,
            )
            self._tree._add_child(self, child)
            return child

    def parent(self) -> Job | None:
        """Return the parent job or None."""
        return self._tree.get(self.parent_id)

    def children(self) -> list[Job]:
        """Return the child jobs in creation order."""
        with self._tree._lock:
            return [job for cid in self._children if (job := self._tree.get(cid)) is not None]

    def _ancestors(self) -> Iterator[Job]:
        # Finite upward walk: stops at missing entries and never revisits an id
        seen = {self.id}
        current = self._tree.get(self.parent_id)
        while current is not None and current.id not in seen:
            seen.add(current.id)
            yield current
            current = self._tree.get(current.parent_id)

    def root(self) -> Job:
        """Return the top-most reachable ancestor (or this job)."""
        with self._tree._lock:
            root = self
            for ancestor in self._ancestors():
                root = ancestor
            return root

    def dispose(self) -> None:
        """Remove this job and its descendants from the tree."""
        self._tree.dispose(self.id)

    # -- state -------------------------------------------------------------

    @property
    def title(self) -> str:
        with self._tree._lock:
            return self._title

    def set_title(self, title: str) -> None:
        with self._tree._lock:
            self._title = title
            self._tree._publish(JobEventType.CHANGED, self)

    @property
    def hint(self) -> str:
        with self._tree._lock:
            return self._hint

    def set_hint(self, hint: str) -> None:
        """Set the description of the current step."""
        with self._tree._lock:
            self._hint = hint
            self._tree._publish(JobEventType.CHANGED, self)
            if self._update_parent_hint:
                parent = self.parent()
                if parent is not None:
                    base = self._parent_hint_base
                    parent.set_hint(f"{base} / {hint}" if base else hint)

    @property
    def progress(self) -> float:
        with self._tree._lock:
            return self._progress

    def set_progress(self, progress: float) -> None:
        """Set the progress (0..1).

        Calls after :meth:`complete` are ignored.
        """
        with self._tree._lock:
            if self._completed:
                logger.debug("Ignoring progress update for completed job %d", self.id)
                return
            self._progress = progress
            self._tree._publish(JobEventType.CHANGED, self)
            if self._update_parent_progress:
                parent = self.parent()
                if parent is not None:
                    parent.set_progress(self._parent_progress_base + progress * self._fraction)

    @property
    def error_message(self) -> str:
        with self._tree._lock:
            return self._error_message

    def set_error_message(self, error_message: str) -> None:
        """Record an error. It does not propagate to the parent job."""
        with self._tree._lock:
            self._error_message = error_message
            self._tree._publish(JobEventType.CHANGED, self)

    def cancel(self) -> None:
        """Request cancellation of this job and its descendants.

        Nothing is stopped by this call; the running code notices the
        request the next time it calls :meth:`should_proceed`.
        """
        with self._tree._lock:
            if not self._cancel_requested:
                self._cancel_requested = True
                self._tree._publish(JobEventType.CHANGED, self)

    def is_cancelled(self) -> bool:
        """Check whether this job or any ancestor requested cancellation."""
        with self._tree._lock:
            if self._cancel_requested:
                return True
            return any(a._cancel_requested for a in self._ancestors())

    def should_proceed(self, hint: str | None = None) -> bool:
        """Check whether work should continue.

        Args:
            hint: Optional hint that is set when the job may proceed.

        Returns:
            False if the job is cancelled or has an error message.
        """
        with self._tree._lock:
            proceed = not self.is_cancelled() and not self._error_message
            if proceed and hint is not None:
                self.set_hint(hint)
            return proceed

    def is_completed(self) -> bool:
        with self._tree._lock:
            return self._completed

    def complete(self) -> None:
        """Mark the job as completed and release waiting observers.

        Must be called on every exit path, with or without an error.
        """
        with self._tree._lock:
            if self._completed:
                logger.debug("Job %d completed more than once", self.id)
                return
            self._completed = True
            self._tree._publish(JobEventType.COMPLETED, self)
            self._tree._completion.notify_all()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the job is completed.

        Args:
            timeout: Maximum time to wait in seconds or None to wait forever.

        Returns:
            True if the job is completed.
        """
        with self._tree._completion:
            return self._tree._completion.wait_for(lambda: self._completed, timeout)

    def state(self) -> JobState:
        """Return an immutable snapshot of this job."""
        with self._tree._lock:
            return self._snapshot()

    def _snapshot(self) -> JobState:
        return JobState(
            job_id=self.id,
            parent_id=self.parent_id,
            title=self._title,
            hint=self._hint,
            progress=self._progress,
            error_message=self._error_message,
            cancel_requested=self.is_cancelled(),
            completed=self._completed,
            started_at=self._started_at,
        )


def start_watchdog(job: Job, seconds: float) -> threading.Timer:
    """Cancel a job if it is still running after a timeout.

    Args:
        job: Job to guard.
        seconds: Timeout in seconds.

    Returns:
        The started timer; call ``cancel()`` on it to disarm the watchdog.
    """

    def _expire() -> None:
        if not job.is_completed():
            logger.warning("Job %r timed out after %.0f seconds", job.title, seconds)
            job.cancel()

    timer = threading.Timer(seconds, _expire)
    timer.daemon = True
    timer.start()
    return timer
