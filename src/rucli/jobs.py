# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Background job registry.

Each submitted job runs on its own daemon thread. Ids are monotonic and
never reused within a session. Completed jobs stay visible until a listing
or status query has reported them once, then they are evicted.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import JobNotFound

logger = logging.getLogger(__name__)


class JobStatus(Enum):
    RUNNING = "Running"
    COMPLETED = "Completed"


@dataclass
class Job:
    id: int
    text: str
    thread: threading.Thread | None = None
    status: JobStatus = JobStatus.RUNNING
    result: Any = None
    error: BaseException | None = None
    done: threading.Event = field(default_factory=threading.Event)


@dataclass(frozen=True)
class JobView:
    """Point-in-time view of a job, with its +/- marker."""

    id: int
    text: str
    status: JobStatus
    marker: str = ""


def format_job(view: JobView) -> str:
    """Render a job line: [id][marker]  Status    text."""
    return f"[{view.id}]{view.marker}  {view.status.value}    {view.text}"


class JobRegistry:
    """Tracks background jobs by id."""

    def __init__(self) -> None:
        self._jobs: dict[int, Job] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def submit(self, runnable: Callable[[], Any], text: str) -> int:
        """Start runnable on a new thread and return its job id."""
        with self._lock:
            job_id = self._next_id
            self._next_id += 1
            job = Job(id=job_id, text=text)
            self._jobs[job_id] = job

        thread = threading.Thread(
            target=self._run,
            args=(job, runnable),
            name=f"rucli-job-{job_id}",
            daemon=True,
        )
        job.thread = thread
        thread.start()
        logger.debug("job %d started: %s", job_id, text)
        return job_id

    def _run(self, job: Job, runnable: Callable[[], Any]) -> None:
        try:
            job.result = runnable()
        except Exception as e:
            logger.exception("job %d failed", job.id)
            job.error = e
        finally:
            with self._lock:
                job.status = JobStatus.COMPLETED
            job.done.set()
            logger.debug("job %d completed", job.id)

    # -----------------------
    # Queries
    # -----------------------

    def _markers(self) -> dict[int, str]:
        ids = sorted(self._jobs)
        markers: dict[int, str] = {}
        if ids:
            markers[ids[-1]] = "+"
        if len(ids) > 1:
            markers[ids[-2]] = "-"
        return markers

    def _view(self, job: Job, markers: dict[int, str]) -> JobView:
        return JobView(job.id, job.text, job.status, markers.get(job.id, ""))

    def list(self) -> list[JobView]:
        """All tracked jobs in id order; completed ones are then evicted."""
        with self._lock:
            markers = self._markers()
            views = [
                self._view(self._jobs[job_id], markers)
                for job_id in sorted(self._jobs)
            ]
            for view in views:
                if view.status is JobStatus.COMPLETED:
                    del self._jobs[view.id]
        return views

    def status(self, job_id: int | None = None) -> JobView:
        """Status of one job (latest when job_id is None), without blocking.

        Raises:
            JobNotFound: the id is not tracked (or no jobs exist)
        """
        with self._lock:
            if job_id is None:
                if not self._jobs:
                    raise JobNotFound()
                job_id = max(self._jobs)
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFound(job_id)
            view = self._view(job, self._markers())
            if view.status is JobStatus.COMPLETED:
                del self._jobs[job_id]
        return view

    def running_count(self) -> int:
        with self._lock:
            return sum(
                1 for j in self._jobs.values()
                if j.status is JobStatus.RUNNING
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    # -----------------------
    # Waiting
    # -----------------------

    def wait(self, job_id: int, timeout: float | None = None) -> bool:
        """Block until a tracked job finishes; False on timeout."""
        with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job.done.wait(timeout)

    def wait_all(self, timeout: float | None = None) -> None:
        """Block until every tracked job has finished."""
        with self._lock:
            jobs = list(self._jobs.values())
        for job in jobs:
            job.done.wait(timeout)
