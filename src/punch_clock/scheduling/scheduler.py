from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ..common.datetime_utils import now_utc
from .cadence import Cadence


@dataclass
class ScheduledJob:
    name: str
    cadence: Cadence
    action: Callable[[], object]
    next_run: Optional[datetime] = None
    last_run: Optional[datetime] = None
    last_error: Optional[str] = None


class JobScheduler:
    """Runs registered jobs when their cadence comes due.

    The first ``run_pending`` call only plans each job's first firing, so a
    restart never replays missed slots. A failing job is logged and
    rescheduled; it never stops the loop or the other jobs.
    """

    def __init__(self, *, logger: logging.Logger, clock: Callable[[], datetime] = now_utc):
        self._logger = logger
        self._clock = clock
        self._jobs: Dict[str, ScheduledJob] = {}

    @property
    def jobs(self) -> List[ScheduledJob]:
        return list(self._jobs.values())

    def register(self, name: str, cadence: Cadence | str, action: Callable[[], object]) -> ScheduledJob:
        if isinstance(cadence, str):
            cadence = Cadence.parse(cadence)
        if name in self._jobs:
            raise ValueError(f"Job {name!r} is already registered")
        job = ScheduledJob(name=name, cadence=cadence, action=action)
        self._jobs[name] = job
        self._logger.debug("Registered job %s (%s)", name, cadence)
        return job

    def run_pending(self, now: Optional[datetime] = None) -> List[str]:
        """Run every job due at ``now``; returns the names of jobs that ran."""

        now = now or self._clock()
        ran: List[str] = []
        for job in self._jobs.values():
            if job.next_run is None:
                job.next_run = job.cadence.next_after(now)
                self._logger.info("Job %s scheduled, first run at %s", job.name, job.next_run)
                continue
            if job.next_run > now:
                continue

            self._run(job, now)
            ran.append(job.name)
            job.next_run = job.cadence.next_after(now)
        return ran

    def run_forever(self, stop_event: threading.Event, *, poll_seconds: float = 1.0) -> None:
        self._logger.info("Scheduler started with %d jobs", len(self._jobs))
        while not stop_event.is_set():
            self.run_pending()
            stop_event.wait(poll_seconds)
        self._logger.info("Scheduler stopped")

    def _run(self, job: ScheduledJob, now: datetime) -> None:
        self._logger.info("Running job %s", job.name)
        job.last_run = now
        try:
            job.action()
            job.last_error = None
        except Exception as exc:
            job.last_error = str(exc)
            self._logger.exception("Job %s failed", job.name)
