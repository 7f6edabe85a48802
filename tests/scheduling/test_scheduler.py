from __future__ import annotations

import threading
from datetime import datetime, time, timedelta

import pytest

from fakes import TEST_LOGGER
from punch_clock.core.exceptions import ValidationError
from punch_clock.scheduling.cadence import Cadence
from punch_clock.scheduling.scheduler import JobScheduler


def test_parse_interval_and_daily_cadences():
    assert Cadence.parse("every 30m").interval == timedelta(minutes=30)
    assert Cadence.parse("every 6h").interval == timedelta(hours=6)
    assert Cadence.parse("  Every 45s ").interval == timedelta(seconds=45)
    assert Cadence.parse("daily 01:00").at == time(1, 0)


@pytest.mark.parametrize("text", ["", "hourly", "every 0m", "every 2d", "every 25h", "daily 24:00", "daily 1"])
def test_parse_rejects_malformed_cadences(text):
    with pytest.raises(ValidationError):
        Cadence.parse(text)


def test_interval_cadence_aligns_to_midnight():
    cadence = Cadence.parse("every 30m")

    assert cadence.next_after(datetime(2024, 3, 4, 10, 10)) == datetime(2024, 3, 4, 10, 30)
    assert cadence.next_after(datetime(2024, 3, 4, 10, 30)) == datetime(2024, 3, 4, 11, 0)
    assert cadence.next_after(datetime(2024, 3, 4, 23, 45)) == datetime(2024, 3, 5, 0, 0)


def test_daily_cadence_rolls_to_next_day_once_passed():
    cadence = Cadence.parse("daily 01:00")

    assert cadence.next_after(datetime(2024, 3, 4, 0, 30)) == datetime(2024, 3, 4, 1, 0)
    assert cadence.next_after(datetime(2024, 3, 4, 1, 0)) == datetime(2024, 3, 5, 1, 0)


def test_run_pending_runs_due_jobs_only():
    calls = []
    scheduler = JobScheduler(logger=TEST_LOGGER)
    scheduler.register("pending", "every 30m", lambda: calls.append("pending"))
    scheduler.register("nightly", "daily 01:00", lambda: calls.append("nightly"))

    assert scheduler.run_pending(datetime(2024, 3, 4, 0, 10)) == []
    assert scheduler.run_pending(datetime(2024, 3, 4, 0, 30)) == ["pending"]
    assert scheduler.run_pending(datetime(2024, 3, 4, 0, 45)) == []
    assert scheduler.run_pending(datetime(2024, 3, 4, 1, 0)) == ["pending", "nightly"]
    assert calls == ["pending", "pending", "nightly"]


def test_failing_job_is_logged_and_does_not_stop_others(caplog):
    calls = []
    scheduler = JobScheduler(logger=TEST_LOGGER)

    def broken():
        raise RuntimeError("database unavailable")

    scheduler.register("broken", "every 1h", broken)
    scheduler.register("healthy", "every 1h", lambda: calls.append(1))

    scheduler.run_pending(datetime(2024, 3, 4, 9, 30))
    ran = scheduler.run_pending(datetime(2024, 3, 4, 10, 0))

    assert ran == ["broken", "healthy"]
    assert calls == [1]
    jobs = {job.name: job for job in scheduler.jobs}
    assert jobs["broken"].last_error == "database unavailable"
    assert jobs["broken"].next_run == datetime(2024, 3, 4, 11, 0)
    assert "Job broken failed" in caplog.text


def test_duplicate_job_names_are_rejected():
    scheduler = JobScheduler(logger=TEST_LOGGER)
    scheduler.register("sync", "every 1h", lambda: None)

    with pytest.raises(ValueError):
        scheduler.register("sync", "every 6h", lambda: None)


def test_run_forever_returns_once_stopped():
    stop = threading.Event()
    scheduler = JobScheduler(logger=TEST_LOGGER, clock=lambda: datetime(2024, 3, 4, 9, 0))
    scheduler.register("noop", "every 1h", stop.set)
    scheduler.jobs[0].next_run = datetime(2024, 3, 4, 9, 0)

    worker = threading.Thread(target=scheduler.run_forever, args=(stop,), kwargs={"poll_seconds": 0.01})
    worker.start()
    worker.join(timeout=5)

    assert not worker.is_alive()
    assert scheduler.jobs[0].last_run == datetime(2024, 3, 4, 9, 0)
