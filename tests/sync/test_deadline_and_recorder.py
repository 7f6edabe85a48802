from __future__ import annotations

from datetime import datetime

import pytest

from fakes import InMemorySyncRuns
from punch_clock.core.enums import SyncStatus, SyncType
from punch_clock.core.exceptions import DeadlineExceeded, SyncCancelled
from punch_clock.sync.deadline import DeviceDeadline
from punch_clock.sync.model import SyncResult
from punch_clock.sync.recorder import SyncRunRecorder

NOW = datetime(2024, 3, 4, 12, 0)


class FakeClock:
    def __init__(self, value: float = 0.0):
        self.value = value

    def __call__(self) -> float:
        return self.value


def test_deadline_starts_only_when_started():
    clock = FakeClock()
    deadline = DeviceDeadline(10, clock=clock)

    clock.value = 100
    assert not deadline.expired
    assert deadline.remaining() is None

    deadline.start()
    clock.value = 109
    deadline.check()
    assert deadline.remaining() == pytest.approx(1)

    clock.value = 110
    with pytest.raises(DeadlineExceeded):
        deadline.check()


def test_cancel_keeps_the_first_reason():
    deadline = DeviceDeadline(10, clock=FakeClock())
    deadline.start()

    deadline.cancel("batch cancelled")
    deadline.cancel("deadline exceeded")

    with pytest.raises(SyncCancelled, match="batch cancelled"):
        deadline.check()


def _recorder(sync_type=SyncType.ATTENDANCE):
    store = InMemorySyncRuns()
    run = store.create(device_id=1, sync_type=sync_type, started_at=NOW)
    return store, SyncRunRecorder(store, run, clock=lambda: NOW)


def test_recorder_finalizes_exactly_once():
    store, recorder = _recorder()

    assert recorder.finalize(SyncStatus.FAILED, SyncResult.failure("timed out")) is True
    assert recorder.finalize(SyncStatus.SUCCESS, SyncResult(success=True, records_synced=9)) is False

    run = store.runs[recorder.run.sync_id]
    assert (run.status, run.error_message, run.records_synced) == (SyncStatus.FAILED, "timed out", 0)
    assert store.finalize_calls == [recorder.run.sync_id]
    assert recorder.status == SyncStatus.FAILED


def test_recorder_rejects_non_terminal_status():
    _, recorder = _recorder()

    with pytest.raises(ValueError):
        recorder.finalize(SyncStatus.IN_PROGRESS, SyncResult())
    assert not recorder.finalized


def test_recorder_stores_staff_count_and_unit_errors_for_staff_runs():
    store, recorder = _recorder(SyncType.STAFF)
    result = SyncResult(success=False, staff_synced=4, records_processed=5)
    result.add_error("Failed to add E005: terminal rejected user")

    recorder.finalize(SyncStatus.SUCCESS, result)

    run = store.runs[recorder.run.sync_id]
    assert run.records_synced == 4
    assert run.records_processed == 5
    assert run.error_message == "Failed to add E005: terminal rejected user"
    assert run.completed_at == NOW
