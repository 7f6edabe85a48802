from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, time

from fakes import TEST_LOGGER, InMemoryAttendance, InMemoryPolicies, InMemoryPunches, InMemoryStaff, make_staff
from punch_clock.attendance.jobs import AttendanceProcessingJob
from punch_clock.attendance.service import AttendanceComputationEngine
from punch_clock.core.enums import AttendanceStatus, PunchType
from punch_clock.punches.model import PunchEvent


def punch(day: date, hour: int, punch_type: PunchType, *, staff_id: int = 1) -> PunchEvent:
    return PunchEvent(
        punch_id=None, staff_id=staff_id, timestamp=datetime.combine(day, time(hour, 0)), punch_type=punch_type
    )


def build(punches, *, today=datetime(2024, 3, 5, 9, 0)):
    store = InMemoryPunches(punches)
    records = InMemoryAttendance()
    engine = AttendanceComputationEngine(
        store,
        records,
        InMemoryStaff.of(make_staff(1), make_staff(2)),
        InMemoryPolicies(),
        logger=TEST_LOGGER,
    )
    job = AttendanceProcessingJob(engine, store, logger=TEST_LOGGER, clock=lambda: today)
    return job, store, records


def test_process_yesterday_computes_every_active_staff_member():
    day = date(2024, 3, 4)
    job, _, records = build([punch(day, 9, PunchType.IN), punch(day, 17, PunchType.OUT)])

    result = job.process_yesterday()

    assert result.count == 2
    assert records.rows[(1, day)].status == AttendanceStatus.PRESENT
    assert records.rows[(2, day)].status == AttendanceStatus.ABSENT


def test_process_date_range_returns_totals():
    job, _, records = build([])

    result = job.process_date_range(date(2024, 3, 1), date(2024, 3, 3))

    assert result.count == 6
    assert len(records.rows) == 6


def test_pending_punches_mark_only_successful_units_processed():
    d1, d2 = date(2024, 3, 4), date(2024, 3, 5)
    job, store, records = build(
        [
            punch(d1, 9, PunchType.IN),
            punch(d1, 17, PunchType.OUT),
            punch(d2, 9, PunchType.IN),
            punch(d1, 10, PunchType.IN, staff_id=99),
        ]
    )

    units = job.process_pending_punches()

    assert units == 2
    assert set(records.rows) == {(1, d1), (1, d2)}
    assert [p.staff_id for p in store.list_unprocessed()] == [99]


def test_pending_punches_ignore_invalid_punches():
    day = date(2024, 3, 4)
    job, store, records = build([])
    store.add(replace(punch(day, 9, PunchType.IN), is_valid=False))

    assert job.process_pending_punches() == 0
    assert records.rows == {}
    assert len(store.list_unprocessed()) == 1


def test_pending_punches_second_run_has_nothing_to_do():
    day = date(2024, 3, 4)
    job, _, records = build([punch(day, 9, PunchType.IN), punch(day, 17, PunchType.OUT)])

    assert job.process_pending_punches() == 1
    assert job.process_pending_punches() == 0
    assert records.upserts == 1


def test_reprocess_anomalies_reports_count():
    day = date(2024, 3, 4)
    job, store, _ = build([punch(day, 9, PunchType.IN)])
    job.process_date(day)

    store.add(punch(day, 17, PunchType.OUT))

    assert job.reprocess_anomalies() == 1
