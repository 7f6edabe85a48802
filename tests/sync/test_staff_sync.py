from __future__ import annotations

import logging
from datetime import date

from fakes import build_sync_harness, make_device, make_staff
from punch_clock.core.enums import SyncStatus, SyncType
from punch_clock.devices.model import DeviceEnrollment, DeviceUser


def test_staff_push_allocates_new_uids_after_device_and_database_maximum():
    h = build_sync_harness(
        make_device(1),
        staff=[make_staff(1), make_staff(2), make_staff(3)],
        enrollments=[DeviceEnrollment(enrollment_id=1, device_id=1, staff_id=1, device_user_id=5)],
    )
    h.fleet.terminal(1).users[7] = DeviceUser(uid=7, user_id="X007", name="Visitor")

    result = h.orchestrator.sync_staff_to_device(1)

    assert (result.records_created, result.records_updated, result.records_failed) == (2, 1, 0)
    assert result.staff_synced == 3
    assert result.success is True
    assert h.enrollments.find(device_id=1, staff_id=2).device_user_id == 8
    assert h.enrollments.find(device_id=1, staff_id=3).device_user_id == 9
    assert h.fleet.terminal(1).users[5].user_id == "E001"

    run = h.sync_runs.only_run_for(1)
    assert (run.sync_type, run.status, run.records_synced) == (SyncType.STAFF, SyncStatus.SUCCESS, 3)


def test_rejected_push_is_counted_and_leaves_no_enrollment():
    h = build_sync_harness(make_device(1), staff=[make_staff(1), make_staff(2)])
    h.fleet.script(1).push_failures.add("E002")

    result = h.orchestrator.sync_staff_to_device(1)

    assert (result.records_created, result.records_failed) == (1, 1)
    assert result.success is False
    assert result.errors == ["Failed to add E002: terminal rejected user"]
    assert h.enrollments.find(device_id=1, staff_id=2) is None
    assert h.sync_runs.only_run_for(1).status == SyncStatus.SUCCESS


def test_staff_push_only_targets_staff_of_the_device_location():
    h = build_sync_harness(
        make_device(1, location_id=10),
        staff=[make_staff(1, location_id=10), make_staff(2, location_id=20), make_staff(3, active=False, location_id=10)],
    )

    result = h.orchestrator.sync_staff_to_device(1)

    assert result.records_processed == 1
    assert [u.user_id for u in h.fleet.terminal(1).users.values()] == ["E001"]


def test_sync_all_staff_skips_offline_devices(caplog):
    caplog.set_level(logging.INFO)
    h = build_sync_harness(make_device(1), make_device(2, online=False), staff=[make_staff(1)])

    summary = h.orchestrator.sync_all_staff()

    assert summary.devices_attempted == 1
    assert summary.staff_synced == 1
    assert h.sync_runs.list_for_device(2) == []
    assert "Staff sync job completed: 1 staff synced across devices, 0 devices failed" in caplog.text


def test_cleanup_aggregates_removals_and_isolates_unreachable_device(caplog):
    caplog.set_level(logging.INFO)
    leavers = [make_staff(10 + i, active=False) for i in range(8)]
    h = build_sync_harness(
        make_device(1),
        make_device(2),
        make_device(3),
        staff=[make_staff(1), *leavers],
    )
    for i, leaver in enumerate(leavers):
        device_id = 1 if i < 3 else 2
        uid = 100 + i
        h.enrollments.create(device_id=device_id, staff_id=leaver.staff_id, device_user_id=uid, enrolled_at=None)
        h.fleet.terminal(device_id).users[uid] = DeviceUser(uid=uid, user_id=leaver.employee_id)
    h.enrollments.create(device_id=1, staff_id=1, device_user_id=1, enrolled_at=None)
    h.fleet.terminal(3).reachable = False

    summary = h.orchestrator.remove_inactive_staff_from_all_devices()

    assert summary.total_removed == 8
    assert summary.devices_failed == 1
    assert summary.devices_succeeded == 2
    assert "Inactive staff removal job completed: 8 staff removed, 1 devices failed" in caplog.text
    assert h.sync_runs.only_run_for(1).records_deleted == 3
    assert h.sync_runs.only_run_for(2).records_deleted == 5
    assert h.sync_runs.only_run_for(3).status == SyncStatus.FAILED
    assert [e.staff_id for e in h.enrollments.rows.values()] == [1]


def test_cleanup_keeps_enrollments_the_terminal_refused_to_delete():
    h = build_sync_harness(
        make_device(1),
        staff=[make_staff(10, active=False), make_staff(11, terminated=date(2024, 2, 1)), make_staff(12, active=False)],
    )
    for staff_id, uid in ((10, 1), (11, 2), (12, 3)):
        h.enrollments.create(device_id=1, staff_id=staff_id, device_user_id=uid, enrolled_at=None)
        h.fleet.terminal(1).users[uid] = DeviceUser(uid=uid, user_id=f"E{staff_id:03d}")
    h.fleet.script(1).delete_failures.add(2)

    result = h.orchestrator.remove_inactive_staff_from_device(1)

    assert result.success is True
    assert (result.records_deleted, result.records_failed) == (2, 1)
    assert [e.staff_id for e in h.enrollments.rows.values()] == [11]
    assert h.sync_runs.only_run_for(1).status == SyncStatus.SUCCESS


def test_refresh_device_status_probes_every_active_device():
    h = build_sync_harness(make_device(1, online=False), make_device(2))
    h.fleet.terminal(2).reachable = False

    status = h.orchestrator.refresh_device_status()

    assert status == {1: True, 2: False}
    assert h.devices.get_by_id(1).is_online is True
    assert h.devices.get_by_id(2).is_online is False


def test_cleanup_logs_start_and_summary_with_no_devices(caplog):
    caplog.set_level(logging.INFO)
    h = build_sync_harness()

    summary = h.orchestrator.remove_inactive_staff_from_all_devices()

    assert summary.devices_attempted == 0
    assert "Starting inactive staff removal job" in caplog.text
    assert "Inactive staff removal job completed: 0 staff removed, 0 devices failed" in caplog.text


def test_refresh_device_status_reuses_the_sync_connection():
    h = build_sync_harness(make_device(1))

    h.orchestrator.sync_device(1)
    status = h.orchestrator.refresh_device_status()

    assert status == {1: True}
    assert h.fleet.created[1] == 1
    assert len(h.registry) == 1
