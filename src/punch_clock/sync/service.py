from __future__ import annotations

import logging
import threading
import traceback
from typing import Callable, Dict, List, Optional, Sequence

from ..common.datetime_utils import now_utc, to_utc_naive
from ..core.enums import PunchType, SyncStatus, SyncType, VerificationMode
from ..core.exceptions import DeadlineExceeded, DeviceNotFoundError, SyncCancelled
from ..devices.gateway import DeviceGateway
from ..devices.model import Device, DeviceAttendanceLog
from ..devices.registry import ConnectionRegistry
from ..devices.repository import DeviceRepository, EnrollmentRepository
from ..punches.model import PunchEvent
from ..punches.repository import PunchEventStore
from ..staff.repository import StaffRepository
from .model import BatchSummary, SyncResult
from .pool import DeviceAttempt, DevicePool
from .recorder import SyncRunRecorder
from .repository import SyncRunStore

_ABORT_DEVICE = (DeadlineExceeded, SyncCancelled)


class SyncOrchestrator:
    """Pulls punches from terminals and pushes/removes enrollments.

    The unit of isolation is one device (and, inside it, one staff member or
    one enrollment): failures there become a FAILED SyncRun or an entry in the
    result's error list and never escape the batch operations.
    """

    def __init__(
        self,
        devices: DeviceRepository,
        enrollments: EnrollmentRepository,
        staff: StaffRepository,
        punches: PunchEventStore,
        sync_runs: SyncRunStore,
        registry: ConnectionRegistry,
        pool: DevicePool,
        *,
        logger: logging.Logger,
        clock: Callable = now_utc,
    ):
        self._devices = devices
        self._enrollments = enrollments
        self._staff = staff
        self._punches = punches
        self._sync_runs = sync_runs
        self._registry = registry
        self._pool = pool
        self._logger = logger
        self._clock = clock

    # -- attendance pull -------------------------------------------------

    def sync_all_devices(self, *, stop_event: Optional[threading.Event] = None) -> BatchSummary:
        self._logger.info("Starting device sync job for all active devices")
        devices = self._list_active_devices()
        self._logger.info("Found %d active devices to sync", len(devices))

        outcomes = self._pool.run(devices, self._attendance_attempt, stop_event=stop_event)
        summary = BatchSummary(SyncType.ATTENDANCE, tuple(outcomes))
        self._logger.info(
            "Device sync job completed: %d records synced, %d devices failed, %d skipped",
            summary.records_synced,
            summary.devices_failed,
            summary.devices_skipped,
        )
        return summary

    def sync_device(self, device_id: int) -> SyncResult:
        return self._run_single(device_id, self._attendance_attempt)

    def _attendance_attempt(self, attempt: DeviceAttempt) -> SyncResult:
        device = attempt.device
        recorder = self._begin(attempt, SyncType.ATTENDANCE)

        if not device.is_online:
            self._logger.warning("Device %s (%s) is offline, skipping sync", device.device_name, device.device_id)
            last_seen = device.last_heartbeat_at if device.last_heartbeat_at is not None else "never"
            result = SyncResult(message=f"Device is offline. Last heartbeat: {last_seen}")
            recorder.finalize(SyncStatus.SKIPPED, result)
            return result

        def work() -> SyncResult:
            self._logger.info("Syncing device %s (%s)", device.device_name, device.device_id)
            with self._registry.session(device) as gateway:
                self._heartbeat(device)
                attempt.deadline.check()
                logs = list(gateway.fetch_attendance(device.device_id))

            result = SyncResult()
            for log in logs:
                attempt.deadline.check()
                result.records_processed += 1
                try:
                    if self._ingest(device, log, result):
                        result.records_created += 1
                except _ABORT_DEVICE:
                    raise
                except Exception as exc:
                    self._logger.exception("Error processing attendance record for UID %s", log.uid)
                    result.add_error(f"Error processing attendance for UID {log.uid}: {exc}")

            result.records_synced = result.records_created
            result.success = True
            result.message = f"Synced {result.records_synced} new attendance records from device"
            self._devices.mark_synced(device.device_id, synced_at=self._clock())
            self._logger.info(
                "Attendance sync completed for device %s: %d created, %d failed",
                device.device_id,
                result.records_created,
                result.records_failed,
            )
            return result

        return self._execute(attempt, recorder, work, "syncing attendance from")

    def _ingest(self, device: Device, log: DeviceAttendanceLog, result: SyncResult) -> bool:
        """Store one device log row as a punch; False when it was already stored or unusable."""

        if log.timestamp is None:
            result.add_error(f"Invalid timestamp for UID {log.uid}")
            return False

        enrollment = self._enrollments.find_by_device_user_id(device_id=device.device_id, device_user_id=log.uid)
        if enrollment is not None:
            staff_id = enrollment.staff_id
        else:
            staff = self._staff.get_by_employee_id(log.user_id)
            if staff is None:
                result.add_error(f"Staff not found for UID {log.uid} / UserID {log.user_id}")
                return False
            self._enrollments.create(
                device_id=device.device_id, staff_id=staff.staff_id, device_user_id=log.uid, enrolled_at=self._clock()
            )
            staff_id = staff.staff_id

        timestamp = to_utc_naive(log.timestamp)
        if self._punches.exists(staff_id=staff_id, device_id=device.device_id, timestamp=timestamp):
            return False

        self._punches.add(
            PunchEvent(
                punch_id=None,
                staff_id=staff_id,
                device_id=device.device_id,
                device_user_id=log.uid,
                timestamp=timestamp,
                punch_type=PunchType.from_device_code(log.punch),
                verification_mode=VerificationMode.from_device_code(log.status),
            )
        )
        return True

    # -- staff push ------------------------------------------------------

    def sync_all_staff(self, *, stop_event: Optional[threading.Event] = None) -> BatchSummary:
        self._logger.info("Starting staff sync job for all active devices")
        devices = self._online_only(self._list_active_devices())
        self._logger.info("Found %d online devices to sync staff to", len(devices))

        outcomes = self._pool.run(devices, self._staff_attempt, stop_event=stop_event)
        summary = BatchSummary(SyncType.STAFF, tuple(outcomes))
        self._logger.info(
            "Staff sync job completed: %d staff synced across devices, %d devices failed",
            summary.staff_synced,
            summary.devices_failed,
        )
        return summary

    def sync_staff_to_device(self, device_id: int) -> SyncResult:
        return self._run_single(device_id, self._staff_attempt)

    def _staff_attempt(self, attempt: DeviceAttempt) -> SyncResult:
        device = attempt.device
        recorder = self._begin(attempt, SyncType.STAFF)

        if not device.is_online:
            result = SyncResult(message="Device is offline")
            recorder.finalize(SyncStatus.SKIPPED, result)
            return result

        def work() -> SyncResult:
            self._logger.info("Syncing staff to device %s (%s)", device.device_name, device.device_id)
            staff_members = list(self._staff.list_active_for_location(device.location_id))
            result = SyncResult()

            with self._registry.session(device) as gateway:
                self._heartbeat(device)
                next_uid: Optional[int] = None
                for staff in staff_members:
                    attempt.deadline.check()
                    result.records_processed += 1
                    try:
                        enrollment = self._enrollments.find(device_id=device.device_id, staff_id=staff.staff_id)
                        if enrollment is not None:
                            device_user_id = enrollment.device_user_id
                        else:
                            if next_uid is None:
                                next_uid = self._next_device_user_id(gateway, device)
                            device_user_id = next_uid

                        pushed = gateway.push_user(device.device_id, staff, device_user_id=device_user_id)
                        if not pushed.success:
                            self._logger.warning(
                                "Failed to add staff %s to device %s: %s", staff.staff_id, device.device_id, pushed.error
                            )
                            result.add_error(f"Failed to add {staff.employee_id}: {pushed.error}")
                            continue

                        if enrollment is None:
                            self._enrollments.create(
                                device_id=device.device_id,
                                staff_id=staff.staff_id,
                                device_user_id=device_user_id,
                                enrolled_at=self._clock(),
                            )
                            next_uid = device_user_id + 1
                            result.records_created += 1
                        else:
                            self._enrollments.touch(enrollment.enrollment_id, updated_at=self._clock())
                            result.records_updated += 1
                    except _ABORT_DEVICE:
                        raise
                    except Exception as exc:
                        self._logger.exception("Error syncing staff %s to device %s", staff.staff_id, device.device_id)
                        result.add_error(f"Error processing {staff.employee_id}: {exc}")

            result.staff_synced = result.records_created + result.records_updated
            result.success = result.records_failed == 0
            result.message = f"Synced {result.staff_synced} staff members to device"
            self._logger.info(
                "Staff sync completed for device %s: %d created, %d updated, %d failed",
                device.device_id,
                result.records_created,
                result.records_updated,
                result.records_failed,
            )
            return result

        return self._execute(attempt, recorder, work, "syncing staff to")

    def _next_device_user_id(self, gateway: DeviceGateway, device: Device) -> int:
        max_on_device = 0
        try:
            users = gateway.fetch_users(device.device_id)
            if users:
                max_on_device = max(u.uid for u in users)
        except _ABORT_DEVICE:
            raise
        except Exception:
            self._logger.warning(
                "Failed to query users from device %s, falling back to database only", device.device_id, exc_info=True
            )
        return max(max_on_device, self._enrollments.max_device_user_id(device.device_id)) + 1

    # -- inactive staff removal ------------------------------------------

    def remove_inactive_staff_from_all_devices(self, *, stop_event: Optional[threading.Event] = None) -> BatchSummary:
        self._logger.info("Starting inactive staff removal job for all active devices")
        devices = self._online_only(self._list_active_devices())
        self._logger.info("Found %d online devices to clean up", len(devices))

        outcomes = self._pool.run(devices, self._cleanup_attempt, stop_event=stop_event)
        for outcome in outcomes:
            if outcome.status == SyncStatus.SUCCESS:
                self._logger.info(
                    "Removed %d inactive staff from device %s", outcome.result.records_deleted, outcome.device.device_name
                )

        summary = BatchSummary(SyncType.CLEANUP, tuple(outcomes))
        self._logger.info(
            "Inactive staff removal job completed: %d staff removed, %d devices failed",
            summary.total_removed,
            summary.devices_failed,
        )
        return summary

    def remove_inactive_staff_from_device(self, device_id: int) -> SyncResult:
        return self._run_single(device_id, self._cleanup_attempt)

    def _cleanup_attempt(self, attempt: DeviceAttempt) -> SyncResult:
        device = attempt.device
        recorder = self._begin(attempt, SyncType.CLEANUP)

        if not device.is_online:
            result = SyncResult(message="Device is offline")
            recorder.finalize(SyncStatus.SKIPPED, result)
            return result

        def work() -> SyncResult:
            enrollments = list(self._enrollments.list_for_removal(device.device_id))
            result = SyncResult()

            with self._registry.session(device) as gateway:
                self._heartbeat(device)
                for enrollment in enrollments:
                    attempt.deadline.check()
                    result.records_processed += 1
                    try:
                        deleted = gateway.delete_user(device.device_id, enrollment.device_user_id)
                        if not deleted.success:
                            self._logger.warning(
                                "Failed to remove staff %s (uid %s) from device %s: %s",
                                enrollment.staff_id,
                                enrollment.device_user_id,
                                device.device_id,
                                deleted.error,
                            )
                            result.add_error(f"Failed to remove staff {enrollment.staff_id}: {deleted.error}")
                            continue
                        self._enrollments.delete(enrollment.enrollment_id)
                        result.records_deleted += 1
                    except _ABORT_DEVICE:
                        raise
                    except Exception as exc:
                        self._logger.exception(
                            "Error removing staff %s from device %s", enrollment.staff_id, device.device_id
                        )
                        result.add_error(f"Error removing staff {enrollment.staff_id}: {exc}")

            result.success = True
            result.message = f"Removed {result.records_deleted} inactive staff from device"
            return result

        return self._execute(attempt, recorder, work, "removing inactive staff from")

    # -- device status ---------------------------------------------------

    def refresh_device_status(self) -> Dict[int, bool]:
        """Probe every active device and store whether it answered."""

        status: Dict[int, bool] = {}
        for device in self._list_active_devices():
            online = self._probe(device)
            try:
                if online:
                    self._devices.mark_online(device.device_id, heartbeat_at=self._clock())
                else:
                    self._devices.mark_offline(device.device_id)
            except Exception:
                self._logger.exception("Could not store status of device %s", device.device_id)
            status[device.device_id] = online
        self._logger.info("Device status refreshed: %d online, %d offline", sum(status.values()), len(status) - sum(status.values()))
        return status

    def _probe(self, device: Device) -> bool:
        try:
            return self._registry.probe(device)
        except Exception:
            self._logger.warning("Connection test failed for device %s", device.device_id, exc_info=True)
            return False

    # -- shared plumbing -------------------------------------------------

    def _run_single(self, device_id: int, attempt_fn: Callable[[DeviceAttempt], SyncResult]) -> SyncResult:
        try:
            device = self._load_device(device_id)
        except DeviceNotFoundError as exc:
            self._logger.warning("%s", exc)
            return SyncResult.failure(str(exc))
        except Exception as exc:
            self._logger.exception("Could not load device %s", device_id)
            return SyncResult.failure(f"Could not load device {device_id}: {exc}")

        outcomes = self._pool.run([device], attempt_fn)
        return outcomes[0].result

    def _load_device(self, device_id: int) -> Device:
        device = self._devices.get_by_id(device_id)
        if device is None:
            raise DeviceNotFoundError(f"Device {device_id} not found")
        return device

    def _begin(self, attempt: DeviceAttempt, sync_type: SyncType) -> SyncRunRecorder:
        run = self._sync_runs.create(device_id=attempt.device.device_id, sync_type=sync_type, started_at=self._clock())
        recorder = SyncRunRecorder(self._sync_runs, run, clock=self._clock)
        attempt.recorder = recorder
        return recorder

    def _execute(
        self,
        attempt: DeviceAttempt,
        recorder: SyncRunRecorder,
        work: Callable[[], SyncResult],
        action: str,
    ) -> SyncResult:
        device = attempt.device
        try:
            attempt.deadline.check()
            result = work()
            attempt.deadline.check()
        except Exception as exc:
            self._logger.error(
                "Error %s device %s (%s): %s", action, device.device_name, device.device_id, exc, exc_info=True
            )
            result = SyncResult.failure(str(exc))
            recorder.finalize(SyncStatus.FAILED, result, error_details=traceback.format_exc())
            return result

        recorder.finalize(SyncStatus.SUCCESS, result)
        return result

    def _heartbeat(self, device: Device) -> None:
        self._devices.mark_online(device.device_id, heartbeat_at=self._clock())

    def _list_active_devices(self) -> List[Device]:
        try:
            return list(self._devices.list_active())
        except Exception:
            self._logger.exception("Could not load active devices")
            return []

    def _online_only(self, devices: Sequence[Device]) -> List[Device]:
        online = []
        for device in devices:
            if device.is_online:
                online.append(device)
            else:
                self._logger.info("Skipping offline device %s (%s)", device.device_name, device.device_id)
        return online

