from __future__ import annotations

import importlib
import threading
from dataclasses import dataclass
from functools import partial
from typing import Any, Mapping, Optional

from .attendance.factory import BreakStrategyFactory
from .attendance.jobs import AttendanceProcessingJob
from .attendance.mysql_attendance_repository import MySQLAttendanceRecordStore
from .attendance.service import AttendanceComputationEngine
from .common.logging import get_logger
from .core.constants import (
    DEFAULT_CONNECTION_MAX_IDLE_SECONDS,
    DEFAULT_DEVICE_TIMEOUT_SECONDS,
    DEFAULT_OFFLINE_AFTER_SECONDS,
    DEFAULT_SYNC_DEADLINE_FACTOR,
    DEFAULT_SYNC_MAX_WORKERS,
)
from .database.connection import DatabaseConnection, DBConfig
from .devices.gateway import GatewayFactory
from .devices.mysql_device_repository import MySQLDeviceRepository
from .devices.mysql_enrollment_repository import MySQLEnrollmentRepository
from .devices.registry import ConnectionRegistry
from .devices.simulated_gateway import SimulatedFleet
from .punches.mysql_punch_repository import MySQLPunchEventStore
from .scheduling.scheduler import JobScheduler
from .shifts.mysql_shift_repository import MySQLShiftPolicyResolver
from .staff.mysql_staff_repository import MySQLStaffRepository
from .sync.mysql_sync_run_repository import MySQLSyncRunStore
from .sync.pool import DevicePool
from .sync.service import SyncOrchestrator


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    staff_repo: MySQLStaffRepository
    shift_resolver: MySQLShiftPolicyResolver
    punch_store: MySQLPunchEventStore
    attendance_store: MySQLAttendanceRecordStore
    device_repo: MySQLDeviceRepository
    enrollment_repo: MySQLEnrollmentRepository
    sync_run_store: MySQLSyncRunStore

    registry: ConnectionRegistry
    pool: DevicePool

    attendance_engine: AttendanceComputationEngine
    attendance_job: AttendanceProcessingJob
    sync_orchestrator: SyncOrchestrator

    schedule: Mapping[str, str]

    def build_scheduler(self, stop_event: Optional[threading.Event] = None) -> JobScheduler:
        """Scheduler with every recurring job; batch syncs observe ``stop_event``."""

        actions = {
            "refresh_device_status": self.sync_orchestrator.refresh_device_status,
            "sync_all_devices": partial(self.sync_orchestrator.sync_all_devices, stop_event=stop_event),
            "process_yesterday": self.attendance_job.process_yesterday,
            "process_pending_punches": self.attendance_job.process_pending_punches,
            "sync_all_staff": partial(self.sync_orchestrator.sync_all_staff, stop_event=stop_event),
            "remove_inactive_staff_from_all_devices": partial(
                self.sync_orchestrator.remove_inactive_staff_from_all_devices, stop_event=stop_event
            ),
        }
        scheduler = JobScheduler(logger=get_logger("scheduler"))
        for name, cadence in self.schedule.items():
            if name not in actions:
                raise ValueError(f"Unknown scheduled job {name!r}")
            if cadence:
                scheduler.register(name, cadence, actions[name])
        return scheduler


def load_gateway_factory(path: str) -> GatewayFactory:
    """Resolve a ``module:callable`` path to a gateway factory."""

    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Gateway factory must look like 'package.module:callable', got {path!r}")
    factory = getattr(importlib.import_module(module_name), attr)
    if not callable(factory):
        raise TypeError(f"{path!r} is not callable")
    return factory


def build_container(*, settings: Any, gateway_factory: Optional[GatewayFactory] = None) -> Container:
    config = DBConfig.from_dict(dict(settings.DB_CONFIG))
    conn = DatabaseConnection(config)

    timeout_seconds = float(getattr(settings, "DEVICE_TIMEOUT_SECONDS", DEFAULT_DEVICE_TIMEOUT_SECONDS))
    deadline_factor = float(getattr(settings, "SYNC_DEADLINE_FACTOR", DEFAULT_SYNC_DEADLINE_FACTOR))

    if gateway_factory is None:
        factory_path = getattr(settings, "DEVICE_GATEWAY_FACTORY", "")
        if factory_path:
            gateway_factory = load_gateway_factory(factory_path)
        else:
            get_logger("container").warning("No DEVICE_GATEWAY_FACTORY configured, using simulated terminals")
            gateway_factory = SimulatedFleet()

    staff_repo = MySQLStaffRepository(conn)
    shift_resolver = MySQLShiftPolicyResolver(conn)
    punch_store = MySQLPunchEventStore(conn)
    attendance_store = MySQLAttendanceRecordStore(conn)
    device_repo = MySQLDeviceRepository(
        conn,
        offline_after_seconds=float(getattr(settings, "DEVICE_OFFLINE_AFTER_SECONDS", DEFAULT_OFFLINE_AFTER_SECONDS)),
    )
    enrollment_repo = MySQLEnrollmentRepository(conn)
    sync_run_store = MySQLSyncRunStore(conn)

    registry = ConnectionRegistry(
        gateway_factory,
        logger=get_logger("devices.registry"),
        timeout_seconds=timeout_seconds,
        max_idle_seconds=float(
            getattr(settings, "CONNECTION_MAX_IDLE_SECONDS", DEFAULT_CONNECTION_MAX_IDLE_SECONDS)
        ),
    )
    pool = DevicePool(
        max_workers=int(getattr(settings, "SYNC_MAX_WORKERS", DEFAULT_SYNC_MAX_WORKERS)),
        deadline_seconds=timeout_seconds * deadline_factor,
        logger=get_logger("sync.pool"),
    )

    attendance_engine = AttendanceComputationEngine(
        punch_store,
        attendance_store,
        staff_repo,
        shift_resolver,
        logger=get_logger("attendance.engine"),
        break_factory=BreakStrategyFactory(),
        default_minimum_hours=float(getattr(settings, "SHORT_SHIFT_MINIMUM_HOURS", 0)),
    )
    attendance_job = AttendanceProcessingJob(attendance_engine, punch_store, logger=get_logger("attendance.jobs"))
    sync_orchestrator = SyncOrchestrator(
        device_repo,
        enrollment_repo,
        staff_repo,
        punch_store,
        sync_run_store,
        registry,
        pool,
        logger=get_logger("sync"),
    )

    return Container(
        conn=conn,
        staff_repo=staff_repo,
        shift_resolver=shift_resolver,
        punch_store=punch_store,
        attendance_store=attendance_store,
        device_repo=device_repo,
        enrollment_repo=enrollment_repo,
        sync_run_store=sync_run_store,
        registry=registry,
        pool=pool,
        attendance_engine=attendance_engine,
        attendance_job=attendance_job,
        sync_orchestrator=sync_orchestrator,
        schedule=dict(getattr(settings, "SCHEDULE", {})),
    )
