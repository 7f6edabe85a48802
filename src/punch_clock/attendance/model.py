from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Optional, Union

from ..core.enums import AnomalyFlag, AttendanceStatus

AnomalyDetail = Union[bool, int]


@dataclass
class AttendanceRecord:
    """Domain entity: the computed daily summary for one staff member.

    Unique per (staff_id, attendance_date). Recomputation mutates the same
    instance so the record identity survives reprocessing.
    """

    record_id: Optional[int]
    staff_id: int
    attendance_date: date
    clock_in: Optional[datetime] = None
    clock_out: Optional[datetime] = None
    total_hours: timedelta = timedelta(0)
    regular_hours: timedelta = timedelta(0)
    overtime_hours: timedelta = timedelta(0)
    break_duration: timedelta = timedelta(0)
    late_minutes: int = 0
    early_leave_minutes: int = 0
    status: AttendanceStatus = AttendanceStatus.ABSENT
    anomaly_flags: Dict[AnomalyFlag, AnomalyDetail] = field(default_factory=dict)

    @property
    def has_anomalies(self) -> bool:
        return bool(self.anomaly_flags)

    def has_flag(self, flag: AnomalyFlag) -> bool:
        return flag in self.anomaly_flags


@dataclass(frozen=True)
class ComputationResult:
    """Outcome of a batch computation: records written plus skipped units."""

    records: tuple[AttendanceRecord, ...]
    skipped: tuple[str, ...] = ()

    @property
    def count(self) -> int:
        return len(self.records)
