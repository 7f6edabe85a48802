from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Sequence

from ..common.datetime_utils import as_date, iter_days, whole_minutes
from ..common.validators import require_date_order, require_non_negative, require_positive_duration
from ..core.constants import (
    DEFAULT_EARLY_LEAVE_THRESHOLD_MINUTES,
    DEFAULT_GRACE_PERIOD_MINUTES,
    DEFAULT_REQUIRED_HOURS,
)
from ..core.enums import AnomalyFlag, AttendanceStatus, PunchType
from ..core.exceptions import ValidationError
from ..punches.model import PunchEvent
from ..punches.repository import PunchEventStore
from ..shifts.model import ShiftPolicy
from ..shifts.repository import ShiftPolicyResolver
from ..staff.repository import StaffRepository
from .factory import BreakStrategyFactory
from .model import AnomalyDetail, AttendanceRecord, ComputationResult
from .repository import AttendanceRecordStore


class AttendanceComputationEngine:
    """Turns one staff member's punches for one day into an attendance record.

    Status resolution is ordered: no punches is ABSENT, a single side
    (first IN / last OUT) is INCOMPLETE, both sides is PRESENT. Only the
    PRESENT path deducts breaks and splits regular/overtime hours. The record
    for (staff, date) is overwritten in place, so recomputing with unchanged
    punches and policy yields an identical record.
    """

    def __init__(
        self,
        punches: PunchEventStore,
        records: AttendanceRecordStore,
        staff: StaffRepository,
        policies: ShiftPolicyResolver,
        *,
        logger: logging.Logger,
        break_factory: BreakStrategyFactory | None = None,
        default_minimum_hours: float = 0,
    ):
        self._punches = punches
        self._records = records
        self._staff = staff
        self._policies = policies
        self._logger = logger
        self._break_factory = break_factory or BreakStrategyFactory()
        self._default_minimum_hours = float(default_minimum_hours)

    def compute_daily_attendance(
        self,
        staff_id: int,
        day: date | datetime,
        *,
        expected_start: time | None = None,
        expected_end: time | None = None,
        minimum_hours: float | None = None,
    ) -> AttendanceRecord:
        day = as_date(day)
        minimum_hours = self._default_minimum_hours if minimum_hours is None else minimum_hours
        require_non_negative(minimum_hours, "minimum_hours")

        if self._staff.get_by_id(staff_id) is None:
            raise ValidationError(f"staff {staff_id} does not exist")

        policy = self._policies.resolve(staff_id)
        if policy is not None:
            self._validate_policy(policy)

        punches = sorted(self._punches.list_for_staff_and_date(staff_id, day), key=lambda p: p.timestamp)

        record = self._records.find_by_staff_and_date(staff_id, day)
        if record is None:
            record = AttendanceRecord(record_id=None, staff_id=staff_id, attendance_date=day)

        start_at = self._expected_at(day, expected_start, policy.start_time if policy else None)
        end_at = self._expected_at(day, expected_end, policy.end_time if policy else None)

        self._reset(record)
        flags: Dict[AnomalyFlag, AnomalyDetail] = {}

        if punches:
            self._apply_punches(record, punches, policy, start_at, end_at, flags)
            if minimum_hours > 0 and record.total_hours < timedelta(hours=minimum_hours):
                flags[AnomalyFlag.SHORT_SHIFT] = True
            if len(punches) % 2 != 0:
                flags[AnomalyFlag.ODD_PUNCH_COUNT] = True
        else:
            record.status = AttendanceStatus.ABSENT

        record.anomaly_flags = flags
        return self._records.upsert(record)

    def compute_for_date_range(
        self,
        staff_id: int,
        start_date: date,
        end_date: date,
        *,
        expected_start: time | None = None,
        expected_end: time | None = None,
        minimum_hours: float | None = None,
    ) -> List[AttendanceRecord]:
        require_date_order(start_date, end_date)
        return [
            self.compute_daily_attendance(
                staff_id,
                day,
                expected_start=expected_start,
                expected_end=expected_end,
                minimum_hours=minimum_hours,
            )
            for day in iter_days(start_date, end_date)
        ]

    def compute_for_all_staff(
        self,
        day: date | datetime,
        *,
        expected_start: time | None = None,
        expected_end: time | None = None,
        minimum_hours: float | None = None,
    ) -> ComputationResult:
        day = as_date(day)
        return self._compute_many(
            [(staff_id, day) for staff_id in self._staff.list_active_ids()],
            expected_start=expected_start,
            expected_end=expected_end,
            minimum_hours=minimum_hours,
        )

    def compute_for_all_staff_date_range(
        self,
        start_date: date,
        end_date: date,
        *,
        expected_start: time | None = None,
        expected_end: time | None = None,
        minimum_hours: float | None = None,
    ) -> ComputationResult:
        require_date_order(start_date, end_date)
        staff_ids = list(self._staff.list_active_ids())
        return self._compute_many(
            [(staff_id, day) for day in iter_days(start_date, end_date) for staff_id in staff_ids],
            expected_start=expected_start,
            expected_end=expected_end,
            minimum_hours=minimum_hours,
        )

    def reprocess_anomalies(self, from_date: date | None = None) -> int:
        """Recompute every flagged record on/after from_date (all when omitted)."""

        flagged = self._records.query_by_anomaly_flag(from_date=from_date)
        result = self._compute_many([(r.staff_id, r.attendance_date) for r in flagged])
        return result.count

    def _compute_many(self, units: Sequence[tuple[int, date]], **options) -> ComputationResult:
        records: List[AttendanceRecord] = []
        skipped: List[str] = []
        for staff_id, day in units:
            try:
                records.append(self.compute_daily_attendance(staff_id, day, **options))
            except ValidationError as exc:
                self._logger.warning("Skipping staff %s on %s: %s", staff_id, day, exc)
                skipped.append(f"{staff_id}@{day.isoformat()}: {exc}")
            except Exception as exc:
                self._logger.exception("Unexpected error computing staff %s on %s", staff_id, day)
                skipped.append(f"{staff_id}@{day.isoformat()}: {exc}")
        return ComputationResult(records=tuple(records), skipped=tuple(skipped))

    def _apply_punches(
        self,
        record: AttendanceRecord,
        punches: Sequence[PunchEvent],
        policy: Optional[ShiftPolicy],
        start_at: Optional[datetime],
        end_at: Optional[datetime],
        flags: Dict[AnomalyFlag, AnomalyDetail],
    ) -> None:
        ins = [p for p in punches if p.punch_type == PunchType.IN]
        outs = [p for p in punches if p.punch_type == PunchType.OUT]
        record.clock_in = ins[0].timestamp if ins else None
        record.clock_out = outs[-1].timestamp if outs else None

        if record.clock_in is None or record.clock_out is None:
            record.status = AttendanceStatus.INCOMPLETE
            if record.clock_in is None and record.clock_out is not None:
                flags[AnomalyFlag.MISSING_CHECKIN] = True
            elif record.clock_in is not None and record.clock_out is None:
                flags[AnomalyFlag.MISSING_CHECKOUT] = True
            return

        record.status = AttendanceStatus.PRESENT

        gross = max(record.clock_out - record.clock_in, timedelta(0))
        deducted = min(self._break_factory.for_policy(policy).deduct(gross), gross)
        record.break_duration = deducted
        record.total_hours = gross - deducted

        required = policy.required_hours if policy else DEFAULT_REQUIRED_HOURS
        record.regular_hours = min(record.total_hours, required)
        record.overtime_hours = max(timedelta(0), record.total_hours - required)

        grace = policy.grace_period_minutes if policy else DEFAULT_GRACE_PERIOD_MINUTES
        threshold = policy.early_leave_threshold_minutes if policy else DEFAULT_EARLY_LEAVE_THRESHOLD_MINUTES

        if start_at is not None and record.clock_in > start_at:
            record.late_minutes = max(0, whole_minutes(record.clock_in - start_at) - grace)
        if end_at is not None and record.clock_out < end_at:
            record.early_leave_minutes = max(0, whole_minutes(end_at - record.clock_out) - threshold)

        if record.late_minutes > 0:
            flags[AnomalyFlag.LATE_ARRIVAL] = record.late_minutes
        if record.early_leave_minutes > 0:
            flags[AnomalyFlag.EARLY_DEPARTURE] = record.early_leave_minutes

    @staticmethod
    def _reset(record: AttendanceRecord) -> None:
        record.clock_in = None
        record.clock_out = None
        record.total_hours = timedelta(0)
        record.regular_hours = timedelta(0)
        record.overtime_hours = timedelta(0)
        record.break_duration = timedelta(0)
        record.late_minutes = 0
        record.early_leave_minutes = 0

    @staticmethod
    def _expected_at(day: date, override: time | None, fallback: time | None) -> Optional[datetime]:
        wall_clock = override if override is not None else fallback
        if wall_clock is None:
            return None
        return datetime.combine(day, wall_clock)

    @staticmethod
    def _validate_policy(policy: ShiftPolicy) -> None:
        require_positive_duration(policy.required_hours, f"shift {policy.shift_id} required_hours")
        if policy.grace_period_minutes < 0 or policy.early_leave_threshold_minutes < 0:
            raise ValidationError(f"shift {policy.shift_id} has negative grace/threshold minutes")
        if policy.break_duration is not None and policy.break_duration < timedelta(0):
            raise ValidationError(f"shift {policy.shift_id} has a negative break duration")
