from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import AnomalyFlag
from .model import AttendanceRecord


class AttendanceRecordStore(Protocol):
    def find_by_staff_and_date(self, staff_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def upsert(self, record: AttendanceRecord) -> AttendanceRecord:
        """Insert or overwrite the row keyed by (staff_id, attendance_date).

        Returns the same instance with record_id populated.
        """

        raise NotImplementedError

    def query_by_anomaly_flag(
        self,
        flag: Optional[AnomalyFlag] = None,
        *,
        from_date: Optional[date] = None,
    ) -> Sequence[AttendanceRecord]:
        """Records with anomalies (optionally a specific flag) on/after from_date."""

        raise NotImplementedError

    def query_by_date_range(
        self,
        *,
        start_date: date,
        end_date: date,
        staff_id: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
