from __future__ import annotations

from typing import Optional

from ..core.constants import DEFAULT_EARLY_LEAVE_THRESHOLD_MINUTES, DEFAULT_GRACE_PERIOD_MINUTES
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, minutes_to_timedelta, normalize_mysql_time
from .model import ShiftPolicy
from .repository import ShiftPolicyResolver


class MySQLShiftPolicyResolver(ShiftPolicyResolver):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def resolve(self, staff_id: int) -> Optional[ShiftPolicy]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT sh.shift_id, sh.shift_name, sh.start_time, sh.end_time, sh.required_minutes,
                       sh.break_minutes, sh.auto_deduct_break, sh.grace_period_minutes,
                       sh.early_leave_threshold_minutes
                FROM staff s
                JOIN shifts sh ON sh.shift_id = s.shift_id
                WHERE s.staff_id=%s AND sh.is_active=1
                """,
                (int(staff_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            grace = r.get("grace_period_minutes")
            early = r.get("early_leave_threshold_minutes")
            return ShiftPolicy(
                shift_id=int(r["shift_id"]),
                shift_name=r["shift_name"],
                start_time=normalize_mysql_time(r["start_time"]),
                end_time=normalize_mysql_time(r["end_time"]),
                required_hours=minutes_to_timedelta(r["required_minutes"]),
                break_duration=minutes_to_timedelta(r.get("break_minutes")),
                auto_deduct_break=bool(r.get("auto_deduct_break")),
                grace_period_minutes=int(grace) if grace is not None else DEFAULT_GRACE_PERIOD_MINUTES,
                early_leave_threshold_minutes=(
                    int(early) if early is not None else DEFAULT_EARLY_LEAVE_THRESHOLD_MINUTES
                ),
            )
