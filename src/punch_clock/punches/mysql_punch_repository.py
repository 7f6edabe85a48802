from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional, Sequence

from ..common.datetime_utils import day_bounds
from ..core.enums import PunchType, VerificationMode
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import PunchEvent
from .repository import PunchEventStore

_COLUMNS = "punch_id, staff_id, device_id, device_user_id, punch_time, punch_type, verification_mode, is_processed, is_valid"


def _to_punch(r: Dict[str, Any]) -> PunchEvent:
    return PunchEvent(
        punch_id=int(r["punch_id"]),
        staff_id=int(r["staff_id"]),
        timestamp=r["punch_time"],
        punch_type=PunchType(r["punch_type"]),
        verification_mode=VerificationMode(r["verification_mode"]),
        device_id=int(r["device_id"]) if r.get("device_id") is not None else None,
        device_user_id=int(r["device_user_id"]) if r.get("device_user_id") is not None else None,
        processed=bool(r["is_processed"]),
        is_valid=bool(r["is_valid"]),
    )


class MySQLPunchEventStore(PunchEventStore):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_staff_and_date(self, staff_id: int, day: date) -> Sequence[PunchEvent]:
        start, end = day_bounds(day)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM punch_logs
                WHERE staff_id=%s AND punch_time >= %s AND punch_time < %s
                ORDER BY punch_time, punch_id
                """,
                (int(staff_id), start, end),
            )
            return [_to_punch(r) for r in fetchall(cur)]

    def list_unprocessed(self) -> Sequence[PunchEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM punch_logs WHERE is_processed=0 ORDER BY punch_time, punch_id")
            return [_to_punch(r) for r in fetchall(cur)]

    def exists(self, *, staff_id: int, device_id: Optional[int], timestamp: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT 1 AS found
                FROM punch_logs
                WHERE staff_id=%s AND device_id <=> %s AND punch_time=%s
                LIMIT 1
                """,
                (int(staff_id), device_id, timestamp),
            )
            return fetchone(cur) is not None

    def add(self, punch: PunchEvent) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO punch_logs(staff_id, device_id, device_user_id, punch_time, punch_type,
                                       verification_mode, is_processed, is_valid)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(punch.staff_id),
                    punch.device_id,
                    punch.device_user_id,
                    punch.timestamp,
                    punch.punch_type.value,
                    punch.verification_mode.value,
                    1 if punch.processed else 0,
                    1 if punch.is_valid else 0,
                ),
            )
            return int(cur.lastrowid)

    def mark_processed(self, punch_ids: Iterable[int]) -> int:
        ids = [int(i) for i in punch_ids]
        if not ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE punch_logs SET is_processed=1 WHERE punch_id IN ({in_clause(ids)})", tuple(ids))
            return int(cur.rowcount)
