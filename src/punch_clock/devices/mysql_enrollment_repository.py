from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

import mysql.connector

from ..core.exceptions import DataConsistencyError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import DeviceEnrollment
from .repository import EnrollmentRepository

_COLUMNS = "e.enrollment_id, e.device_id, e.staff_id, e.device_user_id, e.enrolled_at, e.updated_at"


def _to_enrollment(r: Dict[str, Any]) -> DeviceEnrollment:
    return DeviceEnrollment(
        enrollment_id=int(r["enrollment_id"]),
        device_id=int(r["device_id"]),
        staff_id=int(r["staff_id"]),
        device_user_id=int(r["device_user_id"]),
        enrolled_at=r.get("enrolled_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLEnrollmentRepository(EnrollmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find(self, *, device_id: int, staff_id: int) -> Optional[DeviceEnrollment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM device_enrollments e WHERE e.device_id=%s AND e.staff_id=%s",
                (int(device_id), int(staff_id)),
            )
            r = fetchone(cur)
            return _to_enrollment(r) if r else None

    def find_by_device_user_id(self, *, device_id: int, device_user_id: int) -> Optional[DeviceEnrollment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM device_enrollments e WHERE e.device_id=%s AND e.device_user_id=%s",
                (int(device_id), int(device_user_id)),
            )
            r = fetchone(cur)
            return _to_enrollment(r) if r else None

    def create(self, *, device_id: int, staff_id: int, device_user_id: int, enrolled_at: datetime) -> DeviceEnrollment:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO device_enrollments(device_id, staff_id, device_user_id, enrolled_at, updated_at)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (int(device_id), int(staff_id), int(device_user_id), enrolled_at, enrolled_at),
                )
                enrollment_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError as exc:
            raise DataConsistencyError(
                f"Device {device_id} already has user {device_user_id} or an enrollment for staff {staff_id}"
            ) from exc
        return DeviceEnrollment(
            enrollment_id=enrollment_id,
            device_id=int(device_id),
            staff_id=int(staff_id),
            device_user_id=int(device_user_id),
            enrolled_at=enrolled_at,
            updated_at=enrolled_at,
        )

    def touch(self, enrollment_id: int, *, updated_at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE device_enrollments SET updated_at=%s WHERE enrollment_id=%s", (updated_at, int(enrollment_id))
            )

    def delete(self, enrollment_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM device_enrollments WHERE enrollment_id=%s", (int(enrollment_id),))
            return cur.rowcount > 0

    def list_for_removal(self, device_id: int) -> Sequence[DeviceEnrollment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM device_enrollments e
                JOIN staff s ON s.staff_id = e.staff_id
                WHERE e.device_id=%s AND (s.is_active=0 OR s.termination_date IS NOT NULL)
                ORDER BY e.device_user_id
                """,
                (int(device_id),),
            )
            return [_to_enrollment(r) for r in fetchall(cur)]

    def max_device_user_id(self, device_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COALESCE(MAX(device_user_id), 0) AS max_uid FROM device_enrollments WHERE device_id=%s",
                (int(device_id),),
            )
            r = fetchone(cur)
            return int(r["max_uid"]) if r else 0
