from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Staff
from .repository import StaffRepository

_COLUMNS = "staff_id, employee_id, first_name, last_name, location_id, shift_id, is_active, termination_date"


def _to_staff(r: Dict[str, Any]) -> Staff:
    return Staff(
        staff_id=int(r["staff_id"]),
        employee_id=str(r["employee_id"]),
        first_name=r["first_name"],
        last_name=r["last_name"],
        location_id=int(r["location_id"]) if r.get("location_id") is not None else None,
        shift_id=int(r["shift_id"]) if r.get("shift_id") is not None else None,
        is_active=bool(r["is_active"]),
        termination_date=r.get("termination_date"),
    )


class MySQLStaffRepository(StaffRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, staff_id: int) -> Optional[Staff]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM staff WHERE staff_id=%s", (int(staff_id),))
            r = fetchone(cur)
            return _to_staff(r) if r else None

    def get_by_employee_id(self, employee_id: str) -> Optional[Staff]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM staff WHERE employee_id=%s", (employee_id,))
            r = fetchone(cur)
            return _to_staff(r) if r else None

    def list_active_ids(self) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT staff_id FROM staff WHERE is_active=1 ORDER BY staff_id")
            return [int(r["staff_id"]) for r in fetchall(cur)]

    def list_active_for_location(self, location_id: Optional[int]) -> Sequence[Staff]:
        # Devices without a location serve every active staff member.
        with db_cursor(self._conn_factory) as (_, cur):
            if location_id is None:
                cur.execute(f"SELECT {_COLUMNS} FROM staff WHERE is_active=1 ORDER BY staff_id")
            else:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM staff WHERE is_active=1 AND location_id=%s ORDER BY staff_id",
                    (int(location_id),),
                )
            return [_to_staff(r) for r in fetchall(cur)]
