from __future__ import annotations

import json
from datetime import date, timedelta
from typing import Any, Dict, Optional, Sequence

from ..core.enums import AnomalyFlag, AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AnomalyDetail, AttendanceRecord
from .repository import AttendanceRecordStore

_COLUMNS = """
    record_id, staff_id, attendance_date, clock_in, clock_out, total_seconds, regular_seconds,
    overtime_seconds, break_seconds, late_minutes, early_leave_minutes, status, anomaly_flags
"""


def _dump_flags(flags: Dict[AnomalyFlag, AnomalyDetail]) -> Optional[str]:
    if not flags:
        return None
    return json.dumps({flag.value: detail for flag, detail in flags.items()}, sort_keys=True)


def _load_flags(raw: Any) -> Dict[AnomalyFlag, AnomalyDetail]:
    if not raw:
        return {}
    data = json.loads(raw) if isinstance(raw, (str, bytes, bytearray)) else raw
    return {AnomalyFlag(key): value for key, value in data.items()}


def _to_record(r: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=int(r["record_id"]),
        staff_id=int(r["staff_id"]),
        attendance_date=r["attendance_date"],
        clock_in=r.get("clock_in"),
        clock_out=r.get("clock_out"),
        total_hours=timedelta(seconds=int(r["total_seconds"])),
        regular_hours=timedelta(seconds=int(r["regular_seconds"])),
        overtime_hours=timedelta(seconds=int(r["overtime_seconds"])),
        break_duration=timedelta(seconds=int(r["break_seconds"])),
        late_minutes=int(r["late_minutes"]),
        early_leave_minutes=int(r["early_leave_minutes"]),
        status=AttendanceStatus(r["status"]),
        anomaly_flags=_load_flags(r.get("anomaly_flags")),
    )


def _seconds(value: timedelta) -> int:
    return int(value.total_seconds())


class MySQLAttendanceRecordStore(AttendanceRecordStore):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_by_staff_and_date(self, staff_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE staff_id=%s AND attendance_date=%s",
                (int(staff_id), attendance_date),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def upsert(self, record: AttendanceRecord) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(
                    staff_id, attendance_date, clock_in, clock_out, total_seconds, regular_seconds,
                    overtime_seconds, break_seconds, late_minutes, early_leave_minutes, status,
                    has_anomalies, anomaly_flags
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    record_id=LAST_INSERT_ID(record_id),
                    clock_in=VALUES(clock_in),
                    clock_out=VALUES(clock_out),
                    total_seconds=VALUES(total_seconds),
                    regular_seconds=VALUES(regular_seconds),
                    overtime_seconds=VALUES(overtime_seconds),
                    break_seconds=VALUES(break_seconds),
                    late_minutes=VALUES(late_minutes),
                    early_leave_minutes=VALUES(early_leave_minutes),
                    status=VALUES(status),
                    has_anomalies=VALUES(has_anomalies),
                    anomaly_flags=VALUES(anomaly_flags)
                """,
                (
                    int(record.staff_id),
                    record.attendance_date,
                    record.clock_in,
                    record.clock_out,
                    _seconds(record.total_hours),
                    _seconds(record.regular_hours),
                    _seconds(record.overtime_hours),
                    _seconds(record.break_duration),
                    int(record.late_minutes),
                    int(record.early_leave_minutes),
                    record.status.value,
                    1 if record.has_anomalies else 0,
                    _dump_flags(record.anomaly_flags),
                ),
            )
            # LAST_INSERT_ID(record_id) makes lastrowid the existing id on update.
            record.record_id = int(cur.lastrowid)
        return record

    def query_by_anomaly_flag(
        self,
        flag: Optional[AnomalyFlag] = None,
        *,
        from_date: Optional[date] = None,
    ) -> Sequence[AttendanceRecord]:
        clauses = ["has_anomalies=1"]
        params: list[Any] = []
        if flag is not None:
            clauses.append("JSON_CONTAINS_PATH(anomaly_flags, 'one', %s)")
            params.append(f"$.{flag.value}")
        if from_date is not None:
            clauses.append("attendance_date >= %s")
            params.append(from_date)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE {" AND ".join(clauses)}
                ORDER BY attendance_date, staff_id
                """,
                tuple(params),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def query_by_date_range(
        self,
        *,
        start_date: date,
        end_date: date,
        staff_id: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        sql = f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_date BETWEEN %s AND %s"
        params: list[Any] = [start_date, end_date]
        if staff_id is not None:
            sql += " AND staff_id=%s"
            params.append(int(staff_id))
        sql += " ORDER BY attendance_date, staff_id"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_record(r) for r in fetchall(cur)]
