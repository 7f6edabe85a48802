from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..core.enums import SyncStatus, SyncType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import SyncRun
from .repository import SyncRunStore

_COLUMNS = """
    sync_id, device_id, sync_type, status, started_at, completed_at, records_processed, records_synced,
    records_deleted, error_message, error_details
"""


def _to_run(r: Dict[str, Any]) -> SyncRun:
    return SyncRun(
        sync_id=int(r["sync_id"]),
        device_id=int(r["device_id"]),
        sync_type=SyncType(r["sync_type"]),
        status=SyncStatus(r["status"]),
        started_at=r["started_at"],
        completed_at=r.get("completed_at"),
        records_processed=int(r["records_processed"]),
        records_synced=int(r["records_synced"]),
        records_deleted=int(r["records_deleted"]),
        error_message=r.get("error_message"),
        error_details=r.get("error_details"),
    )


class MySQLSyncRunStore(SyncRunStore):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, *, device_id: int, sync_type: SyncType, started_at: datetime) -> SyncRun:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO sync_runs(device_id, sync_type, status, started_at)
                VALUES(%s,%s,%s,%s)
                """,
                (int(device_id), sync_type.value, SyncStatus.IN_PROGRESS.value, started_at),
            )
            sync_id = int(cur.lastrowid)
        return SyncRun(
            sync_id=sync_id,
            device_id=int(device_id),
            sync_type=sync_type,
            status=SyncStatus.IN_PROGRESS,
            started_at=started_at,
        )

    def finalize(
        self,
        sync_id: int,
        *,
        status: SyncStatus,
        completed_at: datetime,
        records_processed: int,
        records_synced: int,
        records_deleted: int,
        error_message: Optional[str] = None,
        error_details: Optional[str] = None,
    ) -> None:
        # Guarded on IN_PROGRESS so a terminal row is never rewritten.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE sync_runs
                SET status=%s, completed_at=%s, records_processed=%s, records_synced=%s,
                    records_deleted=%s, error_message=%s, error_details=%s
                WHERE sync_id=%s AND status=%s
                """,
                (
                    status.value,
                    completed_at,
                    int(records_processed),
                    int(records_synced),
                    int(records_deleted),
                    error_message,
                    error_details,
                    int(sync_id),
                    SyncStatus.IN_PROGRESS.value,
                ),
            )

    def list_for_device(self, device_id: int, *, sync_type: Optional[SyncType] = None) -> Sequence[SyncRun]:
        sql = f"SELECT {_COLUMNS} FROM sync_runs WHERE device_id=%s"
        params: list[Any] = [int(device_id)]
        if sync_type is not None:
            sql += " AND sync_type=%s"
            params.append(sync_type.value)
        sql += " ORDER BY started_at, sync_id"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_run(r) for r in fetchall(cur)]
