from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Sequence

from ..common.datetime_utils import now_utc
from ..core.constants import DEFAULT_DEVICE_PORT, DEFAULT_OFFLINE_AFTER_SECONDS
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Device
from .repository import DeviceRepository
from .status import is_effectively_online

_COLUMNS = """
    device_id, device_name, device_serial, ip_address, port, location_id, is_active, is_online,
    last_heartbeat_at, last_sync_at
"""


def _to_device(r: Dict[str, Any]) -> Device:
    return Device(
        device_id=int(r["device_id"]),
        device_name=r["device_name"],
        device_serial=r["device_serial"],
        ip_address=r.get("ip_address"),
        port=int(r["port"]) if r.get("port") is not None else DEFAULT_DEVICE_PORT,
        location_id=int(r["location_id"]) if r.get("location_id") is not None else None,
        is_active=bool(r["is_active"]),
        is_online=bool(r["is_online"]),
        last_heartbeat_at=r.get("last_heartbeat_at"),
        last_sync_at=r.get("last_sync_at"),
    )


class MySQLDeviceRepository(DeviceRepository):
    """Devices are reported online only while their heartbeat is fresh."""

    def __init__(
        self,
        conn_factory: DatabaseConnection,
        *,
        offline_after_seconds: float = DEFAULT_OFFLINE_AFTER_SECONDS,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._conn_factory = conn_factory
        self._offline_after_seconds = float(offline_after_seconds)
        self._clock = clock

    def _with_status(self, device: Device) -> Device:
        online = is_effectively_online(device, now=self._clock(), offline_after_seconds=self._offline_after_seconds)
        return device if online == device.is_online else replace(device, is_online=online)

    def get_by_id(self, device_id: int) -> Optional[Device]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM devices WHERE device_id=%s", (int(device_id),))
            r = fetchone(cur)
            return self._with_status(_to_device(r)) if r else None

    def list_active(self) -> Sequence[Device]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM devices WHERE is_active=1 ORDER BY device_id")
            return [self._with_status(_to_device(r)) for r in fetchall(cur)]

    def mark_online(self, device_id: int, *, heartbeat_at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE devices SET is_online=1, last_heartbeat_at=%s WHERE device_id=%s",
                (heartbeat_at, int(device_id)),
            )

    def mark_offline(self, device_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE devices SET is_online=0 WHERE device_id=%s", (int(device_id),))

    def mark_synced(self, device_id: int, *, synced_at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE devices SET last_sync_at=%s WHERE device_id=%s", (synced_at, int(device_id)))
