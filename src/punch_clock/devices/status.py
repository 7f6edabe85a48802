from __future__ import annotations

from datetime import datetime
from typing import Optional

from .model import Device


def heartbeat_age_seconds(device: Device, now: datetime) -> Optional[int]:
    if device.last_heartbeat_at is None:
        return None
    return int((now - device.last_heartbeat_at).total_seconds())


def is_effectively_online(device: Device, *, now: datetime, offline_after_seconds: float) -> bool:
    """Online flag plus a heartbeat younger than the offline threshold."""

    age = heartbeat_age_seconds(device, now)
    return device.is_online and age is not None and age < offline_after_seconds
