from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.constants import DEFAULT_DEVICE_PORT


@dataclass(frozen=True)
class Device:
    """Domain entity: a biometric terminal."""

    device_id: int
    device_name: str
    device_serial: str
    ip_address: Optional[str] = None
    port: int = DEFAULT_DEVICE_PORT
    location_id: Optional[int] = None
    is_active: bool = True
    is_online: bool = False
    last_heartbeat_at: Optional[datetime] = None
    last_sync_at: Optional[datetime] = None


@dataclass(frozen=True)
class DeviceEnrollment:
    """Link between a staff member and their user slot on a terminal."""

    enrollment_id: Optional[int]
    device_id: int
    staff_id: int
    device_user_id: int
    enrolled_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class DeviceUser:
    """A user entry as stored on the terminal."""

    uid: int
    user_id: str
    name: str = ""
    privilege: int = 0


@dataclass(frozen=True)
class DeviceAttendanceLog:
    """A raw attendance row read off a terminal, before staff resolution."""

    uid: int
    user_id: str
    timestamp: Optional[datetime]
    punch: Optional[int] = None
    status: Optional[int] = None


@dataclass(frozen=True)
class OperationResult:
    success: bool
    message: str = ""
    error: Optional[str] = None

    @classmethod
    def ok(cls, message: str = "") -> "OperationResult":
        return cls(success=True, message=message)

    @classmethod
    def failed(cls, error: str) -> "OperationResult":
        return cls(success=False, error=error)
