from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import Device, DeviceEnrollment


class DeviceRepository(Protocol):
    def get_by_id(self, device_id: int) -> Optional[Device]:
        raise NotImplementedError

    def list_active(self) -> Sequence[Device]:
        raise NotImplementedError

    def mark_online(self, device_id: int, *, heartbeat_at: datetime) -> None:
        raise NotImplementedError

    def mark_offline(self, device_id: int) -> None:
        raise NotImplementedError

    def mark_synced(self, device_id: int, *, synced_at: datetime) -> None:
        raise NotImplementedError


class EnrollmentRepository(Protocol):
    def find(self, *, device_id: int, staff_id: int) -> Optional[DeviceEnrollment]:
        raise NotImplementedError

    def find_by_device_user_id(self, *, device_id: int, device_user_id: int) -> Optional[DeviceEnrollment]:
        raise NotImplementedError

    def create(self, *, device_id: int, staff_id: int, device_user_id: int, enrolled_at: datetime) -> DeviceEnrollment:
        raise NotImplementedError

    def touch(self, enrollment_id: int, *, updated_at: datetime) -> None:
        raise NotImplementedError

    def delete(self, enrollment_id: int) -> bool:
        raise NotImplementedError

    def list_for_removal(self, device_id: int) -> Sequence[DeviceEnrollment]:
        """Enrollments on the device whose staff is inactive or has a termination date."""

        raise NotImplementedError

    def max_device_user_id(self, device_id: int) -> int:
        raise NotImplementedError
