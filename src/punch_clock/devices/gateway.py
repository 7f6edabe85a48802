from __future__ import annotations

from typing import Callable, Protocol, Sequence

from ..staff.model import Staff
from .model import Device, DeviceAttendanceLog, DeviceUser, OperationResult


class DeviceGateway(Protocol):
    """Client for one terminal.

    Implementations raise ConnectivityError when the terminal cannot be
    reached and honour their configured connect timeout. Everything else about
    the wire protocol stays behind this interface.
    """

    @property
    def is_connected(self) -> bool:
        raise NotImplementedError

    def connect(self) -> None:
        raise NotImplementedError

    def disconnect(self) -> None:
        raise NotImplementedError

    def test_connection(self) -> bool:
        raise NotImplementedError

    def fetch_attendance(self, device_id: int) -> Sequence[DeviceAttendanceLog]:
        raise NotImplementedError

    def fetch_users(self, device_id: int) -> Sequence[DeviceUser]:
        raise NotImplementedError

    def push_user(self, device_id: int, staff: Staff, *, device_user_id: int) -> OperationResult:
        raise NotImplementedError

    def delete_user(self, device_id: int, device_user_id: int) -> OperationResult:
        raise NotImplementedError


# Builds a fresh, unconnected client for a device with the given connect timeout (seconds).
GatewayFactory = Callable[[Device, float], DeviceGateway]
