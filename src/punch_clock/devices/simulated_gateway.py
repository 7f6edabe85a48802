from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from ..core.exceptions import ConnectivityError
from ..staff.model import Staff
from .model import Device, DeviceAttendanceLog, DeviceUser, OperationResult


@dataclass
class SimulatedTerminal:
    """In-memory state of a terminal: its user table and attendance buffer."""

    reachable: bool = True
    users: Dict[int, DeviceUser] = field(default_factory=dict)
    logs: List[DeviceAttendanceLog] = field(default_factory=list)


class SimulatedDeviceGateway:
    """DeviceGateway backed by a SimulatedTerminal, for development and tests."""

    def __init__(self, device: Device, terminal: SimulatedTerminal, *, timeout_seconds: float = 5):
        self._device = device
        self._terminal = terminal
        self._timeout_seconds = timeout_seconds
        self._connected = False
        self._lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        return self._connected and self._terminal.reachable

    def connect(self) -> None:
        if not self._terminal.reachable:
            raise ConnectivityError(
                f"Timed out after {self._timeout_seconds}s connecting to {self._device.ip_address}:{self._device.port}"
            )
        self._connected = True

    def disconnect(self) -> None:
        self._connected = False

    def test_connection(self) -> bool:
        return self._terminal.reachable

    def fetch_attendance(self, device_id: int) -> Sequence[DeviceAttendanceLog]:
        self._require_connected()
        with self._lock:
            return list(self._terminal.logs)

    def fetch_users(self, device_id: int) -> Sequence[DeviceUser]:
        self._require_connected()
        with self._lock:
            return sorted(self._terminal.users.values(), key=lambda u: u.uid)

    def push_user(self, device_id: int, staff: Staff, *, device_user_id: int) -> OperationResult:
        self._require_connected()
        with self._lock:
            self._terminal.users[device_user_id] = DeviceUser(
                uid=device_user_id, user_id=staff.employee_id, name=staff.full_name
            )
        return OperationResult.ok(f"user {device_user_id} stored")

    def delete_user(self, device_id: int, device_user_id: int) -> OperationResult:
        self._require_connected()
        with self._lock:
            if self._terminal.users.pop(device_user_id, None) is None:
                return OperationResult.failed(f"user {device_user_id} not found on device")
        return OperationResult.ok(f"user {device_user_id} deleted")

    def _require_connected(self) -> None:
        if not self.is_connected:
            raise ConnectivityError(f"Device {self._device.device_id} is not connected")


class SimulatedFleet:
    """Gateway factory over a set of simulated terminals keyed by device id."""

    def __init__(self):
        self.terminals: Dict[int, SimulatedTerminal] = {}

    def terminal(self, device_id: int) -> SimulatedTerminal:
        return self.terminals.setdefault(device_id, SimulatedTerminal())

    def __call__(self, device: Device, timeout_seconds: float) -> SimulatedDeviceGateway:
        return SimulatedDeviceGateway(device, self.terminal(device.device_id), timeout_seconds=timeout_seconds)
