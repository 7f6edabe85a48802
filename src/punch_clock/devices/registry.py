from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator

from ..core.exceptions import ConnectivityError
from .gateway import DeviceGateway, GatewayFactory
from .model import Device


@dataclass
class _Connection:
    gateway: DeviceGateway
    last_used: float
    lock: threading.Lock = field(default_factory=threading.Lock)


class ConnectionRegistry:
    """Owns live terminal connections, one per device.

    Connections are opened on demand, reused while they are connected and
    have been used within ``max_idle_seconds``, and replaced otherwise.
    ``close_all`` (or leaving the ``with`` block) disconnects everything.
    """

    def __init__(
        self,
        factory: GatewayFactory,
        *,
        logger: logging.Logger,
        timeout_seconds: float,
        max_idle_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._factory = factory
        self._logger = logger
        self._timeout_seconds = float(timeout_seconds)
        self._max_idle_seconds = float(max_idle_seconds)
        self._clock = clock
        self._connections: Dict[int, _Connection] = {}
        self._lock = threading.Lock()

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    def __enter__(self) -> "ConnectionRegistry":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close_all()

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    @contextmanager
    def session(self, device: Device) -> Iterator[DeviceGateway]:
        """Exclusive use of the device's connection for one unit of work.

        A failure inside the block drops the connection so the next session
        starts from a fresh client. Only the session's own connection is
        dropped; one that has already been replaced is left alone.
        """

        conn = self._acquire(device)
        if not conn.lock.acquire(timeout=self._timeout_seconds):
            raise ConnectivityError(f"Device {device.device_id} connection is busy")
        try:
            yield conn.gateway
            conn.last_used = self._clock()
        except BaseException:
            self._discard(device.device_id, conn)
            raise
        finally:
            conn.lock.release()

    def probe(self, device: Device) -> bool:
        """Test reachability over the registered connection.

        A connection held by a running session counts as reachable without
        sending anything, so a terminal never sees a second client.
        """

        with self._lock:
            conn = self._connections.get(device.device_id)
        if conn is not None and conn.lock.locked():
            return conn.gateway.is_connected
        try:
            with self.session(device) as gateway:
                return bool(gateway.test_connection())
        except ConnectivityError:
            self._logger.warning("Connection test failed for device %s", device.device_id, exc_info=True)
            return False

    def close(self, device_id: int) -> None:
        with self._lock:
            conn = self._connections.pop(device_id, None)
        if conn is not None:
            self._disconnect(device_id, conn.gateway)

    def close_all(self) -> None:
        with self._lock:
            conns = list(self._connections.items())
            self._connections.clear()
        if conns:
            self._logger.debug("Closing %d device connections", len(conns))
        for device_id, conn in conns:
            self._disconnect(device_id, conn.gateway)

    def _acquire(self, device: Device) -> _Connection:
        if not device.ip_address:
            raise ConnectivityError(f"Device {device.device_id} has no IP address configured")

        with self._lock:
            conn = self._connections.get(device.device_id)
            if conn is not None and self._is_usable(conn):
                return conn
            if conn is not None and conn.lock.locked():
                raise ConnectivityError(f"Device {device.device_id} connection is busy")
            self._connections.pop(device.device_id, None)

        if conn is not None:
            self._logger.debug("Removing stale connection for device %s", device.device_id)
            self._disconnect(device.device_id, conn.gateway)

        gateway = self._factory(device, self._timeout_seconds)
        try:
            gateway.connect()
        except ConnectivityError:
            raise
        except Exception as exc:
            raise ConnectivityError(f"Failed to connect to device {device.device_id}: {exc}") from exc

        conn = _Connection(gateway=gateway, last_used=self._clock())
        with self._lock:
            self._connections[device.device_id] = conn
        self._logger.info(
            "Connected to device %s (%s) at %s:%s", device.device_id, device.device_name, device.ip_address, device.port
        )
        return conn

    def _discard(self, device_id: int, conn: _Connection) -> None:
        with self._lock:
            if self._connections.get(device_id) is conn:
                del self._connections[device_id]
        self._disconnect(device_id, conn.gateway)

    def _is_usable(self, conn: _Connection) -> bool:
        if not conn.gateway.is_connected:
            return False
        return self._clock() - conn.last_used <= self._max_idle_seconds

    def _disconnect(self, device_id: int, gateway: DeviceGateway) -> None:
        try:
            gateway.disconnect()
        except Exception:
            self._logger.warning("Error disconnecting device %s", device_id, exc_info=True)
