from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from ..core.exceptions import DeadlineExceeded, SyncCancelled


class DeviceDeadline:
    """Cancellation/deadline token scoped to a single device attempt.

    The clock starts when the attempt starts, not when it is queued. Workers
    call ``check()`` between gateway calls; the supervisor reads ``expired``
    and calls ``cancel()``.
    """

    def __init__(self, seconds: float, *, clock: Callable[[], float] = time.monotonic):
        self._seconds = float(seconds)
        self._clock = clock
        self._expires_at: Optional[float] = None
        self._cancel_reason: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    def start(self) -> None:
        with self._lock:
            if self._expires_at is None:
                self._expires_at = self._clock() + self._seconds

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def cancel(self, reason: str) -> None:
        with self._lock:
            if self._cancel_reason is None:
                self._cancel_reason = reason

    def check(self) -> None:
        if self._cancel_reason is not None:
            raise SyncCancelled(self._cancel_reason)
        if self.expired:
            raise DeadlineExceeded(f"Device attempt exceeded its {self._seconds:g}s deadline")
