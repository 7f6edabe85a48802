from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from ..core.enums import SyncStatus
from ..devices.model import Device
from .deadline import DeviceDeadline
from .model import DeviceOutcome, SyncResult
from .recorder import SyncRunRecorder


@dataclass
class DeviceAttempt:
    """State shared between a worker and the supervisor for one device."""

    device: Device
    deadline: DeviceDeadline
    recorder: Optional[SyncRunRecorder] = None


AttemptFn = Callable[[DeviceAttempt], SyncResult]


class DevicePool:
    """Bounded worker pool that runs one isolated attempt per device.

    Every attempt gets its own deadline. An attempt that outlives it is
    finalized FAILED by the supervisor and abandoned, so one unresponsive
    terminal cannot hold up the batch. Setting ``stop_event`` keeps queued
    attempts from starting and cancels the in-flight ones.
    """

    def __init__(
        self,
        *,
        max_workers: int,
        deadline_seconds: float,
        logger: logging.Logger,
        poll_interval: float = 0.05,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._max_workers = max(1, int(max_workers))
        self._deadline_seconds = float(deadline_seconds)
        self._logger = logger
        self._poll_interval = poll_interval
        self._clock = clock

    @property
    def deadline_seconds(self) -> float:
        return self._deadline_seconds

    def run(
        self,
        devices: Sequence[Device],
        attempt_fn: AttemptFn,
        *,
        stop_event: Optional[threading.Event] = None,
    ) -> List[DeviceOutcome]:
        if not devices:
            return []

        stop_event = stop_event or threading.Event()
        outcomes: Dict[int, DeviceOutcome] = {}
        attempts: Dict[Future, DeviceAttempt] = {}

        executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="device-sync")
        try:
            for device in devices:
                attempt = DeviceAttempt(device=device, deadline=DeviceDeadline(self._deadline_seconds, clock=self._clock))
                attempts[executor.submit(self._guarded, attempt, attempt_fn, stop_event)] = attempt

            pending = set(attempts)
            while pending:
                done, pending = wait(pending, timeout=self._poll_interval, return_when=FIRST_COMPLETED)
                for future in done:
                    attempt = attempts[future]
                    outcomes[attempt.device.device_id] = self._collect(attempt, future)

                if stop_event.is_set():
                    for future in pending:
                        attempts[future].deadline.cancel("batch cancelled")

                for future in list(pending):
                    attempt = attempts[future]
                    if attempt.deadline.expired:
                        pending.discard(future)
                        outcomes[attempt.device.device_id] = self._abandon(attempt)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return [outcomes[d.device_id] for d in devices if d.device_id in outcomes]

    def _guarded(self, attempt: DeviceAttempt, attempt_fn: AttemptFn, stop_event: threading.Event) -> Optional[SyncResult]:
        if stop_event.is_set():
            return None
        attempt.deadline.start()
        return attempt_fn(attempt)

    def _collect(self, attempt: DeviceAttempt, future: Future) -> DeviceOutcome:
        device = attempt.device
        try:
            result = future.result()
        except Exception as exc:
            self._logger.exception("Unhandled error in attempt for device %s", device.device_id)
            result = SyncResult.failure(str(exc))
            self._safe_finalize(attempt, result)

        if result is None:
            return DeviceOutcome(device, SyncStatus.SKIPPED, SyncResult(message="batch cancelled before start"))

        recorder = attempt.recorder
        if recorder is not None and recorder.finalized:
            return DeviceOutcome(device, recorder.status, recorder.result or result)
        return DeviceOutcome(device, SyncStatus.SUCCESS if result.success else SyncStatus.FAILED, result)

    def _abandon(self, attempt: DeviceAttempt) -> DeviceOutcome:
        device = attempt.device
        message = f"Deadline of {self._deadline_seconds:g}s exceeded; attempt abandoned"
        attempt.deadline.cancel("deadline exceeded")
        self._logger.error("Device %s (%s): %s", device.device_name, device.device_id, message)

        result = SyncResult.failure(message)
        recorder = attempt.recorder
        if recorder is None:
            return DeviceOutcome(device, SyncStatus.FAILED, result)
        if not self._safe_finalize(attempt, result) and recorder.finalized:
            # worker finished first; its row stands
            return DeviceOutcome(device, recorder.status, recorder.result or result)
        return DeviceOutcome(device, SyncStatus.FAILED, result)

    def _safe_finalize(self, attempt: DeviceAttempt, result: SyncResult) -> bool:
        if attempt.recorder is None:
            return False
        try:
            return attempt.recorder.finalize(SyncStatus.FAILED, result)
        except Exception:
            self._logger.exception("Could not record failed sync run for device %s", attempt.device.device_id)
            return False
