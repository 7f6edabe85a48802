from __future__ import annotations

import threading
from typing import Callable, Optional

from ..core.enums import SyncStatus, SyncType
from .model import SyncResult, SyncRun
from .repository import SyncRunStore


class SyncRunRecorder:
    """Single writer for one SyncRun row.

    The row is finalized exactly once; later calls (a worker finishing after
    the supervisor already timed it out) are ignored.
    """

    def __init__(self, store: SyncRunStore, run: SyncRun, *, clock: Callable):
        self._store = store
        self._run = run
        self._clock = clock
        self._lock = threading.Lock()
        self._status: Optional[SyncStatus] = None
        self._result: Optional[SyncResult] = None

    @property
    def run(self) -> SyncRun:
        return self._run

    @property
    def finalized(self) -> bool:
        return self._status is not None

    @property
    def status(self) -> SyncStatus:
        return self._status or SyncStatus.IN_PROGRESS

    @property
    def result(self) -> Optional[SyncResult]:
        return self._result

    def finalize(self, status: SyncStatus, result: SyncResult, *, error_details: Optional[str] = None) -> bool:
        if not status.is_terminal:
            raise ValueError("a sync run can only be finalized with a terminal status")

        with self._lock:
            if self._status is not None:
                return False
            self._store.finalize(
                self._run.sync_id,
                status=status,
                completed_at=self._clock(),
                records_processed=result.records_processed,
                records_synced=self._synced_count(result),
                records_deleted=result.records_deleted,
                error_message=self._error_message(status, result),
                error_details=error_details,
            )
            self._status = status
            self._result = result
            return True

    def _synced_count(self, result: SyncResult) -> int:
        if self._run.sync_type == SyncType.STAFF:
            return result.staff_synced
        return result.records_synced

    @staticmethod
    def _error_message(status: SyncStatus, result: SyncResult) -> Optional[str]:
        if status == SyncStatus.SUCCESS:
            # per-unit failures of an otherwise completed attempt
            return "; ".join(result.errors) or None
        return result.message or None
