from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import SyncStatus, SyncType
from .model import SyncRun


class SyncRunStore(Protocol):
    def create(self, *, device_id: int, sync_type: SyncType, started_at: datetime) -> SyncRun:
        """Insert a new IN_PROGRESS row; every attempt gets its own row."""

        raise NotImplementedError

    def finalize(
        self,
        sync_id: int,
        *,
        status: SyncStatus,
        completed_at: datetime,
        records_processed: int,
        records_synced: int,
        records_deleted: int,
        error_message: Optional[str] = None,
        error_details: Optional[str] = None,
    ) -> None:
        raise NotImplementedError

    def list_for_device(self, device_id: int, *, sync_type: Optional[SyncType] = None) -> Sequence[SyncRun]:
        raise NotImplementedError
