from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..core.enums import SyncStatus, SyncType
from ..devices.model import Device


@dataclass(frozen=True)
class SyncRun:
    """Audit row for one attempt against one device. Append-only history."""

    sync_id: int
    device_id: int
    sync_type: SyncType
    status: SyncStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    records_processed: int = 0
    records_synced: int = 0
    records_deleted: int = 0
    error_message: Optional[str] = None
    error_details: Optional[str] = None


@dataclass
class SyncResult:
    """Fixed result shape returned by every per-device sync operation."""

    success: bool = False
    message: str = ""
    records_processed: int = 0
    records_synced: int = 0
    staff_synced: int = 0
    records_created: int = 0
    records_updated: int = 0
    records_failed: int = 0
    records_deleted: int = 0
    errors: List[str] = field(default_factory=list)

    @classmethod
    def failure(cls, message: str) -> "SyncResult":
        return cls(success=False, message=message, errors=[message])

    def add_error(self, message: str) -> None:
        self.records_failed += 1
        self.errors.append(message)


@dataclass(frozen=True)
class DeviceOutcome:
    device: Device
    status: SyncStatus
    result: SyncResult


@dataclass(frozen=True)
class BatchSummary:
    """Totals of one batch run across devices."""

    sync_type: SyncType
    outcomes: tuple[DeviceOutcome, ...] = ()

    def _count(self, status: SyncStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def devices_attempted(self) -> int:
        return len(self.outcomes)

    @property
    def devices_succeeded(self) -> int:
        return self._count(SyncStatus.SUCCESS)

    @property
    def devices_failed(self) -> int:
        return self._count(SyncStatus.FAILED)

    @property
    def devices_skipped(self) -> int:
        return self._count(SyncStatus.SKIPPED)

    @property
    def records_synced(self) -> int:
        return sum(o.result.records_synced for o in self.outcomes if o.status == SyncStatus.SUCCESS)

    @property
    def staff_synced(self) -> int:
        return sum(o.result.staff_synced for o in self.outcomes if o.status == SyncStatus.SUCCESS)

    @property
    def total_removed(self) -> int:
        return sum(o.result.records_deleted for o in self.outcomes if o.status == SyncStatus.SUCCESS)
