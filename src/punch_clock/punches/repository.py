from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Protocol, Sequence

from .model import PunchEvent


class PunchEventStore(Protocol):
    def list_for_staff_and_date(self, staff_id: int, day: date) -> Sequence[PunchEvent]:
        """All punches of the staff member on that UTC day, ordered by timestamp."""

        raise NotImplementedError

    def list_unprocessed(self) -> Sequence[PunchEvent]:
        raise NotImplementedError

    def exists(self, *, staff_id: int, device_id: Optional[int], timestamp: datetime) -> bool:
        raise NotImplementedError

    def add(self, punch: PunchEvent) -> int:
        raise NotImplementedError

    def mark_processed(self, punch_ids: Iterable[int]) -> int:
        raise NotImplementedError
