from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import PunchType, VerificationMode


@dataclass(frozen=True)
class PunchEvent:
    """Domain entity: one timestamped reading captured by a terminal.

    Immutable once recorded; only the processed flag is ever updated, and that
    happens through the store, not on this object.
    """

    punch_id: Optional[int]
    staff_id: int
    timestamp: datetime
    punch_type: PunchType
    verification_mode: VerificationMode = VerificationMode.UNKNOWN
    device_id: Optional[int] = None
    device_user_id: Optional[int] = None
    processed: bool = False
    is_valid: bool = True

    @property
    def punch_date(self) -> date:
        return self.timestamp.date()
