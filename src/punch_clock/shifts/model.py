from __future__ import annotations

from dataclasses import dataclass
from datetime import time, timedelta
from typing import Optional

from ..core.constants import DEFAULT_EARLY_LEAVE_THRESHOLD_MINUTES, DEFAULT_GRACE_PERIOD_MINUTES


@dataclass(frozen=True)
class ShiftPolicy:
    """Domain entity: the shift rules in force for a staff member.

    Read-only snapshot taken at computation time; not versioned historically.
    """

    shift_id: int
    shift_name: str
    start_time: time
    end_time: time
    required_hours: timedelta
    break_duration: Optional[timedelta] = None
    auto_deduct_break: bool = False
    grace_period_minutes: int = DEFAULT_GRACE_PERIOD_MINUTES
    early_leave_threshold_minutes: int = DEFAULT_EARLY_LEAVE_THRESHOLD_MINUTES
