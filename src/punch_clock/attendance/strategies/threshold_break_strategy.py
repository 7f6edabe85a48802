from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from ...core.constants import BREAK_THRESHOLD, DEFAULT_BREAK_DURATION
from .base import BreakDeductionStrategy


@dataclass(frozen=True)
class ThresholdBreakStrategy(BreakDeductionStrategy):
    """Break comes off only when the gross day is longer than the threshold."""

    break_duration: timedelta = DEFAULT_BREAK_DURATION
    threshold: timedelta = BREAK_THRESHOLD

    def deduct(self, gross: timedelta) -> timedelta:
        if gross > self.threshold:
            return self.break_duration
        return timedelta(0)
