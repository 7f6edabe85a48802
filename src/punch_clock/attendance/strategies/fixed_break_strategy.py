from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .base import BreakDeductionStrategy


@dataclass(frozen=True)
class FixedBreakStrategy(BreakDeductionStrategy):
    """Shift auto-deducts its break regardless of the length of the day."""

    break_duration: timedelta

    def deduct(self, gross: timedelta) -> timedelta:
        return self.break_duration
