from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.constants import BREAK_THRESHOLD, DEFAULT_BREAK_DURATION
from ..shifts.model import ShiftPolicy
from .strategies.base import BreakDeductionStrategy
from .strategies.fixed_break_strategy import FixedBreakStrategy
from .strategies.threshold_break_strategy import ThresholdBreakStrategy


@dataclass
class BreakStrategyFactory:
    """Factory Pattern: choose the break rule from the resolved shift policy.

    Priority: auto-deducted shift break, then shift break over the threshold,
    then the default break over the threshold.
    """

    default_break: ThresholdBreakStrategy = ThresholdBreakStrategy(DEFAULT_BREAK_DURATION, BREAK_THRESHOLD)

    def for_policy(self, policy: Optional[ShiftPolicy]) -> BreakDeductionStrategy:
        if policy is not None and policy.break_duration is not None:
            if policy.auto_deduct_break:
                return FixedBreakStrategy(policy.break_duration)
            return ThresholdBreakStrategy(policy.break_duration, BREAK_THRESHOLD)
        return self.default_break
