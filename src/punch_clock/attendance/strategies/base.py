from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import timedelta


class BreakDeductionStrategy(ABC):
    """Strategy Pattern: encapsulate how much break time comes off a worked day."""

    @abstractmethod
    def deduct(self, gross: timedelta) -> timedelta:
        raise NotImplementedError
