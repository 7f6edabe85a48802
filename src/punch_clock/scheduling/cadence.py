from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Optional

from ..core.exceptions import ValidationError

_EVERY = re.compile(r"^every\s+(\d+)\s*([smh])$", re.IGNORECASE)
_DAILY = re.compile(r"^daily\s+(\d{1,2}):(\d{2})$", re.IGNORECASE)
_UNITS = {"s": "seconds", "m": "minutes", "h": "hours"}
_DAY = timedelta(days=1)


@dataclass(frozen=True)
class Cadence:
    """When a recurring job fires.

    ``every N[s|m|h]`` fires on multiples of the interval counted from
    midnight (``every 30m`` -> :00 and :30). ``daily HH:MM`` fires once a day
    at that wall-clock time.
    """

    interval: Optional[timedelta] = None
    at: Optional[time] = None

    @classmethod
    def parse(cls, text: str) -> "Cadence":
        value = (text or "").strip()

        m = _EVERY.match(value)
        if m:
            amount = int(m.group(1))
            if amount <= 0:
                raise ValidationError(f"Cadence interval must be positive: {text!r}")
            interval = timedelta(**{_UNITS[m.group(2).lower()]: amount})
            if interval > _DAY:
                raise ValidationError(f"Cadence interval longer than a day: {text!r}")
            return cls(interval=interval)

        m = _DAILY.match(value)
        if m:
            hour, minute = int(m.group(1)), int(m.group(2))
            if hour > 23 or minute > 59:
                raise ValidationError(f"Invalid time of day in cadence: {text!r}")
            return cls(at=time(hour=hour, minute=minute))

        raise ValidationError(f"Unrecognised cadence: {text!r} (expected 'every 30m' or 'daily 01:00')")

    def next_after(self, moment: datetime) -> datetime:
        """First firing time strictly after ``moment``."""

        midnight = datetime.combine(moment.date(), time.min)
        if self.interval is not None:
            elapsed = moment - midnight
            candidate = midnight + self.interval * (elapsed // self.interval + 1)
            return min(candidate, midnight + _DAY)

        candidate = datetime.combine(moment.date(), self.at)
        if candidate <= moment:
            candidate += _DAY
        return candidate

    def __str__(self) -> str:
        if self.interval is not None:
            return f"every {int(self.interval.total_seconds())}s"
        return f"daily {self.at:%H:%M}"
