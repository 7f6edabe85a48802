from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class Staff:
    """Domain entity: an employee who punches on terminals."""

    staff_id: int
    employee_id: str
    first_name: str
    last_name: str
    location_id: Optional[int] = None
    shift_id: Optional[int] = None
    is_active: bool = True
    termination_date: Optional[date] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def should_be_removed_from_devices(self) -> bool:
        return not self.is_active or self.termination_date is not None
