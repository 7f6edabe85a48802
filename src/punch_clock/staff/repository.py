from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Staff


class StaffRepository(Protocol):
    def get_by_id(self, staff_id: int) -> Optional[Staff]:
        raise NotImplementedError

    def get_by_employee_id(self, employee_id: str) -> Optional[Staff]:
        raise NotImplementedError

    def list_active_ids(self) -> Sequence[int]:
        raise NotImplementedError

    def list_active_for_location(self, location_id: Optional[int]) -> Sequence[Staff]:
        raise NotImplementedError
