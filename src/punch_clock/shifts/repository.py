from __future__ import annotations

from typing import Optional, Protocol

from .model import ShiftPolicy


class ShiftPolicyResolver(Protocol):
    def resolve(self, staff_id: int) -> Optional[ShiftPolicy]:
        """Active shift policy for the staff member, or None for engine defaults."""

        raise NotImplementedError
