from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from .model import Shift


class ShiftRepository(Protocol):
    def get_by_id(self, shift_id: int) -> Optional[Shift]:
        raise NotImplementedError

    def get_default(self) -> Optional[Shift]:
        raise NotImplementedError

    def get_assigned_shift_id(self, *, employee_id: int, work_date: date) -> Optional[int]:
        """Active assignment for the date, most recent ``effective_from`` first."""

        raise NotImplementedError
