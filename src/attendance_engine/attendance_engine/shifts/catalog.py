from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Protocol, Sequence

from ..attendance.model import AttendanceRecord
from ..core.exceptions import NotAllowedError
from .model import Shift, ShiftAssignment
from .repository import ShiftRepository

logger = logging.getLogger(__name__)


class ShiftCatalog(Protocol):
    def resolve_shift(self, employee_id: int, work_date: date) -> Shift:
        """Effective shift for the employee on ``work_date``.

        Falls back to the catalog's default shift; raises NotAllowedError when neither exists.
        """

        raise NotImplementedError

    def get(self, shift_id: int) -> Optional[Shift]:
        """Shift by id, whatever the current assignments say."""

        raise NotImplementedError


def _no_shift(employee_id: int, work_date: date) -> NotAllowedError:
    return NotAllowedError(
        f"No shift configured for employee {employee_id} on {work_date.isoformat()}",
        code="NoShiftAssigned",
    )


def shift_for_record(catalog: ShiftCatalog, record: AttendanceRecord) -> Shift:
    """The shift a record was clocked in under.

    Once clock-in stamps ``shift_id`` the record keeps that shift, even if the
    employee is reassigned later the same day. Only records without one go
    through ``resolve_shift``.
    """

    if record.shift_id is not None:
        shift = catalog.get(record.shift_id)
        if shift is not None:
            return shift
        logger.warning("Record %s points at unknown shift %s", record.record_id, record.shift_id)
    return catalog.resolve_shift(record.employee_id, record.work_date)


class RepositoryShiftCatalog(ShiftCatalog):
    """Resolve through the shift tables: assignment, then default shift, then ``fallback``."""

    def __init__(self, shifts: ShiftRepository, *, fallback: Optional[Shift] = None):
        self._shifts = shifts
        self._fallback = fallback

    def resolve_shift(self, employee_id: int, work_date: date) -> Shift:
        shift_id = self._shifts.get_assigned_shift_id(employee_id=employee_id, work_date=work_date)
        if shift_id:
            shift = self._shifts.get_by_id(shift_id)
            if shift:
                return shift
            logger.warning("Employee %s assigned to missing shift %s", employee_id, shift_id)

        shift = self._shifts.get_default() or self._fallback
        if shift is None:
            raise _no_shift(employee_id, work_date)
        return shift

    def get(self, shift_id: int) -> Optional[Shift]:
        shift = self._shifts.get_by_id(shift_id)
        if shift is None and self._fallback is not None and self._fallback.shift_id == shift_id:
            return self._fallback
        return shift


@dataclass
class StaticShiftCatalog(ShiftCatalog):
    """Configuration-driven catalog (memory backend and tests)."""

    default: Optional[Shift]
    shifts: dict[int, Shift] = field(default_factory=dict)
    assignments: Sequence[ShiftAssignment] = ()

    def resolve_shift(self, employee_id: int, work_date: date) -> Shift:
        matching = [a for a in self.assignments if a.employee_id == employee_id and a.covers(work_date)]
        matching.sort(key=lambda a: a.effective_from, reverse=True)
        for assignment in matching:
            shift = self.shifts.get(assignment.shift_id)
            if shift:
                return shift
        if self.default is None:
            raise _no_shift(employee_id, work_date)
        return self.default

    def get(self, shift_id: int) -> Optional[Shift]:
        shift = self.shifts.get(shift_id)
        if shift is None and self.default is not None and self.default.shift_id == shift_id:
            return self.default
        return shift
