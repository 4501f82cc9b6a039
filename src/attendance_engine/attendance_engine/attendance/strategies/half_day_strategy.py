from __future__ import annotations

from ...core.enums import AttendanceStatus
from ...shifts.model import Shift
from ..calculations import half_day_type_for
from ..model import AttendanceRecord
from .base import ClassificationStrategy, StatusDecision


class HalfDayStrategy(ClassificationStrategy):
    """Between the half-day and full-day thresholds; the half follows the clock-in side of the midpoint."""

    def decide(self, *, record: AttendanceRecord, shift: Shift) -> StatusDecision:
        return StatusDecision(
            status=AttendanceStatus.HALF_DAY,
            half_day_type=half_day_type_for(shift, record.work_date, record.clock_in),
            reason=f"Worked {record.work_hours}h of {shift.full_day_hours}h",
        )
