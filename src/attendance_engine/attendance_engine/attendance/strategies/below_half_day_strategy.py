from __future__ import annotations

from ...core.enums import AttendanceStatus
from ...shifts.model import Shift
from ..calculations import half_day_type_for
from ..model import AttendanceRecord
from .base import ClassificationStrategy, StatusDecision


class BelowHalfDayStrategy(ClassificationStrategy):
    """Less than the half-day threshold.

    Still recorded as half_day; there is no separate low-attendance status.
    """

    def decide(self, *, record: AttendanceRecord, shift: Shift) -> StatusDecision:
        return StatusDecision(
            status=AttendanceStatus.HALF_DAY,
            half_day_type=half_day_type_for(shift, record.work_date, record.clock_in),
            reason=f"Worked {record.work_hours}h, below the {shift.half_day_hours}h half-day threshold",
        )
