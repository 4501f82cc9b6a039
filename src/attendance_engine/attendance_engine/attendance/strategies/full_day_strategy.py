from __future__ import annotations

from ...core.enums import AttendanceStatus
from ...shifts.model import Shift
from ..model import AttendanceRecord
from .base import ClassificationStrategy, StatusDecision


class FullDayStrategy(ClassificationStrategy):
    """Worked at least the shift's full-day hours."""

    def decide(self, *, record: AttendanceRecord, shift: Shift) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)
