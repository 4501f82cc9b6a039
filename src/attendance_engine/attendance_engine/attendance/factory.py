from __future__ import annotations

from dataclasses import dataclass

from ..core.exceptions import PreconditionError
from ..shifts.model import Shift
from .calculations import derive_metrics
from .model import AttendanceRecord
from .strategies.base import ClassificationStrategy, StatusDecision
from .strategies.below_half_day_strategy import BelowHalfDayStrategy
from .strategies.full_day_strategy import FullDayStrategy
from .strategies.half_day_strategy import HalfDayStrategy


@dataclass
class ClassificationStrategyFactory:
    """Factory Pattern: choose the classification strategy from worked hours."""

    def for_record(self, *, record: AttendanceRecord, shift: Shift) -> ClassificationStrategy:
        hours = float(record.work_hours or 0.0)
        if hours >= float(shift.full_day_hours):
            return FullDayStrategy()
        if hours >= float(shift.half_day_hours):
            return HalfDayStrategy()
        return BelowHalfDayStrategy()

    def classify(self, *, record: AttendanceRecord, shift: Shift) -> StatusDecision:
        if record.clock_in is None or record.clock_out is None:
            raise PreconditionError("Both punches are required to classify a record", code="NotClockedIn")
        if record.work_hours is None:
            record = derive_metrics(record, shift)
        strategy = self.for_record(record=record, shift=shift)
        return strategy.decide(record=record, shift=shift)
