from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ...core.enums import AttendanceStatus, HalfDayType
from ...shifts.model import Shift
from ..model import AttendanceRecord


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus
    half_day_type: Optional[HalfDayType] = None
    reason: Optional[str] = None


class ClassificationStrategy(ABC):
    """Strategy Pattern: decide the daily status of a record with both punches."""

    @abstractmethod
    def decide(self, *, record: AttendanceRecord, shift: Shift) -> StatusDecision:
        raise NotImplementedError
