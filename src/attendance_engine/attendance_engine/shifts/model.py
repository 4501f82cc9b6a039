from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Optional

from ..core.constants import (
    DEFAULT_EARLY_DEPARTURE_THRESHOLD_MINUTES,
    DEFAULT_FULL_DAY_HOURS,
    DEFAULT_GRACE_MINUTES,
    DEFAULT_HALF_DAY_HOURS,
)


@dataclass(frozen=True)
class Shift:
    """Domain entity: a working shift and its attendance thresholds."""

    shift_id: Optional[int]
    shift_name: str
    start_time: time
    end_time: time
    grace_period_minutes: int = DEFAULT_GRACE_MINUTES
    early_departure_threshold_minutes: int = DEFAULT_EARLY_DEPARTURE_THRESHOLD_MINUTES
    full_day_hours: float = DEFAULT_FULL_DAY_HOURS
    half_day_hours: float = DEFAULT_HALF_DAY_HOURS
    is_default: bool = False


def _parse_hhmm(value) -> time:
    if isinstance(value, time):
        return value
    return datetime.strptime(str(value).strip(), "%H:%M").time()


def shift_from_config(cfg: dict[str, Any]) -> Shift:
    """Build the fallback shift from the ``DEFAULT_SHIFT`` settings dict."""
    return Shift(
        shift_id=cfg.get("shift_id"),
        shift_name=str(cfg.get("shift_name", "Default")),
        start_time=_parse_hhmm(cfg["start_time"]),
        end_time=_parse_hhmm(cfg["end_time"]),
        grace_period_minutes=int(cfg.get("grace_period_minutes", DEFAULT_GRACE_MINUTES)),
        early_departure_threshold_minutes=int(cfg.get("early_departure_threshold_minutes", DEFAULT_EARLY_DEPARTURE_THRESHOLD_MINUTES)),
        full_day_hours=float(cfg.get("full_day_hours", DEFAULT_FULL_DAY_HOURS)),
        half_day_hours=float(cfg.get("half_day_hours", DEFAULT_HALF_DAY_HOURS)),
        is_default=True,
    )


@dataclass(frozen=True)
class ShiftAssignment:
    employee_id: int
    shift_id: int
    effective_from: date
    effective_to: Optional[date] = None

    def covers(self, work_date: date) -> bool:
        if work_date < self.effective_from:
            return False
        return self.effective_to is None or work_date <= self.effective_to
