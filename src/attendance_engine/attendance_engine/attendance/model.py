from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from ..core.enums import AttendanceStatus, CorrectionStatus, HalfDayType
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class BreakSession:
    break_in: datetime
    break_out: Optional[datetime] = None
    duration_minutes: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.break_out is None


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one employee's attendance for one business day.

    Values are immutable; every transition builds a new record with ``dataclasses.replace``.
    ``version`` is bumped by the repository on each successful write.
    """

    employee_id: int
    work_date: date
    record_id: Optional[int] = None
    shift_id: Optional[int] = None

    clock_in: Optional[datetime] = None
    clock_out: Optional[datetime] = None
    break_sessions: tuple[BreakSession, ...] = ()
    total_break_minutes: int = 0
    total_worked_minutes: Optional[int] = None
    work_hours: Optional[float] = None

    is_late: bool = False
    late_minutes: int = 0
    is_early_departure: bool = False
    early_exit_minutes: int = 0
    overtime_minutes: int = 0

    status: AttendanceStatus = AttendanceStatus.PRESENT
    status_reason: Optional[str] = None
    half_day_type: Optional[HalfDayType] = None

    correction_requested: bool = False
    correction_reason: Optional[str] = None
    correction_status: Optional[CorrectionStatus] = None
    corrected_by: Optional[int] = None
    corrected_at: Optional[datetime] = None

    location: Optional[dict[str, Any]] = None
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    version: int = 0

    @property
    def key(self) -> tuple[int, date]:
        return self.employee_id, self.work_date

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly view used by controllers and job reports."""

        def _ts(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "record_id": self.record_id,
            "employee_id": self.employee_id,
            "work_date": self.work_date.isoformat(),
            "shift_id": self.shift_id,
            "clock_in": _ts(self.clock_in),
            "clock_out": _ts(self.clock_out),
            "break_sessions": [
                {
                    "break_in": _ts(b.break_in),
                    "break_out": _ts(b.break_out),
                    "duration_minutes": b.duration_minutes,
                }
                for b in self.break_sessions
            ],
            "total_break_minutes": self.total_break_minutes,
            "total_worked_minutes": self.total_worked_minutes,
            "work_hours": self.work_hours,
            "is_late": self.is_late,
            "late_minutes": self.late_minutes,
            "is_early_departure": self.is_early_departure,
            "early_exit_minutes": self.early_exit_minutes,
            "overtime_minutes": self.overtime_minutes,
            "status": self.status.value,
            "status_reason": self.status_reason,
            "half_day_type": self.half_day_type.value if self.half_day_type else None,
            "correction_requested": self.correction_requested,
            "correction_reason": self.correction_reason,
            "correction_status": self.correction_status.value if self.correction_status else None,
            "corrected_by": self.corrected_by,
            "corrected_at": _ts(self.corrected_at),
            "location": self.location,
            "version": self.version,
        }


def _invalid(message: str, code: str = "InvalidRecord") -> ValidationError:
    return ValidationError(message, code=code)


def validate_record(record: AttendanceRecord, *, now: Optional[datetime] = None) -> None:
    """Raise ValidationError if ``record`` breaks a structural invariant.

    Checked before every repository write, so no path can persist an inconsistent record.
    """

    if record.clock_out is not None:
        if record.clock_in is None:
            raise _invalid("Clock-out recorded without a clock-in", "InvalidPunchTime")
        if record.clock_out <= record.clock_in:
            raise _invalid("Clock-out must be after clock-in", "InvalidPunchTime")

    open_breaks = [b for b in record.break_sessions if b.is_open]
    if len(open_breaks) > 1:
        raise _invalid("More than one open break")
    if open_breaks and record.clock_out is not None:
        raise _invalid("Break still open after clock-out")

    upper = record.clock_out or now
    for session in record.break_sessions:
        if record.clock_in is None or session.break_in < record.clock_in:
            raise _invalid("Break starts before clock-in", "InvalidPunchTime")
        if session.break_out is not None and session.break_out < session.break_in:
            raise _invalid("Break ends before it starts", "InvalidPunchTime")
        end = session.break_out or session.break_in
        if upper is not None and end > upper:
            raise _invalid("Break extends past clock-out", "InvalidPunchTime")

    if (record.status == AttendanceStatus.HALF_DAY) != (record.half_day_type is not None):
        raise _invalid("Half-day type must be set exactly when status is half_day")

    if record.correction_status == CorrectionStatus.PENDING and not record.correction_requested:
        raise _invalid("Pending correction without a correction request")
