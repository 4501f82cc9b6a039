from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from ..common.datetime_utils import floor_minutes, shift_bounds
from ..core.enums import HalfDayType
from ..shifts.model import Shift
from .model import AttendanceRecord, BreakSession


def late_threshold(shift: Shift, work_date: date) -> datetime:
    shift_start, _ = shift_bounds(work_date, shift.start_time, shift.end_time)
    return shift_start + timedelta(minutes=int(shift.grace_period_minutes or 0))


def early_departure_threshold(shift: Shift, work_date: date) -> datetime:
    _, shift_end = shift_bounds(work_date, shift.start_time, shift.end_time)
    return shift_end - timedelta(minutes=int(shift.early_departure_threshold_minutes or 0))


def is_late(shift: Shift, work_date: date, at: datetime) -> bool:
    return at > late_threshold(shift, work_date)


def late_minutes(shift: Shift, work_date: date, at: datetime) -> int:
    """Whole minutes past the late threshold (shift start + grace); 0 when on time."""
    if not is_late(shift, work_date, at):
        return 0
    return floor_minutes(at - late_threshold(shift, work_date))


def is_early_departure(shift: Shift, work_date: date, at: datetime) -> bool:
    return at < early_departure_threshold(shift, work_date)


def early_exit_minutes(shift: Shift, work_date: date, at: datetime) -> int:
    """Whole minutes before shift end, counted only below the early-departure threshold."""
    if not is_early_departure(shift, work_date, at):
        return 0
    _, shift_end = shift_bounds(work_date, shift.start_time, shift.end_time)
    return floor_minutes(shift_end - at)


def break_duration(session: BreakSession) -> int:
    if session.break_out is None:
        return 0
    return max(0, floor_minutes(session.break_out - session.break_in))


def close_break(session: BreakSession, at: datetime) -> BreakSession:
    closed = replace(session, break_out=at)
    return replace(closed, duration_minutes=break_duration(closed))


def total_break_minutes(sessions: Iterable[BreakSession]) -> int:
    return sum(s.duration_minutes or 0 for s in sessions if s.break_out is not None)


def worked_minutes(clock_in: datetime, clock_out: datetime, break_minutes: int) -> int:
    return max(0, floor_minutes(clock_out - clock_in) - int(break_minutes))


def to_work_hours(minutes: int) -> float:
    return round(minutes / 60.0, 2)


def overtime_minutes(shift: Shift, minutes: int) -> int:
    return max(0, int(minutes - float(shift.full_day_hours) * 60))


def shift_midpoint(shift: Shift, work_date: date) -> datetime:
    shift_start, shift_end = shift_bounds(work_date, shift.start_time, shift.end_time)
    return shift_start + (shift_end - shift_start) / 2


def half_day_type_for(shift: Shift, work_date: date, clock_in: datetime) -> HalfDayType:
    if clock_in <= shift_midpoint(shift, work_date):
        return HalfDayType.FIRST_HALF
    return HalfDayType.SECOND_HALF


def derive_metrics(record: AttendanceRecord, shift: Optional[Shift]) -> AttendanceRecord:
    """Recompute every punch-derived field of ``record`` from its stored times.

    Status and ``shift_id`` are left alone; classification is a separate step and
    the shift is pinned by clock-in or an explicit correction.
    """

    sessions = tuple(
        replace(s, duration_minutes=break_duration(s)) if s.break_out is not None else s
        for s in record.break_sessions
    )
    breaks = total_break_minutes(sessions)

    late, late_flag = 0, False
    if record.clock_in is not None and shift is not None:
        late = late_minutes(shift, record.work_date, record.clock_in)
        late_flag = is_late(shift, record.work_date, record.clock_in)

    updated = replace(
        record,
        break_sessions=sessions,
        total_break_minutes=breaks,
        is_late=late_flag,
        late_minutes=late,
    )

    if record.clock_in is None or record.clock_out is None:
        return replace(
            updated,
            total_worked_minutes=None,
            work_hours=None,
            is_early_departure=False,
            early_exit_minutes=0,
            overtime_minutes=0,
        )

    minutes = worked_minutes(record.clock_in, record.clock_out, breaks)
    early, early_flag = 0, False
    if shift is not None:
        early = early_exit_minutes(shift, record.work_date, record.clock_out)
        early_flag = is_early_departure(shift, record.work_date, record.clock_out)
    return replace(
        updated,
        total_worked_minutes=minutes,
        work_hours=to_work_hours(minutes),
        is_early_departure=early_flag,
        early_exit_minutes=early,
        overtime_minutes=overtime_minutes(shift, minutes) if shift is not None else 0,
    )
