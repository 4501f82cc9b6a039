from __future__ import annotations

from datetime import date
from typing import Iterable, Protocol

from ..core.constants import DEFAULT_WEEKLY_OFF_DAYS
from ..core.enums import DayStatus


class HolidayLookup(Protocol):
    def is_working_day(self, employee_id: int, work_date: date) -> bool:
        """False for holidays, weekly off days and approved leave."""

        raise NotImplementedError


class HolidaySource(Protocol):
    def is_holiday(self, work_date: date) -> bool:
        raise NotImplementedError


class LeaveSource(Protocol):
    def is_on_approved_leave(self, employee_id: int, work_date: date) -> bool:
        raise NotImplementedError


class WorkingCalendar(HolidayLookup):
    """Weekly off days + holiday table + approved leave.

    Priority: Weekend > Holiday > Leave > Working day.
    """

    def __init__(
        self,
        holidays: HolidaySource,
        leaves: LeaveSource,
        *,
        weekly_off_days: Iterable[int] = DEFAULT_WEEKLY_OFF_DAYS,
    ):
        self._holidays = holidays
        self._leaves = leaves
        self._weekly_off_days = frozenset(int(d) for d in weekly_off_days)

    def day_status(self, employee_id: int, work_date: date) -> DayStatus:
        if work_date.weekday() in self._weekly_off_days:
            return DayStatus.WEEKEND
        if self._holidays.is_holiday(work_date):
            return DayStatus.HOLIDAY
        if self._leaves.is_on_approved_leave(employee_id, work_date):
            return DayStatus.LEAVE
        return DayStatus.WORKING_DAY

    def is_working_day(self, employee_id: int, work_date: date) -> bool:
        return self.day_status(employee_id, work_date) == DayStatus.WORKING_DAY
