from __future__ import annotations

from datetime import date

from src.attendance_engine.attendance_engine.core.enums import DayStatus
from src.attendance_engine.attendance_engine.workdays.lookup import WorkingCalendar

SATURDAY = date(2026, 2, 7)
WEDNESDAY = date(2026, 2, 4)
THURSDAY = date(2026, 2, 5)


class Holidays:
    def __init__(self, *days):
        self.days = set(days)

    def is_holiday(self, work_date):
        return work_date in self.days


class Leaves:
    def __init__(self, *entries):
        self.entries = set(entries)

    def is_on_approved_leave(self, employee_id, work_date):
        return (employee_id, work_date) in self.entries


def test_weekend_beats_holiday_and_leave():
    cal = WorkingCalendar(Holidays(SATURDAY), Leaves((1, SATURDAY)))
    assert cal.day_status(1, SATURDAY) == DayStatus.WEEKEND
    assert not cal.is_working_day(1, SATURDAY)


def test_holiday_then_leave_then_working_day():
    cal = WorkingCalendar(Holidays(WEDNESDAY), Leaves((1, WEDNESDAY), (1, THURSDAY)))
    assert cal.day_status(1, WEDNESDAY) == DayStatus.HOLIDAY
    assert cal.day_status(1, THURSDAY) == DayStatus.LEAVE
    assert cal.day_status(2, THURSDAY) == DayStatus.WORKING_DAY
    assert cal.is_working_day(2, THURSDAY)


def test_custom_weekly_off_days():
    cal = WorkingCalendar(Holidays(), Leaves(), weekly_off_days=[2])
    assert cal.day_status(1, WEDNESDAY) == DayStatus.WEEKEND
    assert cal.is_working_day(1, SATURDAY)
