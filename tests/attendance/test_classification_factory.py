from __future__ import annotations

import pytest

from conftest import WORK_DATE, at
from src.attendance_engine.attendance_engine.attendance.factory import ClassificationStrategyFactory
from src.attendance_engine.attendance_engine.attendance.model import AttendanceRecord
from src.attendance_engine.attendance_engine.attendance.strategies.below_half_day_strategy import BelowHalfDayStrategy
from src.attendance_engine.attendance_engine.attendance.strategies.full_day_strategy import FullDayStrategy
from src.attendance_engine.attendance_engine.attendance.strategies.half_day_strategy import HalfDayStrategy
from src.attendance_engine.attendance_engine.core.enums import AttendanceStatus, HalfDayType
from src.attendance_engine.attendance_engine.core.exceptions import PreconditionError


def _punched(clock_in, clock_out) -> AttendanceRecord:
    return AttendanceRecord(employee_id=1, work_date=WORK_DATE, clock_in=clock_in, clock_out=clock_out)


@pytest.mark.parametrize(
    "hours, expected",
    [(9.0, FullDayStrategy), (8.0, FullDayStrategy), (7.99, HalfDayStrategy), (4.0, HalfDayStrategy), (3.5, BelowHalfDayStrategy)],
)
def test_strategy_selected_by_worked_hours(office_shift, hours, expected):
    record = AttendanceRecord(employee_id=1, work_date=WORK_DATE, work_hours=hours)
    strategy = ClassificationStrategyFactory().for_record(record=record, shift=office_shift)
    assert isinstance(strategy, expected)


def test_full_day_is_present(office_shift):
    decision = ClassificationStrategyFactory().classify(record=_punched(at(9, 0), at(17, 30)), shift=office_shift)
    assert decision.status == AttendanceStatus.PRESENT
    assert decision.half_day_type is None


def test_morning_half_day(office_shift):
    decision = ClassificationStrategyFactory().classify(record=_punched(at(9, 0), at(15, 0)), shift=office_shift)
    assert decision.status == AttendanceStatus.HALF_DAY
    assert decision.half_day_type == HalfDayType.FIRST_HALF


def test_afternoon_half_day(office_shift):
    decision = ClassificationStrategyFactory().classify(record=_punched(at(14, 0), at(18, 0)), shift=office_shift)
    assert decision.status == AttendanceStatus.HALF_DAY
    assert decision.half_day_type == HalfDayType.SECOND_HALF


def test_short_day_is_still_half_day(office_shift):
    decision = ClassificationStrategyFactory().classify(record=_punched(at(9, 0), at(10, 0)), shift=office_shift)
    assert decision.status == AttendanceStatus.HALF_DAY
    assert decision.half_day_type == HalfDayType.FIRST_HALF


def test_missing_punch_cannot_be_classified(office_shift):
    with pytest.raises(PreconditionError):
        ClassificationStrategyFactory().classify(record=_punched(at(9, 0), None), shift=office_shift)
