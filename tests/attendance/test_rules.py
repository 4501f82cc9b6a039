from __future__ import annotations

import pytest

from conftest import WORK_DATE, at
from src.attendance_engine.attendance_engine.attendance import rules
from src.attendance_engine.attendance_engine.attendance.model import AttendanceRecord, BreakSession, validate_record
from src.attendance_engine.attendance_engine.core.enums import (
    AttendanceStatus,
    CorrectionStatus,
    HalfDayType,
    PunchState,
)
from src.attendance_engine.attendance_engine.core.exceptions import (
    NotAllowedError,
    PreconditionError,
    ValidationError,
)


def _record(**kwargs) -> AttendanceRecord:
    return AttendanceRecord(employee_id=1, work_date=WORK_DATE, **kwargs)


def test_states_follow_punches():
    assert rules.current_state(None) == PunchState.NOT_CLOCKED_IN
    working = _record(clock_in=at(9, 0))
    assert rules.current_state(working) == PunchState.WORKING
    on_break = _record(clock_in=at(9, 0), break_sessions=(BreakSession(break_in=at(12, 0)),))
    assert rules.current_state(on_break) == PunchState.ON_BREAK
    done = _record(clock_in=at(9, 0), clock_out=at(18, 0))
    assert rules.current_state(done) == PunchState.CLOCKED_OUT


def test_clock_in_denied_when_already_clocked_in_or_on_leave():
    check = rules.can_clock_in(_record(clock_in=at(9, 0)))
    assert not check.allowed and check.code == "AlreadyClockedIn"
    assert isinstance(check.to_error(), PreconditionError)

    leave = rules.can_clock_in(_record(status=AttendanceStatus.LEAVE))
    assert leave.code == "OnLeave"
    assert isinstance(leave.to_error(), NotAllowedError)

    assert rules.can_clock_in(_record(status=AttendanceStatus.ABSENT)).allowed


def test_clock_out_checks_in_order():
    assert rules.can_clock_out(None).code == "NotClockedIn"
    assert rules.can_clock_out(_record(clock_in=at(9, 0), clock_out=at(17, 0))).code == "AlreadyClockedOut"
    on_break = _record(clock_in=at(9, 0), break_sessions=(BreakSession(break_in=at(12, 0)),))
    assert rules.can_clock_out(on_break).code == "OpenBreakMustEndFirst"

    bad_time = rules.can_clock_out(_record(clock_in=at(9, 0)), at(9, 0))
    assert bad_time.code == "InvalidPunchTime"
    assert isinstance(bad_time.to_error(), ValidationError)


def test_break_checks():
    working = _record(clock_in=at(9, 0))
    assert rules.can_start_break(working, at(12, 0)).allowed
    assert rules.can_start_break(working, at(8, 0)).code == "CannotStartBreak"
    assert rules.can_start_break(None).code == "CannotStartBreak"
    assert rules.can_end_break(working).code == "NoActiveBreak"

    on_break = _record(clock_in=at(9, 0), break_sessions=(BreakSession(break_in=at(12, 0)),))
    assert rules.can_start_break(on_break).code == "CannotStartBreak"
    assert rules.can_end_break(on_break, at(11, 59)).code == "InvalidPunchTime"
    assert rules.can_end_break(on_break, at(12, 30)).allowed


def test_require_raises_mapped_error():
    with pytest.raises(PreconditionError) as exc:
        rules.require(rules.can_end_break(None))
    assert exc.value.code == "NoActiveBreak"


@pytest.mark.parametrize(
    "record",
    [
        _record(clock_out=at(17, 0)),
        _record(clock_in=at(9, 0), clock_out=at(9, 0)),
        _record(
            clock_in=at(9, 0),
            break_sessions=(BreakSession(break_in=at(10, 0)), BreakSession(break_in=at(11, 0))),
        ),
        _record(clock_in=at(9, 0), clock_out=at(17, 0), break_sessions=(BreakSession(break_in=at(12, 0)),)),
        _record(clock_in=at(9, 0), break_sessions=(BreakSession(break_in=at(8, 30), break_out=at(8, 45)),)),
        _record(status=AttendanceStatus.HALF_DAY),
        _record(status=AttendanceStatus.PRESENT, half_day_type=HalfDayType.FIRST_HALF),
        _record(correction_status=CorrectionStatus.PENDING),
    ],
)
def test_validate_record_rejects_broken_invariants(record):
    with pytest.raises(ValidationError):
        validate_record(record)


def test_validate_record_accepts_consistent_record():
    record = _record(
        clock_in=at(9, 0),
        clock_out=at(17, 0),
        break_sessions=(BreakSession(break_in=at(12, 0), break_out=at(12, 30), duration_minutes=30),),
        status=AttendanceStatus.HALF_DAY,
        half_day_type=HalfDayType.FIRST_HALF,
        correction_requested=True,
        correction_status=CorrectionStatus.PENDING,
    )
    validate_record(record)
