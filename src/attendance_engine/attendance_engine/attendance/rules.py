"""Pure predicates over an attendance record.

Nothing here touches storage; PunchEngine turns a failed check into the matching
DomainError and the punch-state endpoint reports the same checks as allowed actions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import AttendanceStatus, PunchState
from ..core.exceptions import DomainError, NotAllowedError, PreconditionError, ValidationError
from .model import AttendanceRecord, BreakSession

_ERROR_BY_CODE: dict[str, type[DomainError]] = {
    "OnLeave": NotAllowedError,
    "InvalidPunchTime": ValidationError,
}


@dataclass(frozen=True)
class RuleCheck:
    allowed: bool
    code: Optional[str] = None
    reason: Optional[str] = None

    def to_error(self) -> DomainError:
        error_cls = _ERROR_BY_CODE.get(self.code or "", PreconditionError)
        return error_cls(self.reason or "Action not allowed", code=self.code)

    def to_dict(self) -> dict:
        return {"allowed": self.allowed, "code": self.code, "reason": self.reason}


ALLOWED = RuleCheck(allowed=True)


def _deny(code: str, reason: str) -> RuleCheck:
    return RuleCheck(allowed=False, code=code, reason=reason)


def require(check: RuleCheck) -> None:
    if not check.allowed:
        raise check.to_error()


def open_break_index(record: Optional[AttendanceRecord]) -> Optional[int]:
    if record is None:
        return None
    for idx, session in enumerate(record.break_sessions):
        if session.is_open:
            return idx
    return None


def open_break(record: Optional[AttendanceRecord]) -> Optional[BreakSession]:
    idx = open_break_index(record)
    return record.break_sessions[idx] if idx is not None else None


def is_clocked_in(record: Optional[AttendanceRecord]) -> bool:
    return record is not None and record.clock_in is not None


def current_state(record: Optional[AttendanceRecord]) -> PunchState:
    if not is_clocked_in(record):
        return PunchState.NOT_CLOCKED_IN
    if record.clock_out is not None:
        return PunchState.CLOCKED_OUT
    if open_break(record) is not None:
        return PunchState.ON_BREAK
    return PunchState.WORKING


def can_clock_in(record: Optional[AttendanceRecord]) -> RuleCheck:
    if record is None:
        return ALLOWED
    if record.clock_in is not None:
        return _deny("AlreadyClockedIn", "Already clocked in today")
    if record.status == AttendanceStatus.LEAVE:
        return _deny("OnLeave", "On approved leave today")
    return ALLOWED


def can_clock_out(record: Optional[AttendanceRecord], at: Optional[datetime] = None) -> RuleCheck:
    if not is_clocked_in(record):
        return _deny("NotClockedIn", "Not clocked in today")
    if record.clock_out is not None:
        return _deny("AlreadyClockedOut", "Already clocked out today")
    if open_break(record) is not None:
        return _deny("OpenBreakMustEndFirst", "End the current break before clocking out")
    if at is not None and at <= record.clock_in:
        return _deny("InvalidPunchTime", "Clock-out must be after clock-in")
    return ALLOWED


def can_start_break(record: Optional[AttendanceRecord], at: Optional[datetime] = None) -> RuleCheck:
    if not is_clocked_in(record):
        return _deny("CannotStartBreak", "Clock in before starting a break")
    if record.clock_out is not None:
        return _deny("CannotStartBreak", "Already clocked out today")
    if open_break(record) is not None:
        return _deny("CannotStartBreak", "A break is already in progress")
    if at is not None and at < record.clock_in:
        return _deny("CannotStartBreak", "Break cannot start before clock-in")
    return ALLOWED


def can_end_break(record: Optional[AttendanceRecord], at: Optional[datetime] = None) -> RuleCheck:
    session = open_break(record)
    if session is None:
        return _deny("NoActiveBreak", "No active break to end")
    if at is not None and at < session.break_in:
        return _deny("InvalidPunchTime", "Break cannot end before it starts")
    return ALLOWED


def allowed_actions(record: Optional[AttendanceRecord], at: Optional[datetime] = None) -> dict[str, RuleCheck]:
    return {
        "clock_in": can_clock_in(record),
        "clock_out": can_clock_out(record, at),
        "start_break": can_start_break(record, at),
        "end_break": can_end_break(record, at),
    }
