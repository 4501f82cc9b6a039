from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles used for authorization checks."""

    EMPLOYEE = "employee"
    HR_ADMIN = "hr_admin"
    SUPER_ADMIN = "super_admin"

    @property
    def is_privileged(self) -> bool:
        return self in {Role.HR_ADMIN, Role.SUPER_ADMIN}


class AttendanceStatus(str, Enum):
    """Daily status stored on an attendance record."""

    PRESENT = "present"
    HALF_DAY = "half_day"
    INCOMPLETE = "incomplete"
    LEAVE = "leave"
    ABSENT = "absent"


class HalfDayType(str, Enum):
    FIRST_HALF = "first_half"
    SECOND_HALF = "second_half"


class CorrectionStatus(str, Enum):
    """Correction request lifecycle (none -> pending -> approved/rejected)."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CorrectionAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class PunchState(str, Enum):
    """Live state of an employee's working day."""

    NOT_CLOCKED_IN = "not_clocked_in"
    WORKING = "working"
    ON_BREAK = "on_break"
    CLOCKED_OUT = "clocked_out"


class DayStatus(str, Enum):
    """Calendar classification of a date for one employee.

    Priority when several apply: WEEKEND > HOLIDAY > LEAVE > WORKING_DAY.
    """

    WEEKEND = "weekend"
    HOLIDAY = "holiday"
    LEAVE = "leave"
    WORKING_DAY = "working_day"


class JobAction(str, Enum):
    """Actions reported by finalization passes."""

    MARKED_ABSENT = "MARKED_ABSENT"
    MARKED_INCOMPLETE = "MARKED_INCOMPLETE"
    CLASSIFIED_PRESENT = "CLASSIFIED_PRESENT"
    CLASSIFIED_HALF_DAY = "CLASSIFIED_HALF_DAY"
