"""Pure decisions behind the finalization passes.

The passes apply these under the record's key lock; the status queries call them
without writing anything, so both always agree on what a pass would do.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

from ..attendance.model import AttendanceRecord
from ..attendance.strategies.base import StatusDecision
from ..common.datetime_utils import shift_bounds
from ..core.constants import REASON_MISSING_CLOCK_OUT, REASON_NO_CLOCK_IN
from ..core.enums import AttendanceStatus, JobAction
from ..shifts.model import Shift
from .model import PlannedChange

_CLASSIFIABLE = {AttendanceStatus.PRESENT, AttendanceStatus.HALF_DAY, AttendanceStatus.INCOMPLETE}


def finalization_cutoff(shift: Shift, work_date: date, grace_minutes: int) -> datetime:
    """Earliest moment an open clock-in may be marked incomplete."""
    _, shift_end = shift_bounds(work_date, shift.start_time, shift.end_time)
    return shift_end + timedelta(minutes=int(grace_minutes))


def plan_absent(record: Optional[AttendanceRecord], *, working_day: bool) -> Optional[PlannedChange]:
    if not working_day:
        return None
    if record is not None and (
        record.clock_in is not None or record.status in (AttendanceStatus.LEAVE, AttendanceStatus.ABSENT)
    ):
        return None
    return PlannedChange(JobAction.MARKED_ABSENT, AttendanceStatus.ABSENT, REASON_NO_CLOCK_IN)


def plan_incomplete(record: Optional[AttendanceRecord], *, now: datetime, cutoff: datetime) -> Optional[PlannedChange]:
    if record is None or record.clock_in is None or record.clock_out is not None:
        return None
    if record.status == AttendanceStatus.INCOMPLETE or now < cutoff:
        return None
    return PlannedChange(JobAction.MARKED_INCOMPLETE, AttendanceStatus.INCOMPLETE, REASON_MISSING_CLOCK_OUT)


def is_classifiable(record: Optional[AttendanceRecord]) -> bool:
    return (
        record is not None
        and record.clock_in is not None
        and record.clock_out is not None
        and record.status in _CLASSIFIABLE
    )


def plan_classification(record: AttendanceRecord, decision: StatusDecision) -> Optional[PlannedChange]:
    if decision.status == record.status and decision.half_day_type == record.half_day_type:
        return None
    if decision.status == AttendanceStatus.PRESENT:
        action = JobAction.CLASSIFIED_PRESENT
    else:
        action = JobAction.CLASSIFIED_HALF_DAY
    return PlannedChange(action, decision.status, decision.reason, decision.half_day_type)
