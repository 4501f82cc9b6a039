from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Callable, Optional, Sequence

from ..audit.sink import AuditEvent, AuditSink, record_safely
from ..common.datetime_utils import now_local
from ..core.constants import (
    DEFAULT_HISTORY_LIMIT,
    EVENT_BREAK_IN,
    EVENT_BREAK_OUT,
    EVENT_CLOCK_IN,
    EVENT_CLOCK_OUT,
)
from ..core.enums import AttendanceStatus
from ..core.exceptions import NotAllowedError, ValidationError
from ..employees.repository import EmployeeDirectory
from ..shifts.catalog import ShiftCatalog, shift_for_record
from ..workdays.lookup import HolidayLookup
from . import rules
from .calculations import close_break, derive_metrics, total_break_minutes
from .model import AttendanceRecord, BreakSession, validate_record
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class PunchEngine:
    """Clock-in / clock-out / break transitions.

    Every transition is a read-modify-write under ``AttendanceRepository.with_lock`` for the
    (employee, work date) key; the repository's version check catches writers that bypass it.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        shifts: ShiftCatalog,
        calendar: HolidayLookup,
        employees: EmployeeDirectory | None = None,
        *,
        audit: AuditSink | None = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._shifts = shifts
        self._calendar = calendar
        self._employees = employees
        self._audit = audit
        self._clock = clock

    def _require_employee(self, employee_id: int) -> None:
        if self._employees is None:
            return
        employee = self._employees.get_by_id(employee_id)
        if not employee or not employee.is_active:
            raise ValidationError(f"Employee {employee_id} does not exist", code="EmployeeNotFound")

    def _emit(self, action: str, record: AttendanceRecord, actor_user_id: Optional[int], description: str) -> None:
        record_safely(
            self._audit,
            AuditEvent(
                action=action,
                employee_id=record.employee_id,
                record_id=record.record_id,
                actor_user_id=actor_user_id,
                description=description,
                new_values=record.to_dict(),
            ),
        )

    def _save(self, record: AttendanceRecord, *, now: datetime) -> AttendanceRecord:
        validate_record(record, now=now)
        return self._attendance.upsert(record)

    def clock_in(
        self,
        employee_id: int,
        at: datetime | None = None,
        location_info: dict[str, Any] | None = None,
        *,
        actor_user_id: int | None = None,
    ) -> AttendanceRecord:
        at = at or self._clock()
        work_date = at.date()
        self._require_employee(employee_id)

        with self._attendance.with_lock(employee_id, work_date):
            existing = self._attendance.get(employee_id, work_date)
            rules.require(rules.can_clock_in(existing))
            if not self._calendar.is_working_day(employee_id, work_date):
                raise NotAllowedError(f"{work_date.isoformat()} is not a working day", code="NotAllowedToday")

            shift = self._shifts.resolve_shift(employee_id, work_date)
            base = existing or AttendanceRecord(employee_id=employee_id, work_date=work_date, created_by=actor_user_id)
            record = derive_metrics(
                replace(
                    base,
                    shift_id=shift.shift_id,
                    clock_in=at,
                    clock_out=None,
                    break_sessions=(),
                    status=AttendanceStatus.PRESENT,
                    status_reason=None,
                    half_day_type=None,
                    location=location_info,
                    updated_by=actor_user_id,
                ),
                shift,
            )
            saved = self._save(record, now=at)

        logger.debug("Clock-in employee=%s at=%s late=%s", employee_id, at, saved.late_minutes)
        description = f"Clocked in at {at:%H:%M}" + (f", late by {saved.late_minutes} min" if saved.is_late else "")
        self._emit(EVENT_CLOCK_IN, saved, actor_user_id, description)
        return saved

    def clock_out(self, employee_id: int, at: datetime | None = None, *, actor_user_id: int | None = None) -> AttendanceRecord:
        at = at or self._clock()
        work_date = at.date()

        with self._attendance.with_lock(employee_id, work_date):
            record = self._attendance.get(employee_id, work_date)
            rules.require(rules.can_clock_out(record, at))
            shift = shift_for_record(self._shifts, record)
            updated = derive_metrics(replace(record, clock_out=at, updated_by=actor_user_id), shift)
            saved = self._save(updated, now=at)

        self._emit(EVENT_CLOCK_OUT, saved, actor_user_id, f"Clocked out at {at:%H:%M}, worked {saved.work_hours}h")
        return saved

    def start_break(self, employee_id: int, at: datetime | None = None, *, actor_user_id: int | None = None) -> AttendanceRecord:
        at = at or self._clock()
        work_date = at.date()

        with self._attendance.with_lock(employee_id, work_date):
            record = self._attendance.get(employee_id, work_date)
            rules.require(rules.can_start_break(record, at))
            saved = self._attendance.append_break(
                employee_id=employee_id,
                work_date=work_date,
                session=BreakSession(break_in=at),
                expected_version=record.version,
            )

        self._emit(EVENT_BREAK_IN, saved, actor_user_id, f"Break started at {at:%H:%M}")
        return saved

    def end_break(self, employee_id: int, at: datetime | None = None, *, actor_user_id: int | None = None) -> AttendanceRecord:
        at = at or self._clock()
        work_date = at.date()

        with self._attendance.with_lock(employee_id, work_date):
            record = self._attendance.get(employee_id, work_date)
            rules.require(rules.can_end_break(record, at))
            idx = rules.open_break_index(record)
            sessions = list(record.break_sessions)
            sessions[idx] = close_break(sessions[idx], at)
            updated = replace(
                record,
                break_sessions=tuple(sessions),
                total_break_minutes=total_break_minutes(sessions),
                updated_by=actor_user_id,
            )
            saved = self._save(updated, now=at)

        duration = saved.break_sessions[idx].duration_minutes
        self._emit(EVENT_BREAK_OUT, saved, actor_user_id, f"Break ended at {at:%H:%M} ({duration} min)")
        return saved

    def get_today_record(self, employee_id: int, work_date: date | None = None) -> Optional[AttendanceRecord]:
        work_date = work_date or self._clock().date()
        return self._attendance.get(employee_id, work_date)

    def get_history(self, employee_id: int, *, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[AttendanceRecord]:
        return self._attendance.list_recent(employee_id, limit)

    def get_punch_state(self, employee_id: int, now: datetime | None = None) -> dict[str, Any]:
        """Current state plus which punches are allowed right now and why not."""

        now = now or self._clock()
        record = self._attendance.get(employee_id, now.date())
        actions = rules.allowed_actions(record, now)
        if actions["clock_in"].allowed and not self._calendar.is_working_day(employee_id, now.date()):
            actions["clock_in"] = rules.RuleCheck(allowed=False, code="NotAllowedToday", reason="Not a working day")
        return {
            "state": rules.current_state(record).value,
            "record": record.to_dict() if record else None,
            "actions": {name: check.to_dict() for name, check in actions.items()},
        }
