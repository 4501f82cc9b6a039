from __future__ import annotations

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from datetime import date, datetime
from functools import partial
from typing import Any, Callable, Optional, Sequence

from ..attendance import rules
from ..attendance.factory import ClassificationStrategyFactory
from ..attendance.model import AttendanceRecord, validate_record
from ..attendance.repository import AttendanceRepository
from ..audit.sink import AuditEvent, AuditSink, record_safely
from ..common.datetime_utils import now_local
from ..core.constants import (
    DEFAULT_FINALIZATION_GRACE_MINUTES,
    EVENT_AUTO_ABSENT,
    EVENT_CLASSIFIED,
    EVENT_CORRECTION_REQUIRED,
)
from ..core.enums import AttendanceStatus
from ..core.exceptions import DomainError, NotAllowedError, NotFoundError
from ..employees.model import Employee
from ..employees.repository import EmployeeDirectory
from ..notifications.notifier import Notifier, notify_safely
from ..shifts.catalog import ShiftCatalog, shift_for_record
from ..shifts.model import Shift
from ..workdays.lookup import HolidayLookup
from .guard import LocalRunGuard, RunGuard
from .model import JobError, JobItem, JobReport, PlannedChange
from .planning import (
    finalization_cutoff,
    is_classifiable,
    plan_absent,
    plan_classification,
    plan_incomplete,
)

logger = logging.getLogger(__name__)

Unit = tuple[int, Callable[[], list[JobItem]]]


class FinalizationJob:
    """End-of-day batch passes over attendance records.

    Passes are idempotent: rerunning one only reports records whose status actually changes.
    Each employee is re-read under its key lock right before writing, so a punch that lands
    mid-batch is never overwritten. One failing employee is reported in ``errors`` and the
    batch carries on. ``run_guard`` keeps a second run from starting while one is active;
    the MySQL guard extends that to every process sharing the database.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        employees: EmployeeDirectory,
        shifts: ShiftCatalog,
        calendar: HolidayLookup,
        *,
        notifier: Notifier | None = None,
        audit: AuditSink | None = None,
        strategy_factory: ClassificationStrategyFactory | None = None,
        run_guard: RunGuard | None = None,
        grace_minutes: int = DEFAULT_FINALIZATION_GRACE_MINUTES,
        max_workers: int = 1,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._employees = employees
        self._shifts = shifts
        self._calendar = calendar
        self._notifier = notifier
        self._audit = audit
        self._factory = strategy_factory or ClassificationStrategyFactory()
        self._guard = run_guard or LocalRunGuard()
        self._grace_minutes = int(grace_minutes)
        self._max_workers = max(1, int(max_workers))
        self._clock = clock

    def check_absent(self, work_date: date | None = None, *, should_stop: Callable[[], bool] | None = None) -> JobReport:
        work_date = work_date or self._clock().date()
        units = [
            (e.employee_id, partial(self._absent_for, e.employee_id, e.full_name, work_date))
            for e in self._employees.list_active()
        ]
        return self._run(f"check-absent {work_date.isoformat()}", units, should_stop)

    def mark_incomplete(
        self,
        work_date: date | None = None,
        now: datetime | None = None,
        *,
        should_stop: Callable[[], bool] | None = None,
    ) -> JobReport:
        now = now or self._clock()
        work_date = work_date or now.date()
        names = self._names()
        units = [
            (r.employee_id, partial(self._incomplete_for, r.employee_id, names.get(r.employee_id, ""), work_date, now))
            for r in self._records(work_date)
            if r.clock_in is not None and r.clock_out is None
        ]
        return self._run(f"mark-incomplete {work_date.isoformat()}", units, should_stop)

    def classify(self, work_date: date | None = None, *, should_stop: Callable[[], bool] | None = None) -> JobReport:
        work_date = work_date or self._clock().date()
        names = self._names()
        units = [
            (r.employee_id, partial(self._classify_for, r.employee_id, names.get(r.employee_id, ""), work_date))
            for r in self._records(work_date)
            if r.clock_in is not None and r.clock_out is not None
        ]
        return self._run(f"classify {work_date.isoformat()}", units, should_stop)

    def finalize(
        self,
        work_date: date | None = None,
        now: datetime | None = None,
        *,
        should_stop: Callable[[], bool] | None = None,
    ) -> JobReport:
        """Completion and classification in one guarded run."""

        now = now or self._clock()
        work_date = work_date or now.date()
        names = self._names()

        def _both(employee_id: int, name: str) -> list[JobItem]:
            items = self._incomplete_for(employee_id, name, work_date, now)
            return items + self._classify_for(employee_id, name, work_date)

        units = [
            (r.employee_id, partial(_both, r.employee_id, names.get(r.employee_id, "")))
            for r in self._records(work_date)
            if r.clock_in is not None
        ]
        return self._run(f"finalize {work_date.isoformat()}", units, should_stop)

    def employee_status(
        self,
        employee_id: int,
        work_date: date | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Where one employee's day stands and what the next pass would change. Read-only."""

        now = now or self._clock()
        work_date = work_date or now.date()
        employee = self._employees.get_by_id(employee_id)
        if employee is None:
            raise NotFoundError(f"Employee {employee_id} does not exist", code="EmployeeNotFound")
        return self._status_for(employee, self._attendance.get(employee_id, work_date), work_date, now)

    def finalization_status(self, work_date: date | None = None, now: datetime | None = None) -> dict[str, Any]:
        """Day-wide summary: how many records each pass would still change."""

        now = now or self._clock()
        work_date = work_date or now.date()
        records = {r.employee_id: r for r in self._records(work_date)}
        pending: Counter[str] = Counter()
        for employee in self._employees.list_active():
            status = self._status_for(employee, records.get(employee.employee_id), work_date, now)
            if status["next_action"]:
                pending[status["next_action"]["action"]] += 1

        return {
            "work_date": work_date.isoformat(),
            "needs_finalization": bool(pending),
            "pending": dict(sorted(pending.items())),
            "incomplete_records": sum(1 for r in records.values() if r.status == AttendanceStatus.INCOMPLETE),
            "pending_clock_out": sum(1 for r in records.values() if r.clock_in is not None and r.clock_out is None),
        }

    def _status_for(
        self,
        employee: Employee,
        record: Optional[AttendanceRecord],
        work_date: date,
        now: datetime,
    ) -> dict[str, Any]:
        working_day = self._calendar.is_working_day(employee.employee_id, work_date)
        shift = self._shift_or_none(employee.employee_id, work_date, record)
        cutoff = finalization_cutoff(shift, work_date, self._grace_minutes) if shift else None
        planned = self._plan(record, shift, working_day=working_day, now=now, cutoff=cutoff)
        settled = record is not None and (record.clock_in is None or record.clock_out is not None)

        return {
            "employee_id": employee.employee_id,
            "employee_name": employee.full_name,
            "work_date": work_date.isoformat(),
            "working_day": working_day,
            "state": rules.current_state(record).value,
            "status": record.status.value if record else None,
            "status_reason": record.status_reason if record else None,
            "shift_id": shift.shift_id if shift else None,
            "finalization_due_at": cutoff.isoformat() if cutoff else None,
            "shift_finished": cutoff is not None and now >= cutoff,
            "finalized": settled and planned is None and record.status != AttendanceStatus.INCOMPLETE,
            "next_action": planned.to_dict() if planned else None,
        }

    def _shift_or_none(self, employee_id: int, work_date: date, record: Optional[AttendanceRecord]) -> Optional[Shift]:
        try:
            if record is not None and record.clock_in is not None:
                return shift_for_record(self._shifts, record)
            return self._shifts.resolve_shift(employee_id, work_date)
        except NotAllowedError as exc:
            logger.debug("Employee %s has no shift on %s: %s", employee_id, work_date, exc.message)
            return None

    def _plan(
        self,
        record: Optional[AttendanceRecord],
        shift: Optional[Shift],
        *,
        working_day: bool,
        now: datetime,
        cutoff: Optional[datetime],
    ) -> Optional[PlannedChange]:
        if record is None or record.clock_in is None:
            return plan_absent(record, working_day=working_day)
        if record.clock_out is None:
            return plan_incomplete(record, now=now, cutoff=cutoff) if cutoff else None
        if shift is not None and is_classifiable(record):
            return plan_classification(record, self._factory.classify(record=record, shift=shift))
        return None

    def _absent_for(self, employee_id: int, name: str, work_date: date) -> list[JobItem]:
        if not self._calendar.is_working_day(employee_id, work_date):
            return []

        with self._attendance.with_lock(employee_id, work_date):
            record = self._attendance.get(employee_id, work_date)
            planned = plan_absent(record, working_day=True)
            if planned is None:
                return []
            base = record or AttendanceRecord(employee_id=employee_id, work_date=work_date)
            saved = self._attendance.upsert(
                replace(base, status=planned.status, status_reason=planned.status_reason, half_day_type=None)
            )

        notify_safely(
            self._notifier,
            employee_id,
            EVENT_AUTO_ABSENT,
            {"work_date": work_date.isoformat(), "reason": planned.status_reason},
        )
        return [JobItem(employee_id, name, planned.action, planned.status_reason, saved.record_id)]

    def _incomplete_for(self, employee_id: int, name: str, work_date: date, now: datetime) -> list[JobItem]:
        with self._attendance.with_lock(employee_id, work_date):
            record = self._attendance.get(employee_id, work_date)
            if record is None or record.clock_in is None or record.clock_out is not None:
                return []
            cutoff = finalization_cutoff(shift_for_record(self._shifts, record), work_date, self._grace_minutes)
            if now < cutoff:
                logger.debug("Employee %s: shift not over until %s, skipping", employee_id, cutoff)
                return []
            planned = plan_incomplete(record, now=now, cutoff=cutoff)
            if planned is None:
                return []
            updated = replace(record, status=planned.status, status_reason=planned.status_reason, half_day_type=None)
            validate_record(updated, now=now)
            saved = self._attendance.upsert(updated)

        notify_safely(
            self._notifier,
            employee_id,
            EVENT_CORRECTION_REQUIRED,
            {"work_date": work_date.isoformat(), "record_id": saved.record_id, "reason": planned.status_reason},
        )
        return [JobItem(employee_id, name, planned.action, planned.status_reason, saved.record_id)]

    def _classify_for(self, employee_id: int, name: str, work_date: date) -> list[JobItem]:
        with self._attendance.with_lock(employee_id, work_date):
            record = self._attendance.get(employee_id, work_date)
            if not is_classifiable(record):
                return []
            shift = shift_for_record(self._shifts, record)
            planned = plan_classification(record, self._factory.classify(record=record, shift=shift))
            if planned is None:
                return []
            updated = replace(
                record,
                status=planned.status,
                half_day_type=planned.half_day_type,
                status_reason=planned.status_reason,
            )
            validate_record(updated)
            saved = self._attendance.upsert(updated)

        reason = planned.status_reason or f"Worked {saved.work_hours}h"
        record_safely(
            self._audit,
            AuditEvent(
                action=EVENT_CLASSIFIED,
                employee_id=employee_id,
                record_id=saved.record_id,
                description=reason,
                old_values={"status": record.status.value},
                new_values={"status": saved.status.value},
            ),
        )
        return [JobItem(employee_id, name, planned.action, reason, saved.record_id)]

    def _names(self) -> dict[int, str]:
        return {e.employee_id: e.full_name for e in self._employees.list_active()}

    def _records(self, work_date: date) -> Sequence[AttendanceRecord]:
        return self._attendance.list_for_date(work_date)

    def _attempt(self, employee_id: int, fn: Callable[[], list[JobItem]]) -> tuple[list[JobItem], Optional[JobError]]:
        try:
            return fn(), None
        except DomainError as exc:
            logger.warning("Employee %s skipped: %s (%s)", employee_id, exc.message, exc.code)
            return [], JobError(employee_id=employee_id, code=exc.code, message=exc.message)
        except Exception as exc:
            logger.exception("Employee %s failed during finalization", employee_id)
            return [], JobError(employee_id=employee_id, code=type(exc).__name__, message=str(exc))

    def _run(self, name: str, units: list[Unit], should_stop: Callable[[], bool] | None) -> JobReport:
        with self._guard.hold() as acquired:
            if not acquired:
                logger.warning("%s requested while another run is active", name)
                return JobReport(success=False, message="Finalization job is already running")

            report = JobReport(success=True, message="")
            if self._max_workers > 1:
                self._run_parallel(report, units, should_stop)
            else:
                for employee_id, fn in units:
                    if should_stop and should_stop():
                        report.cancelled = True
                        break
                    self._apply(report, *self._attempt(employee_id, fn))

            report.data.sort(key=lambda i: i.employee_id)
            report.message = f"{name}: {len(report.data)} updated, {len(report.errors)} failed"
            if report.cancelled:
                report.message += " (cancelled)"
            logger.info(report.message)
            return report

    def _run_parallel(self, report: JobReport, units: list[Unit], should_stop: Callable[[], bool] | None) -> None:
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            futures = []
            for employee_id, fn in units:
                if should_stop and should_stop():
                    report.cancelled = True
                    break
                futures.append(pool.submit(self._attempt, employee_id, fn))
            for future in as_completed(futures):
                self._apply(report, *future.result())

    @staticmethod
    def _apply(report: JobReport, items: list[JobItem], error: Optional[JobError]) -> None:
        report.processed += 1
        if error is not None:
            report.errors.append(error)
        elif items:
            report.data.extend(items)
        else:
            report.skipped += 1
