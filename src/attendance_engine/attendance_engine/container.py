from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .attendance.factory import ClassificationStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import PunchEngine
from .audit.sink import AuditSink, MySQLAuditSink
from .core.constants import (
    DEFAULT_FINALIZATION_GRACE_MINUTES,
    DEFAULT_LOCK_TIMEOUT_SECONDS,
    DEFAULT_WEEKLY_OFF_DAYS,
)
from .corrections.service import CorrectionWorkflow
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .employees.repository import EmployeeDirectory
from .finalization.guard import MySQLRunGuard, RunGuard
from .finalization.service import FinalizationJob
from .notifications.notifier import LoggingNotifier, Notifier
from .shifts.catalog import RepositoryShiftCatalog, ShiftCatalog
from .shifts.model import shift_from_config
from .shifts.mysql_shift_repository import MySQLShiftRepository
from .workdays.lookup import HolidayLookup, WorkingCalendar
from .workdays.mysql_sources import MySQLHolidaySource, MySQLLeaveSource


@dataclass(frozen=True)
class Container:
    attendance_repo: AttendanceRepository
    employees: EmployeeDirectory
    shift_catalog: ShiftCatalog
    calendar: HolidayLookup
    audit: Optional[AuditSink]
    notifier: Optional[Notifier]

    punch_engine: PunchEngine
    finalization_job: FinalizationJob
    correction_workflow: CorrectionWorkflow


def assemble(
    *,
    attendance_repo: AttendanceRepository,
    employees: EmployeeDirectory,
    shift_catalog: ShiftCatalog,
    calendar: HolidayLookup,
    audit: Optional[AuditSink] = None,
    notifier: Optional[Notifier] = None,
    finalization_guard: Optional[RunGuard] = None,
    finalization_grace_minutes: int = DEFAULT_FINALIZATION_GRACE_MINUTES,
    finalization_workers: int = 1,
    **service_kwargs: Any,
) -> Container:
    """Wire services around already-built collaborators (MySQL ones or in-memory fakes)."""

    factory = ClassificationStrategyFactory()
    punch_engine = PunchEngine(attendance_repo, shift_catalog, calendar, employees, audit=audit, **service_kwargs)
    finalization_job = FinalizationJob(
        attendance_repo,
        employees,
        shift_catalog,
        calendar,
        notifier=notifier,
        audit=audit,
        strategy_factory=factory,
        run_guard=finalization_guard,
        grace_minutes=finalization_grace_minutes,
        max_workers=finalization_workers,
        **service_kwargs,
    )
    correction_workflow = CorrectionWorkflow(
        attendance_repo,
        shift_catalog,
        audit=audit,
        notifier=notifier,
        strategy_factory=factory,
        **service_kwargs,
    )

    return Container(
        attendance_repo=attendance_repo,
        employees=employees,
        shift_catalog=shift_catalog,
        calendar=calendar,
        audit=audit,
        notifier=notifier,
        punch_engine=punch_engine,
        finalization_job=finalization_job,
        correction_workflow=correction_workflow,
    )


def build_container(*, db_config: dict, settings: Any = None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))

    default_shift = getattr(settings, "DEFAULT_SHIFT", None)
    calendar = WorkingCalendar(
        MySQLHolidaySource(conn),
        MySQLLeaveSource(conn),
        weekly_off_days=getattr(settings, "WEEKLY_OFF_DAYS", DEFAULT_WEEKLY_OFF_DAYS),
    )

    return assemble(
        attendance_repo=MySQLAttendanceRepository(
            conn,
            lock_timeout_seconds=float(getattr(settings, "LOCK_TIMEOUT_SECONDS", DEFAULT_LOCK_TIMEOUT_SECONDS)),
        ),
        employees=MySQLEmployeeRepository(conn),
        shift_catalog=RepositoryShiftCatalog(
            MySQLShiftRepository(conn),
            fallback=shift_from_config(default_shift) if default_shift else None,
        ),
        calendar=calendar,
        audit=MySQLAuditSink(conn),
        notifier=LoggingNotifier(),
        finalization_guard=MySQLRunGuard(conn),
        finalization_grace_minutes=int(
            getattr(settings, "FINALIZATION_GRACE_MINUTES", DEFAULT_FINALIZATION_GRACE_MINUTES)
        ),
        finalization_workers=int(getattr(settings, "FINALIZATION_WORKERS", 1)),
    )
