from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Optional

import pytest

from src.attendance_engine.attendance_engine.attendance.memory_repository import InMemoryAttendanceRepository
from src.attendance_engine.attendance_engine.attendance.service import PunchEngine
from src.attendance_engine.attendance_engine.container import assemble
from src.attendance_engine.attendance_engine.employees.model import Employee
from src.attendance_engine.attendance_engine.shifts.catalog import StaticShiftCatalog
from src.attendance_engine.attendance_engine.shifts.model import Shift

# A Wednesday
WORK_DATE = date(2026, 2, 4)


def at(hour: int, minute: int = 0, second: int = 0, *, day: date = WORK_DATE) -> datetime:
    return datetime.combine(day, time(hour, minute, second))


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@dataclass
class FakeEmployees:
    employees: dict[int, Employee] = field(default_factory=dict)

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        return self.employees.get(employee_id)

    def list_active(self):
        return [e for e in sorted(self.employees.values(), key=lambda e: e.employee_id) if e.is_active]


@dataclass
class FakeCalendar:
    off_days: set[tuple[int, date]] = field(default_factory=set)
    holidays: set[date] = field(default_factory=set)

    def is_working_day(self, employee_id: int, work_date: date) -> bool:
        return work_date not in self.holidays and (employee_id, work_date) not in self.off_days


class RecordingAudit:
    def __init__(self):
        self.events = []

    def record(self, event) -> None:
        self.events.append(event)

    @property
    def actions(self) -> list[str]:
        return [e.action for e in self.events]


class RecordingNotifier:
    def __init__(self):
        self.sent: list[tuple[int, str, dict[str, Any]]] = []

    def notify(self, employee_id: int, event_kind: str, payload: dict[str, Any]) -> None:
        self.sent.append((employee_id, event_kind, payload))


@pytest.fixture
def office_shift() -> Shift:
    return Shift(
        shift_id=1,
        shift_name="Office",
        start_time=time(9, 0),
        end_time=time(18, 0),
        grace_period_minutes=15,
        full_day_hours=8.0,
        half_day_hours=4.0,
        is_default=True,
    )


@pytest.fixture
def catalog(office_shift) -> StaticShiftCatalog:
    return StaticShiftCatalog(default=office_shift, shifts={office_shift.shift_id: office_shift})


@pytest.fixture
def repo() -> InMemoryAttendanceRepository:
    return InMemoryAttendanceRepository(lock_timeout_seconds=2.0)


@pytest.fixture
def employees() -> FakeEmployees:
    return FakeEmployees(
        {
            1: Employee(employee_id=1, full_name="Alice Nguyen", user_id=101),
            2: Employee(employee_id=2, full_name="Bao Tran", user_id=102),
            3: Employee(employee_id=3, full_name="Chi Le", user_id=103),
        }
    )


@pytest.fixture
def calendar() -> FakeCalendar:
    return FakeCalendar()


@pytest.fixture
def audit() -> RecordingAudit:
    return RecordingAudit()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(at(23, 0))


@pytest.fixture
def engine(repo, catalog, calendar, employees, audit, clock) -> PunchEngine:
    return PunchEngine(repo, catalog, calendar, employees, audit=audit, clock=clock)


@pytest.fixture
def container(repo, catalog, calendar, employees, audit, notifier, clock):
    return assemble(
        attendance_repo=repo,
        employees=employees,
        shift_catalog=catalog,
        calendar=calendar,
        audit=audit,
        notifier=notifier,
        clock=clock,
    )
