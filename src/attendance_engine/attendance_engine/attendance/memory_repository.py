from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime
from typing import ContextManager, Optional, Sequence

from ..core.constants import DEFAULT_LOCK_TIMEOUT_SECONDS
from ..core.enums import CorrectionStatus
from ..core.exceptions import ConcurrencyError, NotFoundError
from .locks import KeyedLockManager
from .model import AttendanceRecord, BreakSession
from .repository import AttendanceRepository


class InMemoryAttendanceRepository(AttendanceRepository):
    """Thread-safe in-process store with the same version semantics as the MySQL one."""

    def __init__(self, *, locks: Optional[KeyedLockManager] = None, lock_timeout_seconds: float = DEFAULT_LOCK_TIMEOUT_SECONDS):
        self._locks = locks or KeyedLockManager(timeout_seconds=lock_timeout_seconds)
        self._mutex = threading.Lock()
        self._by_key: dict[tuple[int, date], AttendanceRecord] = {}
        self._key_by_id: dict[int, tuple[int, date]] = {}
        self._next_id = 1

    def get(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with self._mutex:
            return self._by_key.get((int(employee_id), work_date))

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        with self._mutex:
            key = self._key_by_id.get(int(record_id))
            return self._by_key.get(key) if key else None

    def _check_version(self, key: tuple[int, date], expected: int) -> Optional[AttendanceRecord]:
        current = self._by_key.get(key)
        if current is None:
            if expected != 0:
                raise ConcurrencyError(f"Record {key} no longer exists", code="VersionConflict")
            return None
        if expected == 0:
            raise ConcurrencyError(f"Record {key} already exists", code="DuplicateRecord")
        if current.version != expected:
            raise ConcurrencyError(
                f"Record {key} changed (expected v{expected}, found v{current.version})",
                code="VersionConflict",
            )
        return current

    def upsert(self, record: AttendanceRecord) -> AttendanceRecord:
        key = record.key
        with self._mutex:
            current = self._check_version(key, record.version)
            record_id = current.record_id if current else self._next_id
            if current is None:
                self._next_id += 1
            stored = replace(record, record_id=record_id, version=record.version + 1)
            self._by_key[key] = stored
            self._key_by_id[record_id] = key
            return stored

    def append_break(
        self,
        *,
        employee_id: int,
        work_date: date,
        session: BreakSession,
        expected_version: int,
    ) -> AttendanceRecord:
        key = (int(employee_id), work_date)
        with self._mutex:
            if key not in self._by_key:
                raise NotFoundError(f"No attendance record for {key}", code="RecordNotFound")
            current = self._check_version(key, expected_version)
            stored = replace(
                current,
                break_sessions=current.break_sessions + (session,),
                version=current.version + 1,
            )
            self._by_key[key] = stored
            return stored

    def with_lock(self, employee_id: int, work_date: date) -> ContextManager[None]:
        return self._locks.hold((int(employee_id), work_date))

    def list_for_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        with self._mutex:
            rows = [r for (_, d), r in self._by_key.items() if d == work_date]
        return sorted(rows, key=lambda r: r.employee_id)

    def list_recent(self, employee_id: int, limit: int) -> Sequence[AttendanceRecord]:
        with self._mutex:
            rows = [r for (emp, _), r in self._by_key.items() if emp == int(employee_id)]
        rows.sort(key=lambda r: r.work_date, reverse=True)
        return rows[: int(limit)]

    def list_pending_corrections(self) -> Sequence[AttendanceRecord]:
        with self._mutex:
            rows = [r for r in self._by_key.values() if r.correction_status == CorrectionStatus.PENDING]
        return sorted(rows, key=lambda r: (r.work_date, r.employee_id))

    def list_corrections(
        self,
        *,
        statuses: Sequence[CorrectionStatus],
        employee_id: Optional[int] = None,
        corrected_from: Optional[date] = None,
        corrected_to: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        wanted = set(statuses)
        with self._mutex:
            rows = [r for r in self._by_key.values() if r.correction_status in wanted]
        if employee_id is not None:
            rows = [r for r in rows if r.employee_id == int(employee_id)]
        if corrected_from is not None:
            rows = [r for r in rows if r.corrected_at is not None and r.corrected_at.date() >= corrected_from]
        if corrected_to is not None:
            rows = [r for r in rows if r.corrected_at is not None and r.corrected_at.date() <= corrected_to]
        rows.sort(key=lambda r: (r.corrected_at or datetime.max, r.work_date, r.employee_id), reverse=True)
        return rows if limit is None else rows[: int(limit)]

    def count(self) -> int:
        with self._mutex:
            return len(self._by_key)
