from __future__ import annotations

from datetime import date
from typing import ContextManager, Optional, Protocol, Sequence

from ..core.enums import CorrectionStatus
from .model import AttendanceRecord, BreakSession


class AttendanceRepository(Protocol):
    """Storage contract: exactly one record per (employee_id, work_date).

    Writes are optimistic: ``record.version`` must equal the stored version
    (0 means "not stored yet"), otherwise ``ConcurrencyError`` is raised with
    ``VersionConflict`` or ``DuplicateRecord``. The stored record is returned with
    its new version and ``record_id``.
    """

    def get(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def upsert(self, record: AttendanceRecord) -> AttendanceRecord:
        raise NotImplementedError

    def append_break(
        self,
        *,
        employee_id: int,
        work_date: date,
        session: BreakSession,
        expected_version: int,
    ) -> AttendanceRecord:
        """Atomically append one break session to an existing record."""

        raise NotImplementedError

    def with_lock(self, employee_id: int, work_date: date) -> ContextManager[None]:
        """Bounded exclusive section for one (employee, date) key."""

        raise NotImplementedError

    def list_for_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_recent(self, employee_id: int, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_pending_corrections(self) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_corrections(
        self,
        *,
        statuses: Sequence[CorrectionStatus],
        employee_id: Optional[int] = None,
        corrected_from: Optional[date] = None,
        corrected_to: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        """Records whose correction status is in ``statuses``.

        Unprocessed requests come first, then the most recently processed. The date
        bounds apply to ``corrected_at`` and are inclusive.
        """

        raise NotImplementedError
