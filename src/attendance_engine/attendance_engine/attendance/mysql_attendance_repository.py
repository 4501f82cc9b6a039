from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, ContextManager, Dict, Optional, Sequence

import mysql.connector

from ..core.constants import DEFAULT_LOCK_TIMEOUT_SECONDS
from ..core.enums import AttendanceStatus, CorrectionStatus, HalfDayType
from ..core.exceptions import ConcurrencyError, NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, named_lock
from .model import AttendanceRecord, BreakSession
from .repository import AttendanceRepository

_COLUMNS = """
    record_id, employee_id, work_date, shift_id, clock_in, clock_out, break_sessions,
    total_break_minutes, total_worked_minutes, work_hours, is_late, late_minutes,
    is_early_departure, early_exit_minutes, overtime_minutes, status, status_reason, half_day_type,
    correction_requested, correction_reason, correction_status, corrected_by, corrected_at,
    location, created_by, updated_by, version
"""


def _load_json(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return json.loads(value) if value else None
    return value


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _sessions_to_json(sessions: Sequence[BreakSession]) -> str:
    return json.dumps([_session_to_dict(s) for s in sessions])


def _session_to_dict(s: BreakSession) -> dict:
    return {
        "break_in": s.break_in.isoformat(),
        "break_out": s.break_out.isoformat() if s.break_out else None,
        "duration_minutes": s.duration_minutes,
    }


def _to_record(row: Dict[str, Any]) -> AttendanceRecord:
    sessions = tuple(
        BreakSession(
            break_in=_parse_ts(s["break_in"]),
            break_out=_parse_ts(s.get("break_out")),
            duration_minutes=s.get("duration_minutes"),
        )
        for s in (_load_json(row.get("break_sessions")) or [])
    )
    return AttendanceRecord(
        record_id=int(row["record_id"]),
        employee_id=int(row["employee_id"]),
        work_date=row["work_date"],
        shift_id=int(row["shift_id"]) if row.get("shift_id") is not None else None,
        clock_in=row.get("clock_in"),
        clock_out=row.get("clock_out"),
        break_sessions=sessions,
        total_break_minutes=int(row.get("total_break_minutes") or 0),
        total_worked_minutes=int(row["total_worked_minutes"]) if row.get("total_worked_minutes") is not None else None,
        work_hours=float(row["work_hours"]) if row.get("work_hours") is not None else None,
        is_late=bool(row.get("is_late")),
        late_minutes=int(row.get("late_minutes") or 0),
        is_early_departure=bool(row.get("is_early_departure")),
        early_exit_minutes=int(row.get("early_exit_minutes") or 0),
        overtime_minutes=int(row.get("overtime_minutes") or 0),
        status=AttendanceStatus(row["status"]),
        status_reason=row.get("status_reason"),
        half_day_type=HalfDayType(row["half_day_type"]) if row.get("half_day_type") else None,
        correction_requested=bool(row.get("correction_requested")),
        correction_reason=row.get("correction_reason"),
        correction_status=CorrectionStatus(row["correction_status"]) if row.get("correction_status") else None,
        corrected_by=row.get("corrected_by"),
        corrected_at=row.get("corrected_at"),
        location=_load_json(row.get("location")),
        created_by=row.get("created_by"),
        updated_by=row.get("updated_by"),
        version=int(row.get("version") or 0),
    )


def _write_params(r: AttendanceRecord) -> tuple:
    return (
        r.shift_id,
        r.clock_in,
        r.clock_out,
        _sessions_to_json(r.break_sessions),
        r.total_break_minutes,
        r.total_worked_minutes,
        r.work_hours,
        int(r.is_late),
        r.late_minutes,
        int(r.is_early_departure),
        r.early_exit_minutes,
        r.overtime_minutes,
        r.status.value,
        r.status_reason,
        r.half_day_type.value if r.half_day_type else None,
        int(r.correction_requested),
        r.correction_reason,
        r.correction_status.value if r.correction_status else None,
        r.corrected_by,
        r.corrected_at,
        json.dumps(r.location) if r.location is not None else None,
        r.updated_by,
    )


class MySQLAttendanceRepository(AttendanceRepository):
    """``attendance_records`` table; unique key on (employee_id, work_date), CAS on ``version``.

    ``with_lock`` uses MySQL named locks so several app processes serialize on the same key.
    """

    def __init__(self, conn_factory: DatabaseConnection, *, lock_timeout_seconds: float = DEFAULT_LOCK_TIMEOUT_SECONDS):
        self._conn_factory = conn_factory
        self._lock_timeout = lock_timeout_seconds

    def get(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE employee_id=%s AND work_date=%s",
                (int(employee_id), work_date),
            )
            row = fetchone(cur)
            return _to_record(row) if row else None

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE record_id=%s", (int(record_id),))
            row = fetchone(cur)
            return _to_record(row) if row else None

    def upsert(self, record: AttendanceRecord) -> AttendanceRecord:
        if record.version == 0:
            self._insert(record)
        else:
            self._update(record)
        stored = self.get(record.employee_id, record.work_date)
        if stored is None:
            raise ConcurrencyError(f"Record {record.key} vanished after write", code="VersionConflict")
        return stored

    def _insert(self, record: AttendanceRecord) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(
                        shift_id, clock_in, clock_out, break_sessions,
                        total_break_minutes, total_worked_minutes, work_hours, is_late, late_minutes,
                        is_early_departure, early_exit_minutes, overtime_minutes, status, status_reason,
                        half_day_type, correction_requested, correction_reason, correction_status,
                        corrected_by, corrected_at, location, updated_by,
                        employee_id, work_date, created_by, version
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,1)
                    """,
                    _write_params(record) + (record.employee_id, record.work_date, record.created_by),
                )
        except mysql.connector.IntegrityError:
            raise ConcurrencyError(f"Record {record.key} already exists", code="DuplicateRecord")

    def _update(self, record: AttendanceRecord) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET shift_id=%s, clock_in=%s, clock_out=%s, break_sessions=%s,
                    total_break_minutes=%s, total_worked_minutes=%s, work_hours=%s, is_late=%s, late_minutes=%s,
                    is_early_departure=%s, early_exit_minutes=%s, overtime_minutes=%s, status=%s, status_reason=%s,
                    half_day_type=%s, correction_requested=%s, correction_reason=%s, correction_status=%s,
                    corrected_by=%s, corrected_at=%s, location=%s, updated_by=%s,
                    version=version+1
                WHERE employee_id=%s AND work_date=%s AND version=%s
                """,
                _write_params(record) + (record.employee_id, record.work_date, record.version),
            )
            if cur.rowcount != 1:
                raise ConcurrencyError(
                    f"Record {record.key} changed since v{record.version}",
                    code="VersionConflict",
                )

    def append_break(
        self,
        *,
        employee_id: int,
        work_date: date,
        session: BreakSession,
        expected_version: int,
    ) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET break_sessions=JSON_ARRAY_APPEND(COALESCE(break_sessions, JSON_ARRAY()), '$', CAST(%s AS JSON)),
                    version=version+1
                WHERE employee_id=%s AND work_date=%s AND version=%s
                """,
                (json.dumps(_session_to_dict(session)), int(employee_id), work_date, int(expected_version)),
            )
            updated = cur.rowcount == 1
        stored = self.get(employee_id, work_date)
        if stored is None:
            raise NotFoundError(f"No attendance record for {(employee_id, work_date)}", code="RecordNotFound")
        if not updated:
            raise ConcurrencyError(
                f"Record {(employee_id, work_date)} changed since v{expected_version}",
                code="VersionConflict",
            )
        return stored

    def with_lock(self, employee_id: int, work_date: date) -> ContextManager[None]:
        name = f"attendance:{int(employee_id)}:{work_date.isoformat()}"
        return named_lock(self._conn_factory, name, timeout_seconds=self._lock_timeout)

    def list_for_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE work_date=%s ORDER BY employee_id",
                (work_date,),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_recent(self, employee_id: int, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE employee_id=%s
                ORDER BY work_date DESC
                LIMIT %s
                """,
                (int(employee_id), int(limit)),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_pending_corrections(self) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE correction_status='pending'
                ORDER BY work_date, employee_id
                """
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_corrections(
        self,
        *,
        statuses: Sequence[CorrectionStatus],
        employee_id: Optional[int] = None,
        corrected_from: Optional[date] = None,
        corrected_to: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        if not statuses:
            return []
        where = [f"correction_status IN ({', '.join(['%s'] * len(statuses))})"]
        params: list[Any] = [CorrectionStatus(s).value for s in statuses]
        if employee_id is not None:
            where.append("employee_id=%s")
            params.append(int(employee_id))
        if corrected_from is not None:
            where.append("DATE(corrected_at) >= %s")
            params.append(corrected_from)
        if corrected_to is not None:
            where.append("DATE(corrected_at) <= %s")
            params.append(corrected_to)

        sql = f"""
            SELECT {_COLUMNS}
            FROM attendance_records
            WHERE {' AND '.join(where)}
            ORDER BY corrected_at IS NULL DESC, corrected_at DESC, work_date DESC, employee_id DESC
        """
        if limit is not None:
            sql += " LIMIT %s"
            params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_record(r) for r in fetchall(cur)]
