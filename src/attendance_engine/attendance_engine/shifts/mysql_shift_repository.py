from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from ..core.constants import DEFAULT_FULL_DAY_HOURS, DEFAULT_HALF_DAY_HOURS
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, normalize_mysql_time
from .model import Shift
from .repository import ShiftRepository

_SHIFT_COLUMNS = """
    shift_id, shift_name, start_time, end_time, grace_period_minutes,
    early_departure_threshold_minutes, full_day_hours, half_day_hours, is_default
"""


def _to_shift(r: Dict[str, Any]) -> Shift:
    return Shift(
        shift_id=int(r["shift_id"]),
        shift_name=r["shift_name"],
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        grace_period_minutes=int(r.get("grace_period_minutes") or 0),
        early_departure_threshold_minutes=int(r.get("early_departure_threshold_minutes") or 0),
        full_day_hours=float(r.get("full_day_hours") or DEFAULT_FULL_DAY_HOURS),
        half_day_hours=float(r.get("half_day_hours") or DEFAULT_HALF_DAY_HOURS),
        is_default=bool(r.get("is_default")),
    )


class MySQLShiftRepository(ShiftRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, shift_id: int) -> Optional[Shift]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SHIFT_COLUMNS} FROM shifts WHERE shift_id=%s", (int(shift_id),))
            r = fetchone(cur)
            return _to_shift(r) if r else None

    def get_default(self) -> Optional[Shift]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SHIFT_COLUMNS} FROM shifts WHERE is_default=1 ORDER BY shift_id LIMIT 1")
            r = fetchone(cur)
            return _to_shift(r) if r else None

    def get_assigned_shift_id(self, *, employee_id: int, work_date: date) -> Optional[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT shift_id
                FROM employee_shifts
                WHERE employee_id=%s
                  AND is_active=1
                  AND effective_from <= %s
                  AND (effective_to IS NULL OR effective_to >= %s)
                ORDER BY effective_from DESC
                LIMIT 1
                """,
                (int(employee_id), work_date, work_date),
            )
            r = fetchone(cur)
            return int(r["shift_id"]) if r else None
