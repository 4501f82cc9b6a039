from __future__ import annotations

from datetime import date

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .lookup import HolidaySource, LeaveSource


class MySQLHolidaySource(HolidaySource):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def is_holiday(self, work_date: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT 1 AS hit FROM holidays WHERE holiday_date=%s LIMIT 1", (work_date,))
            return fetchone(cur) is not None


class MySQLLeaveSource(LeaveSource):
    """Approved leave requests; balances are handled by the leave module."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def is_on_approved_leave(self, employee_id: int, work_date: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT 1 AS hit
                FROM leave_requests
                WHERE employee_id=%s
                  AND status='APPROVED'
                  AND start_date <= %s
                  AND end_date >= %s
                LIMIT 1
                """,
                (int(employee_id), work_date, work_date),
            )
            return fetchone(cur) is not None
