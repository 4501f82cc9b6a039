from __future__ import annotations

import threading

import pytest

from conftest import WORK_DATE
from src.attendance_engine.attendance_engine.core.constants import FINALIZATION_LOCK_NAME
from src.attendance_engine.attendance_engine.core.exceptions import ConcurrencyError
from src.attendance_engine.attendance_engine.database.mysql_base import named_lock
from src.attendance_engine.attendance_engine.finalization.guard import LocalRunGuard, MySQLRunGuard
from src.attendance_engine.attendance_engine.finalization.service import FinalizationJob


class FakeLockServer:
    """Stands in for MySQL's GET_LOCK/RELEASE_LOCK: one owner connection per lock name."""

    def __init__(self):
        self._mutex = threading.Lock()
        self.owners = {}
        self.open_connections = 0

    def connect(self, **_):
        with self._mutex:
            self.open_connections += 1
        return _FakeConnection(self)


class _FakeConnection:
    def __init__(self, server):
        self.server = server

    def cursor(self, **_):
        return _FakeCursor(self)

    def close(self):
        with self.server._mutex:
            self.server.open_connections -= 1


class _FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self._result = None

    def execute(self, sql, params):
        server = self.conn.server
        name = params[0]
        with server._mutex:
            owner = server.owners.get(name)
            if sql.startswith("SELECT GET_LOCK"):
                if owner is None or owner is self.conn:
                    server.owners[name] = self.conn
                    self._result = 1
                else:
                    self._result = 0
            elif sql.startswith("SELECT RELEASE_LOCK"):
                if owner is self.conn:
                    del server.owners[name]
                    self._result = 1
                else:
                    self._result = 0

    def fetchone(self):
        return (self._result,)

    def close(self):
        pass


def _blocking_notifier():
    entered = threading.Event()
    release = threading.Event()

    class SlowNotifier:
        def notify(self, employee_id, event_kind, payload):
            entered.set()
            release.wait(5)

    return SlowNotifier(), entered, release


def _assert_second_job_is_turned_away(first: FinalizationJob, second: FinalizationJob, entered, release):
    result = {}
    t = threading.Thread(target=lambda: result.setdefault("report", first.check_absent(WORK_DATE)))
    t.start()
    try:
        assert entered.wait(5)
        blocked = second.check_absent(WORK_DATE)
        assert blocked.success is False
        assert blocked.message == "Finalization job is already running"
        assert blocked.data == [] and blocked.errors == []
    finally:
        release.set()
        t.join()

    assert result["report"].success
    assert second.check_absent(WORK_DATE).success


def test_two_jobs_sharing_a_local_guard(repo, employees, calendar, catalog):
    guard = LocalRunGuard()
    notifier, entered, release = _blocking_notifier()
    first = FinalizationJob(repo, employees, catalog, calendar, notifier=notifier, run_guard=guard)
    second = FinalizationJob(repo, employees, catalog, calendar, run_guard=guard)

    _assert_second_job_is_turned_away(first, second, entered, release)


def test_two_jobs_sharing_a_database_lock(repo, employees, calendar, catalog):
    server = FakeLockServer()
    notifier, entered, release = _blocking_notifier()
    first = FinalizationJob(repo, employees, catalog, calendar, notifier=notifier, run_guard=MySQLRunGuard(server))
    second = FinalizationJob(repo, employees, catalog, calendar, run_guard=MySQLRunGuard(server))

    _assert_second_job_is_turned_away(first, second, entered, release)

    assert server.owners == {}
    assert server.open_connections == 0


def test_database_guard_takes_job_wide_lock_name():
    server = FakeLockServer()
    guard = MySQLRunGuard(server)

    with guard.hold() as acquired:
        assert acquired is True
        assert list(server.owners) == [FINALIZATION_LOCK_NAME]
        with MySQLRunGuard(server).hold() as again:
            assert again is False
    assert server.owners == {}


def test_named_lock_times_out_when_held_elsewhere():
    server = FakeLockServer()
    with named_lock(server, "attendance:1:2026-02-04", timeout_seconds=1):
        with pytest.raises(ConcurrencyError) as exc:
            with named_lock(server, "attendance:1:2026-02-04", timeout_seconds=1):
                pass
    assert exc.value.code == "LockTimeout"
    assert server.open_connections == 0
