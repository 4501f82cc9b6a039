from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import ContextManager, Iterator, Protocol

from ..core.constants import FINALIZATION_LOCK_NAME
from ..database.connection import DatabaseConnection
from ..database.mysql_base import try_named_lock


class RunGuard(Protocol):
    def hold(self) -> ContextManager[bool]:
        """Yield True when the caller owns the run, False while another run holds it. Never waits."""

        raise NotImplementedError


class LocalRunGuard(RunGuard):
    """One run at a time within this process (memory backend, tests)."""

    def __init__(self):
        self._lock = threading.Lock()

    @contextmanager
    def hold(self) -> Iterator[bool]:
        if not self._lock.acquire(blocking=False):
            yield False
            return
        try:
            yield True
        finally:
            self._lock.release()


class MySQLRunGuard(RunGuard):
    """One run at a time across every process sharing the database, via a named lock."""

    def __init__(self, conn_factory: DatabaseConnection, name: str = FINALIZATION_LOCK_NAME):
        self._conn_factory = conn_factory
        self._name = name

    def hold(self) -> ContextManager[bool]:
        return try_named_lock(self._conn_factory, self._name)
