from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import time, timedelta
from typing import Any, ContextManager, Dict, Iterator, List, Optional

from ..core.exceptions import ConcurrencyError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """One connection + cursor; commit on success, rollback on any error."""
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def _session_lock(conn_factory: DatabaseConnection, name: str, wait_seconds: int) -> Iterator[bool]:
    """Yield whether ``GET_LOCK`` was granted.

    The lock belongs to the session that took it, so the connection stays open until release.
    """

    conn = conn_factory.connect()
    try:
        cur = conn.cursor()
        try:
            cur.execute("SELECT GET_LOCK(%s, %s)", (name, wait_seconds))
            (acquired,) = cur.fetchone()
            if acquired != 1:
                yield False
                return
            try:
                yield True
            finally:
                cur.execute("SELECT RELEASE_LOCK(%s)", (name,))
                cur.fetchone()
        finally:
            cur.close()
    finally:
        conn.close()


@contextmanager
def named_lock(conn_factory: DatabaseConnection, name: str, *, timeout_seconds: float) -> Iterator[None]:
    """MySQL ``GET_LOCK`` section, bounded by ``timeout_seconds``."""

    with _session_lock(conn_factory, name, max(1, int(round(timeout_seconds)))) as acquired:
        if not acquired:
            logger.warning("GET_LOCK timed out for %s", name)
            raise ConcurrencyError(f"Timed out waiting for lock {name}", code="LockTimeout")
        yield


def try_named_lock(conn_factory: DatabaseConnection, name: str) -> ContextManager[bool]:
    """Zero-wait ``GET_LOCK``: yields False at once when another session holds ``name``."""

    return _session_lock(conn_factory, name, 0)


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    return list(cur.fetchall() or [])


def normalize_mysql_time(value: Any) -> Optional[time]:
    """TIME columns arrive as ``time``, ``timedelta`` or 'HH:MM[:SS]' depending on the connector."""

    if value is None or isinstance(value, time):
        return value

    if isinstance(value, timedelta):
        seconds = int(value.total_seconds()) % 86400
        return time(hour=seconds // 3600, minute=(seconds % 3600) // 60, second=seconds % 60)

    if isinstance(value, str):
        parts = [int(p) for p in value.strip().split(":") if p]
        if len(parts) < 2:
            raise ValueError(f"Invalid time string: {value!r}")
        return time(*parts[:3])

    raise TypeError(f"Unsupported MySQL TIME value type: {type(value)!r}")
