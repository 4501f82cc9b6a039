from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Hashable, Iterator, Optional

from ..core.constants import DEFAULT_LOCK_TIMEOUT_SECONDS
from ..core.exceptions import ConcurrencyError

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class KeyedLockManager:
    """One mutex per key, created on demand and dropped when nobody holds or waits on it.

    Acquisition is bounded: waiting longer than ``timeout_seconds`` raises
    ``ConcurrencyError`` with code ``LockTimeout``.
    """

    def __init__(self, *, timeout_seconds: float = DEFAULT_LOCK_TIMEOUT_SECONDS):
        self._timeout = float(timeout_seconds)
        self._guard = threading.Lock()
        self._entries: dict[Hashable, _Entry] = {}

    def _checkout(self, key: Hashable) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1
            return entry

    def _checkin(self, key: Hashable, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0 and self._entries.get(key) is entry:
                del self._entries[key]

    @contextmanager
    def hold(self, key: Hashable, *, timeout: Optional[float] = None) -> Iterator[None]:
        entry = self._checkout(key)
        try:
            wait = self._timeout if timeout is None else float(timeout)
            if not entry.lock.acquire(timeout=wait):
                logger.warning("Lock timeout after %.1fs for %r", wait, key)
                raise ConcurrencyError(f"Timed out waiting for lock on {key!r}", code="LockTimeout")
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(key, entry)

    def active_keys(self) -> int:
        with self._guard:
            return len(self._entries)
