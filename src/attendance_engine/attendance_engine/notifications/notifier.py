from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, employee_id: int, event_kind: str, payload: dict[str, Any]) -> None:
        raise NotImplementedError


def notify_safely(notifier: Optional[Notifier], employee_id: int, event_kind: str, payload: dict[str, Any]) -> None:
    """Same contract as audit: delivery problems are logged, never raised."""
    if notifier is None:
        return
    try:
        notifier.notify(employee_id, event_kind, payload)
    except Exception:
        logger.warning("Notifier failed for %s (employee=%s)", event_kind, employee_id, exc_info=True)


class LoggingNotifier(Notifier):
    """Default notifier; email/push adapters plug in behind the same interface."""

    def notify(self, employee_id: int, event_kind: str, payload: dict[str, Any]) -> None:
        logger.info("notify employee=%s kind=%s payload=%s", employee_id, event_kind, payload)
