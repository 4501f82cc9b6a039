from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional, Protocol

from ..common.datetime_utils import now_local
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditEvent:
    action: str
    employee_id: int
    record_id: Optional[int] = None
    actor_user_id: Optional[int] = None
    description: str = ""
    old_values: dict[str, Any] = field(default_factory=dict)
    new_values: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=now_local)


class AuditSink(Protocol):
    def record(self, event: AuditEvent) -> None:
        raise NotImplementedError


def record_safely(sink: Optional[AuditSink], event: AuditEvent) -> None:
    """Fire-and-forget: a failing sink never fails the business operation."""
    if sink is None:
        return
    try:
        sink.record(event)
    except Exception:
        logger.warning("Audit sink failed for %s (employee=%s)", event.action, event.employee_id, exc_info=True)


class MySQLAuditSink(AuditSink):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def record(self, event: AuditEvent) -> None:
        payload = asdict(event)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO audit_logs(action, employee_id, record_id, actor_user_id, description,
                                       old_values, new_values, occurred_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    event.action,
                    event.employee_id,
                    event.record_id,
                    event.actor_user_id,
                    event.description,
                    json.dumps(payload["old_values"], default=str),
                    json.dumps(payload["new_values"], default=str),
                    event.occurred_at,
                ),
            )
