from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from ..attendance.model import AttendanceRecord
from ..common.validators import optional_datetime, optional_id


@dataclass(frozen=True)
class CorrectionData:
    """Punch overrides supplied by HR when approving or editing a record.

    ``shift_id`` re-pins the record to another shift; without it the record keeps
    the shift it was clocked in under.
    """

    clock_in: Optional[datetime] = None
    clock_out: Optional[datetime] = None
    shift_id: Optional[int] = None
    note: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "CorrectionData":
        payload = payload or {}
        return cls(
            clock_in=optional_datetime(payload.get("clock_in"), "clock_in"),
            clock_out=optional_datetime(payload.get("clock_out"), "clock_out"),
            shift_id=optional_id(payload.get("shift_id"), "shift_id"),
            note=(payload.get("note") or None),
        )

    @property
    def is_empty(self) -> bool:
        return self.clock_in is None and self.clock_out is None and self.shift_id is None


@dataclass(frozen=True)
class BulkItemError:
    record_id: Any
    code: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"record_id": self.record_id, "code": self.code, "message": self.message}


@dataclass
class BulkReport:
    """Outcome of a bulk approval; a failing record never stops the others."""

    success: bool
    message: str
    data: list[AttendanceRecord] = field(default_factory=list)
    errors: list[BulkItemError] = field(default_factory=list)

    @property
    def stats(self) -> dict[str, int]:
        return {
            "processed": len(self.data) + len(self.errors),
            "approved": len(self.data),
            "failed": len(self.errors),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "data": [r.to_dict() for r in self.data],
            "errors": [e.to_dict() for e in self.errors],
            "stats": self.stats,
        }
