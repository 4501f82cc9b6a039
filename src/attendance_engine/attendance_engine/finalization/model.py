from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..core.enums import AttendanceStatus, HalfDayType, JobAction


@dataclass(frozen=True)
class JobItem:
    """One employee affected by a finalization pass."""

    employee_id: int
    employee_name: str
    action: JobAction
    reason: str
    record_id: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "action": self.action.value,
            "reason": self.reason,
            "record_id": self.record_id,
        }


@dataclass(frozen=True)
class JobError:
    employee_id: int
    code: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"employee_id": self.employee_id, "code": self.code, "message": self.message}


@dataclass
class JobReport:
    success: bool
    message: str
    data: list[JobItem] = field(default_factory=list)
    errors: list[JobError] = field(default_factory=list)
    processed: int = 0
    skipped: int = 0
    cancelled: bool = False

    @property
    def stats(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "changed": len(self.data),
            "skipped": self.skipped,
            "failed": len(self.errors),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "data": [i.to_dict() for i in self.data],
            "errors": [e.to_dict() for e in self.errors],
            "stats": self.stats,
            "cancelled": self.cancelled,
        }


@dataclass(frozen=True)
class PlannedChange:
    """What the next finalization pass would write for one record."""

    action: JobAction
    status: AttendanceStatus
    status_reason: Optional[str] = None
    half_day_type: Optional[HalfDayType] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            "status": self.status.value,
            "status_reason": self.status_reason,
            "half_day_type": self.half_day_type.value if self.half_day_type else None,
        }
