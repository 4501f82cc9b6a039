from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Employee:
    """Domain entity: an employee as seen by the attendance engine.

    Note: Profile data (documents, departments, ...) lives elsewhere; only what the
    batch passes and notifications need is carried here.
    """

    employee_id: int
    full_name: str
    user_id: Optional[int] = None
    is_active: bool = True


@dataclass(frozen=True)
class Actor:
    """The authenticated caller performing an operation."""

    user_id: int
    role: Role
    employee_id: Optional[int] = None

    @property
    def is_privileged(self) -> bool:
        return self.role.is_privileged
