"""Boundary mapping from domain errors to HTTP responses.

Every controller goes through ``error_response`` so the kind -> status table lives in one place.
"""

from __future__ import annotations

from typing import Any

from flask import jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import AuthorizationError, DomainError, ErrorKind
from ..employees.model import Actor

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.PRECONDITION: 409,
    ErrorKind.NOT_ALLOWED: 403,
    ErrorKind.CONCURRENCY: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.AUTHORIZATION: 403,
}


def status_for(error: DomainError) -> int:
    return STATUS_BY_KIND.get(error.kind, 400)


def error_response(error: DomainError):
    body = {"success": False, "code": error.code, "kind": error.kind.value, "message": error.message}
    return jsonify(body), status_for(error)


def ok_response(data: Any = None, *, message: str = "", status: int = 200):
    return jsonify({"success": True, "message": message, "data": data}), status


def current_actor() -> Actor:
    """Identity placed in the session by the auth layer."""
    if "user_id" not in session:
        raise AuthorizationError("Please sign in to continue", code="Unauthenticated")
    try:
        role = Role(session.get("role", Role.EMPLOYEE.value))
    except ValueError:
        raise AuthorizationError(f"Unknown role {session.get('role')!r}")
    employee_id = session.get("employee_id")
    return Actor(
        user_id=int(session["user_id"]),
        role=role,
        employee_id=int(employee_id) if employee_id is not None else None,
    )


def require_employee(actor: Actor) -> int:
    if actor.employee_id is None:
        raise AuthorizationError("No employee profile is linked to this account", code="EmployeeNotFound")
    return actor.employee_id


def require_privileged(actor: Actor) -> None:
    if not actor.is_privileged:
        raise AuthorizationError("HR or admin role required")


def json_body() -> dict:
    return request.get_json(silent=True) or {}
