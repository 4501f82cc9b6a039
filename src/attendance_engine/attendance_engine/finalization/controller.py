from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import current_actor, json_body, ok_response, require_employee, require_privileged
from ..common.validators import optional_date
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    job = container.finalization_job

    @app.route("/api/admin/attendance/check-absent", methods=["POST"], endpoint="admin_check_absent")
    def check_absent():
        require_privileged(current_actor())
        report = job.check_absent(optional_date(json_body().get("date"), "date"))
        return jsonify(report.to_dict()), 200 if report.success else 409

    @app.route("/api/admin/attendance/finalize", methods=["POST"], endpoint="admin_finalize")
    def finalize():
        require_privileged(current_actor())
        body = json_body()
        work_date = optional_date(body.get("date"), "date")
        passes = {
            "finalize": job.finalize,
            "incomplete": job.mark_incomplete,
            "classify": job.classify,
        }
        name = body.get("pass") or "finalize"
        if name not in passes:
            raise ValidationError(f"pass must be one of {sorted(passes)}")
        report = passes[name](work_date)
        return jsonify(report.to_dict()), 200 if report.success else 409

    @app.route("/api/admin/attendance/finalization-status", methods=["GET"], endpoint="admin_finalization_status")
    def finalization_status():
        require_privileged(current_actor())
        return ok_response(job.finalization_status(optional_date(request.args.get("date"), "date")))

    @app.route(
        "/api/admin/attendance/finalization-status/<int:employee_id>",
        methods=["GET"],
        endpoint="admin_employee_finalization_status",
    )
    def employee_finalization_status(employee_id: int):
        require_privileged(current_actor())
        return ok_response(job.employee_status(employee_id, optional_date(request.args.get("date"), "date")))

    @app.route("/api/attendance/finalization-status", methods=["GET"], endpoint="attendance_finalization_status")
    def my_finalization_status():
        employee_id = require_employee(current_actor())
        return ok_response(job.employee_status(employee_id, optional_date(request.args.get("date"), "date")))
