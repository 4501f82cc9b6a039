from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import current_actor, json_body, ok_response
from ..common.validators import optional_date, optional_id
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.exceptions import NotFoundError
from .model import CorrectionData


def _history_args() -> dict:
    limit = request.args.get("limit", type=int) or DEFAULT_HISTORY_LIMIT
    return {
        "date_from": optional_date(request.args.get("date_from"), "date_from"),
        "date_to": optional_date(request.args.get("date_to"), "date_to"),
        "limit": min(limit, 366),
    }


def register(app: Flask, container: Container) -> None:
    workflow = container.correction_workflow

    @app.route("/api/attendance/<int:record_id>", methods=["GET"], endpoint="attendance_record")
    def get_record(record_id: int):
        record = workflow.get_record(record_id, current_actor())
        if not record:
            raise NotFoundError(f"Attendance record {record_id} not found", code="RecordNotFound")
        return ok_response(record.to_dict())

    @app.route("/api/attendance/<int:record_id>/correction", methods=["POST"], endpoint="attendance_request_correction")
    def request_correction(record_id: int):
        body = json_body()
        record = workflow.request_correction(record_id, body.get("reason"), current_actor())
        return ok_response(record.to_dict(), message="Correction requested", status=201)

    @app.route("/api/attendance/<int:record_id>/correction", methods=["DELETE"], endpoint="attendance_cancel_correction")
    def cancel_correction(record_id: int):
        record = workflow.cancel_correction(record_id, current_actor())
        return ok_response(record.to_dict(), message="Correction request cancelled")

    @app.route("/api/attendance/corrections", methods=["GET"], endpoint="attendance_my_corrections")
    def my_corrections():
        rows = workflow.my_corrections(current_actor())
        return ok_response([r.to_dict() for r in rows])

    @app.route("/api/attendance/corrections/history", methods=["GET"], endpoint="attendance_correction_history")
    def my_history():
        rows = workflow.correction_history(current_actor(), **_history_args())
        return ok_response([r.to_dict() for r in rows])

    @app.route("/api/admin/corrections", methods=["GET"], endpoint="admin_pending_corrections")
    def pending():
        rows = workflow.list_pending(current_actor())
        return ok_response([r.to_dict() for r in rows])

    @app.route("/api/admin/corrections/history", methods=["GET"], endpoint="admin_correction_history")
    def history():
        rows = workflow.correction_history(
            current_actor(),
            employee_id=optional_id(request.args.get("employee_id"), "employee_id"),
            **_history_args(),
        )
        return ok_response([r.to_dict() for r in rows])

    @app.route("/api/admin/corrections/bulk", methods=["POST"], endpoint="admin_bulk_corrections")
    def bulk():
        body = json_body()
        report = workflow.bulk_approve(body.get("corrections"), current_actor(), note=body.get("note") or None)
        return jsonify(report.to_dict())

    @app.route("/api/admin/corrections/<int:record_id>", methods=["POST"], endpoint="admin_process_correction")
    def process(record_id: int):
        body = json_body()
        record = workflow.process_correction(
            record_id,
            body.get("action") or "",
            CorrectionData.from_payload(body),
            current_actor(),
        )
        return ok_response(record.to_dict(), message=f"Correction {record.correction_status.value}")

    @app.route("/api/admin/attendance/<int:record_id>", methods=["PUT"], endpoint="admin_edit_attendance")
    def edit(record_id: int):
        record = workflow.edit_record(record_id, CorrectionData.from_payload(json_body()), current_actor())
        return ok_response(record.to_dict(), message="Record updated; pending re-evaluation")
