from __future__ import annotations

from flask import Flask, request

from ..common.validators import optional_date
from ..common.http import current_actor, json_body, ok_response, require_employee
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    engine = container.punch_engine

    @app.route("/api/attendance/clock-in", methods=["POST"], endpoint="attendance_clock_in")
    def clock_in():
        actor = current_actor()
        body = json_body()
        location = body.get("location")
        if location is not None and not isinstance(location, dict):
            raise ValidationError("location must be an object")
        if location is None:
            location = {"ip": request.remote_addr, "user_agent": request.headers.get("User-Agent")}
        record = engine.clock_in(require_employee(actor), location_info=location, actor_user_id=actor.user_id)
        return ok_response(record.to_dict(), message="Clocked in", status=201)

    @app.route("/api/attendance/clock-out", methods=["POST"], endpoint="attendance_clock_out")
    def clock_out():
        actor = current_actor()
        record = engine.clock_out(require_employee(actor), actor_user_id=actor.user_id)
        return ok_response(record.to_dict(), message="Clocked out")

    @app.route("/api/attendance/break/start", methods=["POST"], endpoint="attendance_break_start")
    def break_start():
        actor = current_actor()
        record = engine.start_break(require_employee(actor), actor_user_id=actor.user_id)
        return ok_response(record.to_dict(), message="Break started")

    @app.route("/api/attendance/break/end", methods=["POST"], endpoint="attendance_break_end")
    def break_end():
        actor = current_actor()
        record = engine.end_break(require_employee(actor), actor_user_id=actor.user_id)
        return ok_response(record.to_dict(), message="Break ended")

    @app.route("/api/attendance/today", methods=["GET"], endpoint="attendance_today")
    def today():
        actor = current_actor()
        work_date = optional_date(request.args.get("date"), "date")
        record = engine.get_today_record(require_employee(actor), work_date)
        return ok_response(record.to_dict() if record else None)

    @app.route("/api/attendance/state", methods=["GET"], endpoint="attendance_state")
    def state():
        actor = current_actor()
        return ok_response(engine.get_punch_state(require_employee(actor)))

    @app.route("/api/attendance/history", methods=["GET"], endpoint="attendance_history")
    def history():
        actor = current_actor()
        limit = request.args.get("limit", type=int) or DEFAULT_HISTORY_LIMIT
        rows = engine.get_history(require_employee(actor), limit=min(limit, 366))
        return ok_response([r.to_dict() for r in rows])
