from __future__ import annotations

import pytest

from conftest import WORK_DATE, at
from src.attendance_engine.attendance_engine.core.enums import Role
from src.attendance_engine.attendance_engine.main import create_app


@pytest.fixture
def app(monkeypatch, container):
    monkeypatch.setenv("APP_ENV", "testing")
    return create_app(container=container)


def _login(client, *, user_id=101, role=Role.EMPLOYEE, employee_id=1):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["role"] = role.value
        if employee_id is not None:
            sess["employee_id"] = employee_id


def test_requests_without_session_are_rejected(app):
    resp = app.test_client().post("/api/attendance/clock-in")
    assert resp.status_code == 403
    assert resp.get_json()["code"] == "Unauthenticated"


def test_punch_flow_and_error_mapping(app, clock):
    client = app.test_client()
    _login(client)

    clock.now = at(9, 0)
    resp = client.post("/api/attendance/clock-in", json={"location": {"site": "HQ"}})
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success"] is True
    assert body["data"]["location"] == {"site": "HQ"}

    again = client.post("/api/attendance/clock-in")
    assert again.status_code == 409
    assert again.get_json()["code"] == "AlreadyClockedIn"

    assert client.post("/api/attendance/break/end").get_json()["code"] == "NoActiveBreak"

    clock.now = at(12, 0)
    assert client.post("/api/attendance/break/start").status_code == 200
    state = client.get("/api/attendance/state").get_json()["data"]
    assert state["state"] == "on_break"

    clock.now = at(12, 30)
    assert client.post("/api/attendance/break/end").status_code == 200

    clock.now = at(18, 0)
    out = client.post("/api/attendance/clock-out").get_json()["data"]
    assert out["work_hours"] == 8.5

    today = client.get(f"/api/attendance/today?date={WORK_DATE.isoformat()}").get_json()["data"]
    assert today["clock_out"] is not None
    assert len(client.get("/api/attendance/history?limit=5").get_json()["data"]) == 1


def test_bad_date_is_validation_error(app):
    client = app.test_client()
    _login(client)
    resp = client.get("/api/attendance/today?date=04-02-2026")
    assert resp.status_code == 400


def test_holiday_clock_in_is_forbidden(app, calendar, clock):
    calendar.holidays.add(WORK_DATE)
    clock.now = at(9, 0)
    client = app.test_client()
    _login(client)
    resp = client.post("/api/attendance/clock-in")
    assert resp.status_code == 403
    assert resp.get_json()["code"] == "NotAllowedToday"


def test_admin_finalization_endpoints(app, engine):
    engine.clock_in(1, at(9, 0))
    client = app.test_client()

    _login(client)
    assert client.post("/api/admin/attendance/check-absent", json={"date": WORK_DATE.isoformat()}).status_code == 403

    _login(client, user_id=900, role=Role.HR_ADMIN, employee_id=None)
    resp = client.post("/api/admin/attendance/check-absent", json={"date": WORK_DATE.isoformat()})
    assert resp.status_code == 200
    report = resp.get_json()
    assert report["success"] is True
    assert [i["employee_id"] for i in report["data"]] == [2, 3]

    resp = client.post("/api/admin/attendance/finalize", json={"date": WORK_DATE.isoformat(), "pass": "incomplete"})
    assert [i["action"] for i in resp.get_json()["data"]] == ["MARKED_INCOMPLETE"]

    assert client.post("/api/admin/attendance/finalize", json={"pass": "everything"}).status_code == 400


def test_correction_round_trip(app, engine):
    rec = engine.clock_in(1, at(9, 0))
    client = app.test_client()

    _login(client)
    resp = client.post(f"/api/attendance/{rec.record_id}/correction", json={"reason": "Forgot to clock out"})
    assert resp.status_code == 201
    assert client.get("/api/admin/corrections").status_code == 403

    _login(client, user_id=900, role=Role.HR_ADMIN, employee_id=None)
    pending = client.get("/api/admin/corrections").get_json()["data"]
    assert [r["record_id"] for r in pending] == [rec.record_id]

    resp = client.post(
        f"/api/admin/corrections/{rec.record_id}",
        json={"action": "approve", "clock_out": "2026-02-04T17:30:00"},
    )
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["correction_status"] == "approved"
    assert data["status"] == "present"

    missing = client.post(f"/api/admin/corrections/{rec.record_id}", json={"action": "approve"})
    assert missing.status_code == 404
    assert missing.get_json()["code"] == "NoPendingCorrection"

    assert client.get("/api/attendance/9999").status_code == 404


def test_non_string_reason_is_bad_request(app, engine):
    rec = engine.clock_in(1, at(9, 0))
    client = app.test_client()
    _login(client)

    resp = client.post(f"/api/attendance/{rec.record_id}/correction", json={"reason": 5})
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "ValidationError"
    assert client.post(f"/api/attendance/{rec.record_id}/correction", json={}).status_code == 400


def test_cancel_and_list_own_corrections(app, engine):
    rec = engine.clock_in(1, at(9, 0))
    client = app.test_client()
    _login(client)

    client.post(f"/api/attendance/{rec.record_id}/correction", json={"reason": "Forgot to clock out"})
    mine = client.get("/api/attendance/corrections").get_json()["data"]
    assert [r["correction_status"] for r in mine] == ["pending"]

    resp = client.delete(f"/api/attendance/{rec.record_id}/correction")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["correction_status"] is None
    assert client.get("/api/attendance/corrections").get_json()["data"] == []
    assert client.delete(f"/api/attendance/{rec.record_id}/correction").status_code == 404


def test_bulk_approval_and_history(app, engine):
    first = engine.clock_in(1, at(9, 0))
    second = engine.clock_in(2, at(9, 0))
    client = app.test_client()

    _login(client)
    client.post(f"/api/attendance/{first.record_id}/correction", json={"reason": "Forgot to clock out"})
    _login(client, user_id=102, employee_id=2)
    client.post(f"/api/attendance/{second.record_id}/correction", json={"reason": "Forgot to clock out"})
    assert client.post("/api/admin/corrections/bulk", json={"corrections": []}).status_code == 403

    _login(client, user_id=900, role=Role.HR_ADMIN, employee_id=None)
    resp = client.post(
        "/api/admin/corrections/bulk",
        json={
            "corrections": [
                {"record_id": first.record_id, "clock_out": "2026-02-04T18:00:00"},
                {"record_id": second.record_id, "clock_out": "2026-02-04T08:00:00"},
            ],
            "note": "Approved in bulk",
        },
    )
    assert resp.status_code == 200
    report = resp.get_json()
    assert report["stats"] == {"processed": 2, "approved": 1, "failed": 1}
    assert report["errors"][0]["code"] == "InvalidPunchTime"
    assert client.post("/api/admin/corrections/bulk", json={}).status_code == 400

    history = client.get("/api/admin/corrections/history?employee_id=1").get_json()["data"]
    assert [r["record_id"] for r in history] == [first.record_id]
    assert client.get("/api/admin/corrections/history?date_from=2026-13-01").status_code == 400

    _login(client)
    own = client.get("/api/attendance/corrections/history").get_json()["data"]
    assert [r["correction_status"] for r in own] == ["approved"]


def test_finalization_status_endpoints(app, engine, clock):
    engine.clock_in(1, at(9, 0))
    clock.now = at(18, 30)
    client = app.test_client()

    _login(client)
    own = client.get("/api/attendance/finalization-status").get_json()["data"]
    assert own["next_action"]["action"] == "MARKED_INCOMPLETE"
    assert client.get("/api/admin/attendance/finalization-status").status_code == 403

    _login(client, user_id=900, role=Role.HR_ADMIN, employee_id=None)
    day = client.get(f"/api/admin/attendance/finalization-status?date={WORK_DATE.isoformat()}").get_json()["data"]
    assert day["pending"] == {"MARKED_ABSENT": 2, "MARKED_INCOMPLETE": 1}
    bao = client.get("/api/admin/attendance/finalization-status/2").get_json()["data"]
    assert bao["employee_name"] == "Bao Tran"
    assert client.get("/api/admin/attendance/finalization-status/99").status_code == 404
