from __future__ import annotations

from datetime import date

import pytest

from conftest import WORK_DATE, at
from src.attendance_engine.attendance_engine.core.enums import AttendanceStatus, CorrectionStatus, Role
from src.attendance_engine.attendance_engine.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from src.attendance_engine.attendance_engine.employees.model import Actor

ALICE = Actor(user_id=101, role=Role.EMPLOYEE, employee_id=1)
BAO = Actor(user_id=102, role=Role.EMPLOYEE, employee_id=2)
HR = Actor(user_id=900, role=Role.HR_ADMIN)

DAY2 = date(2026, 2, 5)


@pytest.fixture
def workflow(container):
    return container.correction_workflow


@pytest.fixture
def open_days(engine):
    """Alice and Bao clocked in on two days without clocking out."""
    records = {}
    for emp in (1, 2):
        for day in (WORK_DATE, DAY2):
            records[(emp, day)] = engine.clock_in(emp, at(9, 0, day=day))
    return records


def test_cancel_returns_request_to_none(workflow, open_days, audit):
    rec = open_days[(1, WORK_DATE)]
    workflow.request_correction(rec.record_id, "Forgot to clock out", ALICE)

    cancelled = workflow.cancel_correction(rec.record_id, ALICE)

    assert cancelled.correction_status is None
    assert cancelled.correction_requested is False
    assert cancelled.correction_reason is None
    assert workflow.list_pending(HR) == []
    assert audit.actions[-1] == "attendance_correction_cancel"

    again = workflow.request_correction(rec.record_id, "Second try", ALICE)
    assert again.correction_status == CorrectionStatus.PENDING


def test_cancel_is_owner_only_and_needs_pending_request(workflow, open_days):
    rec = open_days[(1, WORK_DATE)]
    with pytest.raises(NotFoundError) as exc:
        workflow.cancel_correction(rec.record_id, ALICE)
    assert exc.value.code == "NoPendingCorrection"

    workflow.request_correction(rec.record_id, "Forgot to clock out", ALICE)
    with pytest.raises(AuthorizationError):
        workflow.cancel_correction(rec.record_id, BAO)
    with pytest.raises(AuthorizationError):
        workflow.cancel_correction(rec.record_id, HR)

    workflow.process_correction(rec.record_id, "reject", {"note": "No evidence"}, HR)
    with pytest.raises(NotFoundError):
        workflow.cancel_correction(rec.record_id, ALICE)


def test_my_corrections_lists_pending_first(workflow, open_days, clock):
    first = open_days[(1, WORK_DATE)]
    second = open_days[(1, DAY2)]
    workflow.request_correction(first.record_id, "Forgot to clock out", ALICE)
    workflow.request_correction(second.record_id, "Forgot again", ALICE)
    workflow.request_correction(open_days[(2, WORK_DATE)].record_id, "Not Alice", BAO)

    clock.now = at(23, 0, day=DAY2)
    workflow.process_correction(first.record_id, "approve", {"clock_out": "2026-02-04T18:00:00"}, HR)

    mine = workflow.my_corrections(ALICE)
    assert [(r.record_id, r.correction_status) for r in mine] == [
        (second.record_id, CorrectionStatus.PENDING),
        (first.record_id, CorrectionStatus.APPROVED),
    ]
    with pytest.raises(NotFoundError):
        workflow.my_corrections(HR)


def test_history_holds_processed_corrections_newest_first(workflow, open_days, clock):
    for (emp, day), actor in (((1, WORK_DATE), ALICE), ((1, DAY2), ALICE), ((2, WORK_DATE), BAO)):
        workflow.request_correction(open_days[(emp, day)].record_id, "Forgot to clock out", actor)

    clock.now = at(10, 0, day=date(2026, 2, 6))
    workflow.process_correction(open_days[(1, WORK_DATE)].record_id, "approve", {"clock_out": "2026-02-04T18:00:00"}, HR)
    clock.now = at(11, 0, day=date(2026, 2, 7))
    workflow.process_correction(open_days[(2, WORK_DATE)].record_id, "reject", None, HR)

    everyone = workflow.correction_history(HR)
    assert [(r.employee_id, r.correction_status) for r in everyone] == [
        (2, CorrectionStatus.REJECTED),
        (1, CorrectionStatus.APPROVED),
    ]
    assert [r.employee_id for r in workflow.correction_history(HR, employee_id=1)] == [1]
    assert workflow.correction_history(HR, date_from=date(2026, 2, 7)) == [everyone[0]]
    assert workflow.correction_history(HR, date_to=date(2026, 2, 6)) == [everyone[1]]

    own = workflow.correction_history(ALICE)
    assert [(r.work_date, r.correction_status) for r in own] == [(WORK_DATE, CorrectionStatus.APPROVED)]
    with pytest.raises(AuthorizationError):
        workflow.correction_history(ALICE, employee_id=2)
    with pytest.raises(ValidationError):
        workflow.correction_history(HR, date_from=date(2026, 2, 7), date_to=date(2026, 2, 6))


def test_bulk_approve_reports_each_record(workflow, open_days, notifier):
    good = open_days[(1, WORK_DATE)]
    short = open_days[(2, WORK_DATE)]
    not_requested = open_days[(1, DAY2)]
    workflow.request_correction(good.record_id, "Forgot to clock out", ALICE)
    workflow.request_correction(short.record_id, "Left early", BAO)

    report = workflow.bulk_approve(
        [
            {"record_id": good.record_id, "clock_out": "2026-02-04T18:00:00"},
            {"record_id": short.record_id, "clock_out": "2026-02-04T13:00:00"},
            {"record_id": not_requested.record_id, "clock_out": "2026-02-05T18:00:00"},
            {"record_id": 9999},
            {"clock_out": "2026-02-04T18:00:00"},
            "not an object",
        ],
        HR,
        note="Month-end cleanup",
    )

    assert report.success
    assert [(r.employee_id, r.status) for r in report.data] == [
        (1, AttendanceStatus.PRESENT),
        (2, AttendanceStatus.HALF_DAY),
    ]
    assert [(e.record_id, e.code) for e in report.errors] == [
        (not_requested.record_id, "NoPendingCorrection"),
        (9999, "RecordNotFound"),
        (None, "ValidationError"),
        (None, "ValidationError"),
    ]
    assert report.to_dict()["stats"] == {"processed": 6, "approved": 2, "failed": 4}
    assert report.message == "Bulk approval: 2 approved, 4 failed"
    assert [payload["note"] for _, _, payload in notifier.sent] == ["Month-end cleanup", "Month-end cleanup"]
    assert workflow.list_pending(HR) == []


def test_bulk_approve_needs_privilege_and_a_list(workflow):
    with pytest.raises(AuthorizationError):
        workflow.bulk_approve([{"record_id": 1}], ALICE)
    with pytest.raises(ValidationError):
        workflow.bulk_approve([], HR)
    with pytest.raises(ValidationError):
        workflow.bulk_approve(None, HR)


def test_non_string_reason_is_validation_error(workflow, open_days):
    rec = open_days[(1, WORK_DATE)]
    with pytest.raises(ValidationError) as exc:
        workflow.request_correction(rec.record_id, 5, ALICE)
    assert exc.value.message == "reason must be a string"
    with pytest.raises(ValidationError) as exc:
        workflow.request_correction(rec.record_id, None, ALICE)
    assert exc.value.message == "reason is required"
