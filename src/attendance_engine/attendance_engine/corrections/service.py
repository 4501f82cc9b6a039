from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional, Sequence

from ..attendance import rules
from ..attendance.calculations import close_break, derive_metrics
from ..attendance.factory import ClassificationStrategyFactory
from ..attendance.model import AttendanceRecord, validate_record
from ..attendance.repository import AttendanceRepository
from ..audit.sink import AuditEvent, AuditSink, record_safely
from ..common.datetime_utils import now_local
from ..common.validators import optional_id, require_non_empty
from ..core.constants import (
    DEFAULT_HISTORY_LIMIT,
    EVENT_CORRECTION_APPROVE,
    EVENT_CORRECTION_CANCEL,
    EVENT_CORRECTION_REJECT,
    EVENT_CORRECTION_REQUEST,
    EVENT_MANUAL_EDIT,
    REASON_MANUAL_EDIT,
    REASON_MISSING_CLOCK_OUT,
)
from ..core.enums import AttendanceStatus, CorrectionAction, CorrectionStatus
from ..core.exceptions import (
    AuthorizationError,
    DomainError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from ..employees.model import Actor
from ..notifications.notifier import Notifier, notify_safely
from ..shifts.catalog import ShiftCatalog, shift_for_record
from .model import BulkItemError, BulkReport, CorrectionData

logger = logging.getLogger(__name__)


def _require_privileged(actor: Actor, what: str) -> None:
    if not actor.is_privileged:
        raise AuthorizationError(f"Only HR or admins can {what}")


def _parse_action(action: CorrectionAction | str) -> CorrectionAction:
    try:
        return CorrectionAction(action)
    except ValueError:
        raise ValidationError(f"Unknown correction action: {action!r}")


class CorrectionWorkflow:
    """Correction requests (none -> pending -> approved/rejected) and admin manual edits."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        shifts: ShiftCatalog,
        *,
        audit: AuditSink | None = None,
        notifier: Notifier | None = None,
        strategy_factory: ClassificationStrategyFactory | None = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._shifts = shifts
        self._audit = audit
        self._notifier = notifier
        self._factory = strategy_factory or ClassificationStrategyFactory()
        self._clock = clock

    def _locked_update(
        self,
        record_id: int,
        mutate: Callable[[AttendanceRecord], AttendanceRecord],
    ) -> tuple[AttendanceRecord, AttendanceRecord]:
        """Re-read ``record_id`` under its key lock, apply ``mutate`` and persist.

        Returns ``(before, after)``.
        """

        found = self._attendance.get_by_id(record_id)
        if not found:
            raise NotFoundError(f"Attendance record {record_id} not found", code="RecordNotFound")

        with self._attendance.with_lock(found.employee_id, found.work_date):
            current = self._attendance.get(found.employee_id, found.work_date)
            if current is None or current.record_id != found.record_id:
                raise NotFoundError(f"Attendance record {record_id} not found", code="RecordNotFound")
            updated = mutate(current)
            validate_record(updated, now=self._clock())
            return current, self._attendance.upsert(updated)

    def _apply_overrides(self, record: AttendanceRecord, data: CorrectionData) -> AttendanceRecord:
        clock_in = data.clock_in or record.clock_in
        clock_out = data.clock_out or record.clock_out
        if clock_out is not None and clock_in is None:
            raise ValidationError("A clock-out needs a clock-in", code="InvalidPunchTime")
        if clock_in is not None and clock_out is not None and clock_out <= clock_in:
            raise ValidationError("Clock-out must be after clock-in", code="InvalidPunchTime")

        sessions = list(record.break_sessions)
        idx = rules.open_break_index(record)
        if idx is not None and clock_out is not None:
            sessions[idx] = close_break(sessions[idx], clock_out)

        shift_id = record.shift_id
        if data.shift_id is not None:
            shift = self._shifts.get(data.shift_id)
            if shift is None:
                raise ValidationError(f"Shift {data.shift_id} does not exist", code="UnknownShift")
            shift_id = shift.shift_id
        else:
            shift = shift_for_record(self._shifts, record)
            # A corrected clock-in on a record that never had one pins the shift like a punch does.
            if shift_id is None and clock_in is not None:
                shift_id = shift.shift_id
        return derive_metrics(
            replace(
                record,
                shift_id=shift_id,
                clock_in=clock_in,
                clock_out=clock_out,
                break_sessions=tuple(sessions),
            ),
            shift,
        )

    def _reclassify(self, record: AttendanceRecord) -> AttendanceRecord:
        if record.clock_in is not None and record.clock_out is not None:
            shift = shift_for_record(self._shifts, record)
            decision = self._factory.classify(record=record, shift=shift)
            return replace(
                record,
                status=decision.status,
                half_day_type=decision.half_day_type,
                status_reason=decision.reason,
            )
        if record.clock_in is not None and record.status == AttendanceStatus.ABSENT:
            return replace(record, status=AttendanceStatus.INCOMPLETE, status_reason=REASON_MISSING_CLOCK_OUT)
        return record

    def _audit_change(self, action: str, before: AttendanceRecord, after: AttendanceRecord, actor: Actor, description: str) -> None:
        record_safely(
            self._audit,
            AuditEvent(
                action=action,
                employee_id=after.employee_id,
                record_id=after.record_id,
                actor_user_id=actor.user_id,
                description=description,
                old_values=before.to_dict(),
                new_values=after.to_dict(),
            ),
        )

    def request_correction(self, record_id: int, reason: str, requestor: Actor) -> AttendanceRecord:
        reason = require_non_empty(reason, "reason")

        def _mutate(record: AttendanceRecord) -> AttendanceRecord:
            if record.employee_id != requestor.employee_id and not requestor.is_privileged:
                raise AuthorizationError("You can only request corrections for your own attendance")
            if record.correction_status == CorrectionStatus.PENDING:
                raise PreconditionError("A correction is already pending for this record", code="CorrectionAlreadyPending")
            return replace(
                record,
                correction_requested=True,
                correction_status=CorrectionStatus.PENDING,
                correction_reason=reason,
                updated_by=requestor.user_id,
            )

        before, after = self._locked_update(record_id, _mutate)
        self._audit_change(EVENT_CORRECTION_REQUEST, before, after, requestor, reason)
        return after

    def cancel_correction(self, record_id: int, requestor: Actor) -> AttendanceRecord:
        """Withdraw the caller's own pending request; the record goes back to having none."""

        def _mutate(record: AttendanceRecord) -> AttendanceRecord:
            if record.employee_id != requestor.employee_id:
                raise AuthorizationError("You can only cancel your own correction requests")
            if record.correction_status != CorrectionStatus.PENDING:
                raise NotFoundError("No pending correction for this record", code="NoPendingCorrection")
            return replace(
                record,
                correction_requested=False,
                correction_status=None,
                correction_reason=None,
                updated_by=requestor.user_id,
            )

        before, after = self._locked_update(record_id, _mutate)
        self._audit_change(EVENT_CORRECTION_CANCEL, before, after, requestor, "Cancelled by employee")
        logger.info("Correction request for record %s cancelled by user %s", record_id, requestor.user_id)
        return after

    def process_correction(
        self,
        record_id: int,
        action: CorrectionAction | str,
        correction_data: CorrectionData | Mapping[str, Any] | None,
        approver: Actor,
    ) -> AttendanceRecord:
        _require_privileged(approver, "process corrections")
        action = _parse_action(action)
        data = correction_data if isinstance(correction_data, CorrectionData) else CorrectionData.from_payload(correction_data)
        processed_at = self._clock()

        def _mutate(record: AttendanceRecord) -> AttendanceRecord:
            if record.correction_status != CorrectionStatus.PENDING:
                raise NotFoundError("No pending correction for this record", code="NoPendingCorrection")

            if action == CorrectionAction.REJECT:
                return replace(
                    record,
                    correction_status=CorrectionStatus.REJECTED,
                    corrected_by=approver.user_id,
                    corrected_at=processed_at,
                    updated_by=approver.user_id,
                )

            corrected = self._reclassify(self._apply_overrides(record, data))
            return replace(
                corrected,
                correction_status=CorrectionStatus.APPROVED,
                corrected_by=approver.user_id,
                corrected_at=processed_at,
                updated_by=approver.user_id,
            )

        before, after = self._locked_update(record_id, _mutate)

        event = EVENT_CORRECTION_APPROVE if action == CorrectionAction.APPROVE else EVENT_CORRECTION_REJECT
        self._audit_change(event, before, after, approver, data.note or f"Correction {after.correction_status.value}")
        notify_safely(
            self._notifier,
            after.employee_id,
            event,
            {
                "record_id": after.record_id,
                "work_date": after.work_date.isoformat(),
                "correction_status": after.correction_status.value,
                "note": data.note,
            },
        )
        logger.info("Correction %s for record %s by user %s", after.correction_status.value, record_id, approver.user_id)
        return after

    def edit_record(
        self,
        record_id: int,
        correction_data: CorrectionData | Mapping[str, Any] | None,
        editor: Actor,
    ) -> AttendanceRecord:
        """Admin manual edit; the record is parked as incomplete until the next classification pass."""

        _require_privileged(editor, "edit attendance records")
        data = correction_data if isinstance(correction_data, CorrectionData) else CorrectionData.from_payload(correction_data)
        if data.is_empty:
            raise ValidationError("Provide a clock_in, clock_out or shift_id to edit")
        edited_at = self._clock()

        def _mutate(record: AttendanceRecord) -> AttendanceRecord:
            return replace(
                self._apply_overrides(record, data),
                status=AttendanceStatus.INCOMPLETE,
                status_reason=REASON_MANUAL_EDIT,
                half_day_type=None,
                corrected_by=editor.user_id,
                corrected_at=edited_at,
                updated_by=editor.user_id,
            )

        before, after = self._locked_update(record_id, _mutate)
        self._audit_change(EVENT_MANUAL_EDIT, before, after, editor, data.note or REASON_MANUAL_EDIT)
        return after

    def list_pending(self, actor: Actor) -> Sequence[AttendanceRecord]:
        _require_privileged(actor, "review corrections")
        return self._attendance.list_pending_corrections()

    def my_corrections(self, actor: Actor) -> Sequence[AttendanceRecord]:
        """Every correction the caller has requested, pending ones first."""

        if actor.employee_id is None:
            raise NotFoundError("No employee profile for this user", code="EmployeeNotFound")
        return self._attendance.list_corrections(statuses=tuple(CorrectionStatus), employee_id=actor.employee_id)

    def correction_history(
        self,
        actor: Actor,
        *,
        employee_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> Sequence[AttendanceRecord]:
        """Approved and rejected corrections, most recently processed first.

        Employees only ever see their own; HR may filter by employee or leave it open.
        """

        if not actor.is_privileged:
            if actor.employee_id is None:
                raise NotFoundError("No employee profile for this user", code="EmployeeNotFound")
            if employee_id is not None and employee_id != actor.employee_id:
                raise AuthorizationError("You can only view your own correction history")
            employee_id = actor.employee_id
        if date_from and date_to and date_from > date_to:
            raise ValidationError("date_from must not be after date_to")
        return self._attendance.list_corrections(
            statuses=(CorrectionStatus.APPROVED, CorrectionStatus.REJECTED),
            employee_id=employee_id,
            corrected_from=date_from,
            corrected_to=date_to,
            limit=limit,
        )

    def bulk_approve(
        self,
        items: Sequence[Mapping[str, Any]],
        approver: Actor,
        *,
        note: Optional[str] = None,
    ) -> BulkReport:
        """Approve several pending requests; each item is ``{"record_id": ..., <overrides>}``.

        Every record goes through ``process_correction`` on its own, so one bad item is
        reported in ``errors`` and the rest are still approved.
        """

        _require_privileged(approver, "process corrections")
        if not isinstance(items, (list, tuple)) or not items:
            raise ValidationError("corrections must be a non-empty list")

        report = BulkReport(success=True, message="")
        for item in items:
            raw_id = item.get("record_id") if isinstance(item, Mapping) else None
            try:
                if not isinstance(item, Mapping):
                    raise ValidationError("Each correction must be an object")
                record_id = optional_id(raw_id, "record_id")
                if record_id is None:
                    raise ValidationError("record_id is required")
                data = CorrectionData.from_payload({"note": note, **item})
                report.data.append(self.process_correction(record_id, CorrectionAction.APPROVE, data, approver))
            except DomainError as exc:
                logger.warning("Bulk approval skipped record %s: %s (%s)", raw_id, exc.message, exc.code)
                report.errors.append(BulkItemError(record_id=raw_id, code=exc.code, message=exc.message))

        report.message = f"Bulk approval: {len(report.data)} approved, {len(report.errors)} failed"
        logger.info(report.message)
        return report

    def get_record(self, record_id: int, actor: Actor) -> Optional[AttendanceRecord]:
        record = self._attendance.get_by_id(record_id)
        if record and record.employee_id != actor.employee_id and not actor.is_privileged:
            raise AuthorizationError("You can only view your own attendance")
        return record
