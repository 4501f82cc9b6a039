"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_HISTORY_LIMIT = 30
DEFAULT_LOCK_TIMEOUT_SECONDS = 5.0

# Shift fallbacks used when the catalog has no explicit value.
DEFAULT_GRACE_MINUTES = 0
DEFAULT_EARLY_DEPARTURE_THRESHOLD_MINUTES = 0
DEFAULT_FULL_DAY_HOURS = 8.0
DEFAULT_HALF_DAY_HOURS = 4.0

# Employees are finalized only this long after their shift ends.
DEFAULT_FINALIZATION_GRACE_MINUTES = 15

# Job-wide MySQL named lock; one finalization run at a time across processes.
FINALIZATION_LOCK_NAME = "attendance:finalization"

# Monday=0 ... Sunday=6
DEFAULT_WEEKLY_OFF_DAYS = (5, 6)

REASON_NO_CLOCK_IN = "No clock-in recorded"
REASON_MISSING_CLOCK_OUT = "Missing clock-out"
REASON_MANUAL_EDIT = "Manually edited - pending re-evaluation"

# Audit / notification event kinds
EVENT_CLOCK_IN = "attendance_clock_in"
EVENT_CLOCK_OUT = "attendance_clock_out"
EVENT_BREAK_IN = "attendance_break_in"
EVENT_BREAK_OUT = "attendance_break_out"
EVENT_CORRECTION_REQUEST = "attendance_correction_request"
EVENT_CORRECTION_APPROVE = "attendance_correction_approve"
EVENT_CORRECTION_REJECT = "attendance_correction_reject"
EVENT_CORRECTION_CANCEL = "attendance_correction_cancel"
EVENT_MANUAL_EDIT = "attendance_manual_edit"
EVENT_AUTO_ABSENT = "attendance_auto_absent"
EVENT_CORRECTION_REQUIRED = "attendance_correction_required"
EVENT_CLASSIFIED = "attendance_classified"
