from __future__ import annotations

from datetime import date, datetime, time, timedelta


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into a naive local datetime."""
    parsed = datetime.fromisoformat(value.strip())
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def floor_minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)


def shift_bounds(work_date: date, start: time, end: time) -> tuple[datetime, datetime]:
    """Absolute start/end of a shift on ``work_date``.

    A shift whose end is not after its start is a night shift ending the next day.
    """
    shift_start = datetime.combine(work_date, start)
    shift_end = datetime.combine(work_date, end)
    if shift_end <= shift_start:
        shift_end += timedelta(days=1)
    return shift_start, shift_end
