"""Date math for loans: durations, overdue checks and due-date badges.

Timestamps are stored as ISO-8601 UTC strings (``2024-05-01T12:00:00Z``).
Every helper accepts either such strings or aware ``datetime`` objects and an
optional ``now`` so callers and tests can pin the clock.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from ..core.config import settings

DAY_SECONDS = 86400


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_utc_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def utcnow_iso() -> str:
    return to_utc_iso(utcnow())


def parse_iso(ts: str | datetime | None, tz: str | None = None) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values get ``tz`` (default ``settings.TZ``)."""

    if ts is None or ts == "":
        return None
    if isinstance(ts, datetime):
        dt = ts
    else:
        dt = datetime.fromisoformat(ts.strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo(tz or settings.TZ))
    return dt


def normalize_due_date(value: str | date | datetime | None) -> str | None:
    """Store due dates as UTC instants; a bare date means the end of that local day."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_utc_iso(parse_iso(value))
    if isinstance(value, date):
        local = datetime.combine(value, time(23, 59, 59), tzinfo=ZoneInfo(settings.TZ))
        return to_utc_iso(local)
    text = value.strip()
    if len(text) == 10:
        return normalize_due_date(date.fromisoformat(text))
    return to_utc_iso(parse_iso(text))


def _whole_days(later: datetime, earlier: datetime) -> int:
    return math.trunc((later - earlier).total_seconds() / DAY_SECONDS)


def loan_duration_days(loan_date, return_date=None, now: datetime | None = None) -> int:
    start = parse_iso(loan_date)
    end = parse_iso(return_date) or now or utcnow()
    return _whole_days(end, start)


def is_overdue(expected_return_date, now: datetime | None = None) -> bool:
    expected = parse_iso(expected_return_date)
    if expected is None:
        return False
    return (now or utcnow()) > expected


def overdue_days(expected_return_date, now: datetime | None = None) -> int:
    expected = parse_iso(expected_return_date)
    current = now or utcnow()
    if expected is None or current <= expected:
        return 0
    return _whole_days(current, expected)


def days_until_due(expected_return_date, now: datetime | None = None) -> int | None:
    expected = parse_iso(expected_return_date)
    if expected is None:
        return None
    return _whole_days(expected, now or utcnow())


def _plural(count: int, singular: str, plural: str | None = None) -> str:
    return f"{count} {singular if count == 1 else (plural or singular + 's')}"


def format_duration(days: int) -> str:
    if days == 0:
        return "less than 1 day"
    return _plural(days, "day")


def format_detailed_duration(loan_date, return_date=None, now: datetime | None = None) -> str:
    """Days when at least a day has passed, otherwise hours or minutes."""

    start = parse_iso(loan_date)
    end = parse_iso(return_date) or now or utcnow()
    seconds = (end - start).total_seconds()
    days = math.trunc(seconds / DAY_SECONDS)
    if days >= 1:
        return format_duration(days)
    hours = math.trunc(seconds / 3600)
    if hours >= 1:
        return _plural(hours, "hour")
    minutes = math.trunc(seconds / 60)
    if minutes < 1:
        return "just now"
    return _plural(minutes, "minute")


def due_status_variant(expected_return_date, due_soon_days: int | None = None, now: datetime | None = None) -> str:
    """Badge colour for a due date: ``default``, ``destructive``, ``warning`` or ``success``."""

    if due_soon_days is None:
        due_soon_days = settings.DUE_SOON_DAYS
    remaining = days_until_due(expected_return_date, now)
    if remaining is None:
        return "default"
    if is_overdue(expected_return_date, now):
        return "destructive"
    if remaining <= due_soon_days:
        return "warning"
    return "success"


def due_status_message(expected_return_date, now: datetime | None = None) -> str:
    remaining = days_until_due(expected_return_date, now)
    if remaining is None:
        return "No due date"
    late = overdue_days(expected_return_date, now)
    if late >= 1:
        return f"Overdue {_plural(late, 'day')}"
    # Less than a day late still reads as due today.
    if remaining <= 0:
        return "Due today"
    if remaining == 1:
        return "Due tomorrow"
    if remaining <= 2:
        return f"Due in {remaining} days"
    return "On time"


def local_day_bounds(day: date | str) -> tuple[str, str]:
    """UTC ISO instants spanning one calendar day in ``settings.TZ``."""

    if isinstance(day, str):
        day = date.fromisoformat(day.strip()[:10])
    zone = ZoneInfo(settings.TZ)
    start = datetime.combine(day, time(0, 0, 0), tzinfo=zone)
    end = datetime.combine(day, time(23, 59, 59), tzinfo=zone)
    return to_utc_iso(start), to_utc_iso(end)


def local_date(value, tz: str | None = None) -> date | None:
    """Calendar date of a timestamp as seen in the school's time zone."""

    parsed = parse_iso(value)
    if parsed is None:
        return None
    return parsed.astimezone(ZoneInfo(tz or settings.TZ)).date()
