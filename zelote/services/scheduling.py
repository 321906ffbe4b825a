"""School calendar helpers: class periods and Monday-to-Friday weeks."""

from __future__ import annotations

from datetime import date, timedelta

TIME_SLOTS = (
    "07h10",
    "08h00",
    "08h50",
    "10h00",
    "10h50",
    "11h40",
    "12h30",
    "13h10",
    "14h00",
    "14h50",
    "16h00",
    "16h50",
    "17h40",
)

SCHOOL_DAYS = 5


def is_valid_slot(slot: str | None) -> bool:
    return slot in TIME_SLOTS


def week_bounds(day: date) -> tuple[date, date]:
    """Monday and Friday of the week containing ``day``."""

    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=SCHOOL_DAYS - 1)


def week_days(day: date) -> list[date]:
    monday, _ = week_bounds(day)
    return [monday + timedelta(days=offset) for offset in range(SCHOOL_DAYS)]
