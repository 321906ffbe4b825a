from datetime import date, datetime, timedelta, timezone

from zelote.services import loancalc
from zelote.services.scheduling import TIME_SLOTS, is_valid_slot, week_bounds, week_days

NOW = datetime(2024, 5, 15, 15, 0, tzinfo=timezone.utc)


def _iso(value: datetime) -> str:
    return loancalc.to_utc_iso(value)


def test_to_utc_iso_uses_trailing_z():
    assert loancalc.to_utc_iso(NOW) == "2024-05-15T15:00:00Z"
    parsed = loancalc.parse_iso("2024-05-15T15:00:00Z")
    assert parsed == NOW


def test_normalize_due_date_treats_bare_dates_as_end_of_local_day():
    # America/Sao_Paulo is UTC-3
    assert loancalc.normalize_due_date("2024-05-20") == "2024-05-21T02:59:59Z"
    assert loancalc.normalize_due_date(date(2024, 5, 20)) == "2024-05-21T02:59:59Z"
    assert loancalc.normalize_due_date("2024-05-20T10:00:00Z") == "2024-05-20T10:00:00Z"
    assert loancalc.normalize_due_date("") is None


def test_durations():
    start = _iso(NOW - timedelta(days=3, hours=5))
    assert loancalc.loan_duration_days(start, now=NOW) == 3
    assert loancalc.loan_duration_days(start, _iso(NOW - timedelta(days=3)), now=NOW) == 0

    assert loancalc.format_duration(0) == "less than 1 day"
    assert loancalc.format_duration(1) == "1 day"
    assert loancalc.format_duration(4) == "4 days"

    assert loancalc.format_detailed_duration(_iso(NOW - timedelta(seconds=20)), now=NOW) == "just now"
    assert loancalc.format_detailed_duration(_iso(NOW - timedelta(minutes=1)), now=NOW) == "1 minute"
    assert loancalc.format_detailed_duration(_iso(NOW - timedelta(minutes=45)), now=NOW) == "45 minutes"
    assert loancalc.format_detailed_duration(_iso(NOW - timedelta(hours=5)), now=NOW) == "5 hours"
    assert loancalc.format_detailed_duration(_iso(NOW - timedelta(days=2, hours=1)), now=NOW) == "2 days"


def test_overdue_helpers():
    past = _iso(NOW - timedelta(days=2, hours=1))
    future = _iso(NOW + timedelta(days=5))
    assert loancalc.is_overdue(past, now=NOW)
    assert not loancalc.is_overdue(future, now=NOW)
    assert not loancalc.is_overdue(None, now=NOW)
    assert loancalc.overdue_days(past, now=NOW) == 2
    assert loancalc.overdue_days(future, now=NOW) == 0
    assert loancalc.days_until_due(future, now=NOW) == 5
    assert loancalc.days_until_due(None, now=NOW) is None


def test_due_status_variant_and_message():
    assert loancalc.due_status_variant(None, now=NOW) == "default"
    assert loancalc.due_status_message(None, now=NOW) == "No due date"

    late = _iso(NOW - timedelta(days=3, hours=2))
    assert loancalc.due_status_variant(late, now=NOW) == "destructive"
    assert loancalc.due_status_message(late, now=NOW) == "Overdue 3 days"
    assert loancalc.due_status_message(_iso(NOW - timedelta(days=1, hours=1)), now=NOW) == "Overdue 1 day"
    hours_late = _iso(NOW - timedelta(hours=2))
    assert loancalc.due_status_message(hours_late, now=NOW) == "Due today"
    assert loancalc.due_status_variant(hours_late, now=NOW) == "destructive"

    assert loancalc.due_status_message(_iso(NOW + timedelta(hours=3)), now=NOW) == "Due today"
    assert loancalc.due_status_message(_iso(NOW + timedelta(days=1, hours=3)), now=NOW) == "Due tomorrow"
    assert loancalc.due_status_message(_iso(NOW + timedelta(days=2, hours=3)), now=NOW) == "Due in 2 days"
    assert loancalc.due_status_variant(_iso(NOW + timedelta(days=2, hours=3)), now=NOW) == "warning"

    far = _iso(NOW + timedelta(days=10))
    assert loancalc.due_status_message(far, now=NOW) == "On time"
    assert loancalc.due_status_variant(far, now=NOW) == "success"
    assert loancalc.due_status_variant(far, due_soon_days=15, now=NOW) == "warning"


def test_local_day_helpers():
    assert loancalc.local_day_bounds("2024-05-15") == ("2024-05-15T03:00:00Z", "2024-05-16T02:59:59Z")
    # 01:00 UTC is still the previous evening in Sao Paulo
    assert loancalc.local_date("2024-05-16T01:00:00Z") == date(2024, 5, 15)


def test_school_week():
    wednesday = date(2024, 5, 15)
    assert week_bounds(wednesday) == (date(2024, 5, 13), date(2024, 5, 17))
    assert week_bounds(date(2024, 5, 19)) == (date(2024, 5, 13), date(2024, 5, 17))
    assert week_days(wednesday)[0] == date(2024, 5, 13)
    assert len(week_days(wednesday)) == 5
    assert TIME_SLOTS[0] == "07h10" and TIME_SLOTS[-1] == "17h40"
    assert is_valid_slot("10h00")
    assert not is_valid_slot("10h05")
