from datetime import timedelta

import pytest

from zelote.core.errors import ConflictError, NotFoundError
from zelote.crud.audits import (
    cancel_audit,
    complete_audit,
    count_device,
    expected_devices,
    get_active_audit,
    start_audit,
)
from zelote.crud.chromebooks import create_chromebook
from zelote.services.audit_report import audit_report, format_audit_duration, items_per_hour, missing_devices
from zelote.services.loancalc import parse_iso


@pytest.fixture()
def fleet(db_session):
    devices = [
        create_chromebook(db_session, {"model": "Acer", "location": "Library", "condition": "good"}),
        create_chromebook(db_session, {"model": "Acer", "location": "Library", "condition": "good"}),
        create_chromebook(db_session, {"model": "Acer", "location": "Lab 2", "condition": "good"}),
        create_chromebook(db_session, {"model": "Acer", "status": "out_of_use"}),
    ]
    return devices


def test_start_audit_counts_expected_devices(db_session, fleet):
    audit = start_audit(db_session, " May count ", actor="ui:admin")
    assert audit.name == "May count"
    assert audit.status == "in_progress"
    assert audit.total_expected == 3
    assert get_active_audit(db_session).id == audit.id

    with pytest.raises(ConflictError):
        start_audit(db_session, "Second", actor="ui:admin")


def test_count_device_rules(db_session, fleet):
    audit = start_audit(db_session, "May count")
    item = count_device(db_session, audit, "1", "qr_code", actor="ui:admin", location_found="Library")
    assert item.device_id == "CHR001"
    assert item.scan_method == "qr_code"
    assert audit.total_counted == 1

    with pytest.raises(ConflictError):
        count_device(db_session, audit, "chr001")
    with pytest.raises(NotFoundError):
        count_device(db_session, audit, "CHR999")
    with pytest.raises(ValueError):
        count_device(db_session, audit, "2", "barcode")

    complete_audit(db_session, audit)
    assert audit.status == "completed"
    assert audit.completed_at is not None
    with pytest.raises(ConflictError):
        count_device(db_session, audit, "2")
    with pytest.raises(ConflictError):
        cancel_audit(db_session, audit)


def test_cancel_allows_new_audit(db_session, fleet):
    audit = start_audit(db_session, "First")
    cancel_audit(db_session, audit)
    assert audit.status == "cancelled"
    assert get_active_audit(db_session) is None
    assert start_audit(db_session, "Second").status == "in_progress"


def test_audit_report(db_session, fleet):
    audit = start_audit(db_session, "May count")
    count_device(db_session, audit, "1", "qr_code", location_found="Library")
    count_device(db_session, audit, "2", "manual_id", location_found="Lab 2", condition_found="broken screen")
    db_session.refresh(audit)

    devices = expected_devices(db_session)
    now = parse_iso(audit.started_at) + timedelta(hours=1, minutes=30)
    report = audit_report(audit, audit.items, devices, now=now)

    summary = report["summary"]
    assert summary["total_counted"] == 2
    assert summary["total_expected"] == 3
    assert summary["completion_rate"] == "66.7%"
    assert summary["duration"] == "1h 30m"
    assert summary["items_per_hour"] == 1.3

    discrepancies = report["discrepancies"]
    assert [entry["device_id"] for entry in discrepancies["missing"]] == ["CHR003"]
    assert discrepancies["location_mismatches"] == [
        {"device_id": "CHR002", "expected_location": "Library", "location_found": "Lab 2"}
    ]
    assert discrepancies["condition_issues"][0]["condition_found"] == "broken screen"

    by_location = {row["location"]: row for row in report["statistics"]["by_location"]}
    assert by_location["Library"] == {"location": "Library", "counted": 1, "expected": 2, "discrepancy": -1}
    assert by_location["Lab 2"]["counted"] == 1
    assert report["statistics"]["by_method"]["percentage_qr"] == 50.0
    assert report["statistics"]["by_time"][-1]["cumulative"] == 2

    assert [device.device_id for device in missing_devices(audit.items, devices)] == ["CHR003"]


def test_duration_helpers():
    assert format_audit_duration(30) == "< 1m"
    assert format_audit_duration(45 * 60) == "45m"
    assert format_audit_duration(125 * 60) == "2h 5m"
    assert items_per_hour(0, 3600) == 0
    assert items_per_hour(5, 10) == 5
    assert items_per_hour(10, 7200) == 5.0
