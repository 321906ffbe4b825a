"""Audit summaries: completion, discrepancies and per-location breakdowns."""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Any, Iterable, Sequence
from zoneinfo import ZoneInfo

from ..core.config import settings
from ..models.audit import AuditItem, InventoryAudit
from ..models.chromebook import Chromebook
from .loancalc import local_date, parse_iso, utcnow

UNKNOWN = "Not informed"


def _elapsed_seconds(start: str, end: str | None, now: datetime | None) -> float:
    finish = parse_iso(end) or now or utcnow()
    return (finish - parse_iso(start)).total_seconds()


def format_audit_duration(seconds: float) -> str:
    minutes = int(seconds // 60)
    if minutes < 1:
        return "< 1m"
    hours = minutes // 60
    return f"{hours}h {minutes % 60}m" if hours else f"{minutes}m"


def items_per_hour(count: int, seconds: float) -> float:
    if count == 0:
        return 0.0
    hours = seconds / 3600
    if hours < 0.01:
        return float(count)
    return round(count / hours, 1)


def missing_devices(items: Iterable[AuditItem], devices: Sequence[Chromebook]) -> list[Chromebook]:
    counted = {item.chromebook_id for item in items}
    return [device for device in devices if device.id not in counted]


def _by_location(items: Sequence[AuditItem], devices: Sequence[Chromebook]) -> list[dict[str, Any]]:
    expected = Counter(device.location or UNKNOWN for device in devices)
    counted = Counter(
        item.location_found or (item.chromebook.location if item.chromebook else None) or UNKNOWN
        for item in items
    )
    rows = [
        {
            "location": location,
            "counted": counted.get(location, 0),
            "expected": expected.get(location, 0),
            "discrepancy": counted.get(location, 0) - expected.get(location, 0),
        }
        for location in set(expected) | set(counted)
    ]
    rows.sort(key=lambda row: (-row["counted"], row["location"]))
    return rows


def _by_hour(items: Sequence[AuditItem]) -> list[dict[str, Any]]:
    zone = ZoneInfo(settings.TZ)
    hours = Counter(parse_iso(item.counted_at).astimezone(zone).strftime("%H") for item in items)
    cumulative = 0
    rows = []
    for hour in sorted(hours):
        cumulative += hours[hour]
        rows.append({"hour": hour, "count": hours[hour], "cumulative": cumulative})
    return rows


def audit_report(
    audit: InventoryAudit,
    items: Sequence[AuditItem],
    devices: Sequence[Chromebook],
    now: datetime | None = None,
) -> dict[str, Any]:
    """Summary, discrepancies and breakdowns for one audit.

    ``devices`` is the set the audit was expected to find; ``items`` are the
    recorded counts.
    """

    total_counted = len(items)
    total_expected = audit.total_expected or 0
    completion = (total_counted / total_expected * 100) if total_expected else 0.0
    seconds = _elapsed_seconds(audit.started_at, audit.completed_at, now)

    missing = [
        {
            "device_id": device.device_id,
            "expected_location": device.location,
            "condition_expected": device.condition,
        }
        for device in missing_devices(items, devices)
    ]
    location_mismatches = []
    condition_issues = []
    for item in items:
        device = item.chromebook
        if device is None:
            continue
        if device.location and item.location_found and device.location != item.location_found:
            location_mismatches.append(
                {
                    "device_id": device.device_id,
                    "expected_location": device.location,
                    "location_found": item.location_found,
                }
            )
        if device.condition and item.condition_found and device.condition != item.condition_found:
            condition_issues.append(
                {
                    "device_id": device.device_id,
                    "condition_expected": device.condition,
                    "condition_found": item.condition_found,
                }
            )

    qr = sum(1 for item in items if item.scan_method == "qr_code")
    manual = sum(1 for item in items if item.scan_method == "manual_id")
    conditions = Counter(
        item.condition_found or (item.chromebook.condition if item.chromebook else None) or UNKNOWN
        for item in items
    )

    def _share(count: int) -> float:
        return round(count / total_counted * 100, 1) if total_counted else 0.0

    return {
        "summary": {
            "total_counted": total_counted,
            "total_expected": total_expected,
            "completion_rate": f"{completion:.1f}%",
            "duration": format_audit_duration(seconds),
            "items_per_hour": items_per_hour(total_counted, seconds),
            "average_seconds_per_item": round(seconds / total_counted) if total_counted else 0,
        },
        "discrepancies": {
            "missing": missing,
            "location_mismatches": location_mismatches,
            "condition_issues": condition_issues,
        },
        "statistics": {
            "by_location": _by_location(items, devices),
            "by_method": {
                "qr_code": qr,
                "manual": manual,
                "percentage_qr": _share(qr),
                "percentage_manual": _share(manual),
            },
            "by_condition": [
                {"condition": condition, "count": count, "percentage": _share(count)}
                for condition, count in conditions.most_common()
            ],
            "by_time": _by_hour(items),
        },
        "generated_on": str(local_date(now or utcnow())),
    }
