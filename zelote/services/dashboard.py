"""Dashboard statistics computed in memory from loan history and devices."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.statuses import DEVICE_AVAILABLE, STATIONARY_DEVICE_STATUSES, USER_STUDENT
from ..crud.loans import all_history_items
from ..models.chromebook import Chromebook
from .loancalc import local_date, parse_iso, utcnow

TOP_CONTEXTS = 10


def traffic_light(rate: float) -> str:
    if rate < 60:
        return "green"
    if rate < 85:
        return "yellow"
    return "red"


def _minutes_between(start: str, end: str) -> float:
    return (parse_iso(end) - parse_iso(start)).total_seconds() // 60


def _label(user_type: str) -> str:
    return user_type.capitalize()


def compute_dashboard_stats(devices: Sequence[Any], history: Sequence[dict[str, Any]]) -> dict[str, Any]:
    """Aggregate figures for the dashboard cards and charts.

    ``devices`` need a ``status`` attribute; ``history`` items are the dicts
    produced by :func:`zelote.crud.loans.loan_history_item`.
    """

    total_chromebooks = len(devices)
    lendable = sum(1 for device in devices if device.status not in STATIONARY_DEVICE_STATUSES)
    available = sum(1 for device in devices if device.status == DEVICE_AVAILABLE)
    active = [item for item in history if not item.get("return_date")]
    completed = [item for item in history if item.get("return_date")]

    usage_rate = (len(active) / lendable * 100) if lendable else 0.0
    completion_rate = (len(completed) / len(history) * 100) if history else 0.0

    total_minutes = 0.0
    durations: dict[str, list[float]] = defaultdict(lambda: [0.0, 0])
    for item in completed:
        minutes = _minutes_between(item["loan_date"], item["return_date"])
        total_minutes += minutes
        bucket = durations[item.get("user_type") or USER_STUDENT]
        bucket[0] += minutes
        bucket[1] += 1
    average_usage = total_minutes / (len(completed) or 1)

    loans_by_user_type: dict[str, int] = defaultdict(int)
    contexts: dict[str, dict[str, Any]] = {}
    for item in history:
        user_type = item.get("user_type") or USER_STUDENT
        loans_by_user_type[user_type] += 1
        key = f"{item['borrower_email']}:{item['purpose']}"
        entry = contexts.setdefault(
            key,
            {
                "context": f"{item['borrower_name']} ({item['purpose']})",
                "name": item["borrower_name"],
                "purpose": item["purpose"],
                "count": 0,
                "user_type": user_type,
            },
        )
        entry["count"] += 1

    top_contexts = sorted(contexts.values(), key=lambda entry: entry["count"], reverse=True)[:TOP_CONTEXTS]
    # Peak occupancy is approximated by the current usage rate.
    max_occupancy = min(100.0, usage_rate)

    return {
        "total_chromebooks": total_chromebooks,
        "available_chromebooks": available,
        "total_active": len(active),
        "usage_rate": round(usage_rate, 2),
        "usage_rate_color": traffic_light(usage_rate),
        "average_usage_minutes": round(average_usage, 2),
        "completion_rate": round(completion_rate, 2),
        "loans_by_user_type": dict(loans_by_user_type),
        "user_type_data": [
            {"name": _label(user_type), "value": count} for user_type, count in loans_by_user_type.items()
        ],
        "average_duration_by_user_type": {
            user_type: round(total / count, 2) for user_type, (total, count) in durations.items()
        },
        "duration_data": [
            {"name": _label(user_type), "value": round(total / count)}
            for user_type, (total, count) in durations.items()
        ],
        "max_occupancy_rate": round(max_occupancy, 2),
        "occupancy_rate_color": traffic_light(max_occupancy),
        "top_loan_contexts": top_contexts,
    }


def dashboard_stats(db: Session, now: datetime | None = None) -> dict[str, Any]:
    devices = db.execute(select(Chromebook)).scalars().all()
    return compute_dashboard_stats(devices, all_history_items(db, now))


def compute_daily_activity(
    history: Sequence[dict[str, Any]],
    days: int = 7,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Loans and returns per local day, oldest first, ending today."""

    today = local_date(now or utcnow())
    buckets = {today - timedelta(days=offset): {"loans": 0, "returns": 0} for offset in range(days)}
    for item in history:
        loan_day = local_date(item["loan_date"])
        if loan_day in buckets:
            buckets[loan_day]["loans"] += 1
        return_day = local_date(item.get("return_date"))
        if return_day in buckets:
            buckets[return_day]["returns"] += 1
    return [
        {"label": day.strftime("%d/%m"), "date": day.isoformat(), **counts}
        for day, counts in sorted(buckets.items())
    ]


def daily_activity(db: Session, days: int = 7, now: datetime | None = None) -> list[dict[str, Any]]:
    return compute_daily_activity(all_history_items(db, now), days=days, now=now)
