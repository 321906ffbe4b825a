"""Overdue monitoring: late and soon-due loans plus the periodic notifier."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Iterable

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from ..core.config import settings
from ..crud.notifications import create_notifications, has_notification_since
from ..db.session import SessionLocal
from ..models.loan import Loan, Return
from .loancalc import days_until_due, local_day_bounds, local_date, overdue_days, to_utc_iso, utcnow

logger = logging.getLogger(__name__)

NOTIFY_OVERDUE = "overdue"
NOTIFY_DUE_SOON = "due_soon"


def _open_loans_with_due_date(db: Session, *clauses) -> list[Loan]:
    stmt = (
        select(Loan)
        .outerjoin(Return, Return.loan_id == Loan.id)
        .where(and_(Return.id.is_(None), Loan.expected_return_date.is_not(None), *clauses))
    )
    return db.execute(stmt).unique().scalars().all()


def _row(loan: Loan) -> dict[str, object]:
    return {
        "loan_id": loan.id,
        "device_id": loan.device_id,
        "borrower_name": loan.borrower_name,
        "borrower_email": loan.borrower_email,
        "loan_date": loan.loan_date,
        "expected_return_date": loan.expected_return_date,
    }


def list_overdue_loans(db: Session, now: datetime | None = None) -> list[dict[str, object]]:
    current = now or utcnow()
    loans = _open_loans_with_due_date(db, Loan.expected_return_date < to_utc_iso(current))
    rows = [dict(_row(loan), days_overdue=overdue_days(loan.expected_return_date, current)) for loan in loans]
    rows.sort(key=lambda row: (row["expected_return_date"], row["loan_id"]))
    return rows


def list_upcoming_due_loans(
    db: Session,
    within_days: int | None = None,
    now: datetime | None = None,
) -> list[dict[str, object]]:
    current = now or utcnow()
    window = settings.DUE_SOON_DAYS if within_days is None else within_days
    loans = _open_loans_with_due_date(
        db,
        Loan.expected_return_date >= to_utc_iso(current),
        Loan.expected_return_date <= to_utc_iso(current + timedelta(days=window)),
    )
    rows = [dict(_row(loan), days_until_due=days_until_due(loan.expected_return_date, current)) for loan in loans]
    rows.sort(key=lambda row: (row["expected_return_date"], row["loan_id"]))
    return rows


def notify_overdue_loans(
    db: Session,
    recipients: Iterable[str] | None = None,
    now: datetime | None = None,
) -> dict[str, int]:
    """Write the daily overdue and due-soon summaries.

    Each recipient gets at most one notification of each type per local day.
    """

    current = now or utcnow()
    targets = list(recipients if recipients is not None else settings.OVERDUE_NOTIFY_RECIPIENTS)
    overdue = list_overdue_loans(db, current)
    upcoming = list_upcoming_due_loans(db, now=current)
    day_start, _ = local_day_bounds(local_date(current))

    written = 0
    summaries = (
        (
            NOTIFY_OVERDUE,
            overdue,
            "Overdue loans",
            f"{len(overdue)} loan(s) are past their return date",
        ),
        (
            NOTIFY_DUE_SOON,
            upcoming,
            "Loans due soon",
            f"{len(upcoming)} loan(s) are due within {settings.DUE_SOON_DAYS} day(s)",
        ),
    )
    for kind, rows, title, message in summaries:
        if not rows:
            continue
        pending = [recipient for recipient in targets if not has_notification_since(db, recipient, kind, day_start)]
        created = create_notifications(
            db,
            pending,
            title,
            message,
            kind,
            {"loan_ids": [row["loan_id"] for row in rows], "count": len(rows)},
        )
        written += len(created)

    logger.info(
        "overdue.checked",
        extra={"extra_data": {"overdue": len(overdue), "upcoming": len(upcoming), "notifications": written}},
    )
    return {"overdue": len(overdue), "upcoming": len(upcoming), "notifications_created": written}


def run_overdue_check() -> dict[str, int]:
    db = SessionLocal()
    try:
        return notify_overdue_loans(db)
    finally:
        db.close()


async def overdue_monitor(interval_minutes: int | None = None) -> None:
    """Re-run the overdue check forever; started with the application."""

    minutes = settings.OVERDUE_CHECK_INTERVAL_MIN if interval_minutes is None else interval_minutes
    while True:
        try:
            await asyncio.to_thread(run_overdue_check)
        except Exception:
            logger.exception("overdue.check_failed")
        await asyncio.sleep(minutes * 60)
