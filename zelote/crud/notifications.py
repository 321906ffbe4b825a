"""In-app notifications and the pollable loan/return activity feed."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy import desc, func, select, update
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import NotFoundError
from ..models.loan import Loan, Return
from ..models.notification import Notification
from ..services.loancalc import to_utc_iso, parse_iso, utcnow_iso

logger = logging.getLogger(__name__)


def create_notifications(
    db: Session,
    recipients: Iterable[str],
    title: str,
    message: str,
    type: str,
    metadata: dict[str, Any] | None = None,
    exclude: str | None = None,
    *,
    commit: bool = True,
) -> list[Notification]:
    """One row per distinct recipient; the acting principal is skipped."""

    now = utcnow_iso()
    created: list[Notification] = []
    seen: set[str] = set()
    for recipient in recipients:
        recipient = (recipient or "").strip()
        if not recipient or recipient == exclude or recipient in seen:
            continue
        seen.add(recipient)
        item = Notification(
            recipient=recipient,
            title=title,
            message=message,
            type=type,
            payload=metadata,
            is_read=False,
            created_at=now,
        )
        db.add(item)
        created.append(item)
    if commit and created:
        db.commit()
    if created:
        logger.info("notification.created", extra={"extra_data": {"type": type, "count": len(created)}})
    return created


def list_notifications(
    db: Session,
    recipient: str,
    limit: int | None = None,
    unread_only: bool = False,
) -> list[Notification]:
    stmt = select(Notification).where(Notification.recipient == recipient)
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    stmt = stmt.order_by(desc(Notification.created_at), desc(Notification.id))
    stmt = stmt.limit(settings.NOTIFICATION_FEED_LIMIT if limit is None else limit)
    return db.execute(stmt).scalars().all()


def unread_count(db: Session, recipient: str) -> int:
    stmt = select(func.count(Notification.id)).where(
        Notification.recipient == recipient,
        Notification.is_read.is_(False),
    )
    return int(db.execute(stmt).scalar() or 0)


def mark_notification_read(db: Session, recipient: str, notification_id: int) -> Notification:
    item = db.get(Notification, notification_id)
    # Other principals' notifications are reported as missing.
    if item is None or item.recipient != recipient:
        raise NotFoundError(f"Notification {notification_id} not found")
    if not item.is_read:
        item.is_read = True
        db.commit()
        db.refresh(item)
    return item


def mark_all_read(db: Session, recipient: str) -> int:
    result = db.execute(
        update(Notification)
        .where(Notification.recipient == recipient, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    db.commit()
    return int(result.rowcount or 0)


def has_notification_since(db: Session, recipient: str, type: str, since_iso: str) -> bool:
    stmt = select(Notification.id).where(
        Notification.recipient == recipient,
        Notification.type == type,
        Notification.created_at >= since_iso,
    )
    return db.execute(stmt).first() is not None


def recent_activity(db: Session, since: str | None = None, limit: int = 50) -> list[dict[str, object]]:
    """Loan and return events merged newest first; clients poll with ``since``.

    Timestamps have whole-second precision, so ``since`` is inclusive: events
    from the cursor second are sent again and clients drop repeats by
    ``activity_id``.
    """

    since_iso = to_utc_iso(parse_iso(since)) if since else None

    loan_stmt = select(Loan).order_by(desc(Loan.created_at), desc(Loan.id)).limit(limit)
    return_stmt = select(Return).order_by(desc(Return.created_at), desc(Return.id)).limit(limit)
    if since_iso:
        loan_stmt = loan_stmt.where(Loan.created_at >= since_iso)
        return_stmt = return_stmt.where(Return.created_at >= since_iso)

    events: list[dict[str, object]] = []
    for loan in db.execute(loan_stmt).unique().scalars():
        events.append(
            {
                "activity_id": f"loan-{loan.id}",
                "activity_type": "loan",
                "activity_time": loan.created_at,
                "device_id": loan.device_id,
                "user_name": loan.borrower_name,
                "user_email": loan.borrower_email,
                "created_by": loan.created_by,
            }
        )
    for record in db.execute(return_stmt).scalars():
        loan = record.loan
        events.append(
            {
                "activity_id": f"return-{record.id}",
                "activity_type": "return",
                "activity_time": record.created_at,
                "device_id": loan.device_id if loan else None,
                "user_name": record.returned_by_name,
                "user_email": record.returned_by_email,
                "created_by": record.created_by,
            }
        )
    events.sort(key=lambda event: event["activity_time"], reverse=True)
    return events[:limit]
