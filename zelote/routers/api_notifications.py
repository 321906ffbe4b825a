from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..crud.notifications import (
    list_notifications,
    mark_all_read,
    mark_notification_read,
    recent_activity,
    unread_count,
)
from ..db.session import get_db
from ..deps.auth import AuthContext, require_ui_or_token
from ..schemas.notification import ActivityItem, NotificationFeed, NotificationOut

router = APIRouter(prefix="/api/v1", tags=["notifications"])


@router.get("/notifications", response_model=NotificationFeed)
def api_list(
    unread_only: bool = False,
    limit: int | None = None,
    auth: AuthContext = Depends(require_ui_or_token),
    db: Session = Depends(get_db),
):
    items = list_notifications(db, auth.subject, limit=limit, unread_only=unread_only)
    return NotificationFeed(
        unread=unread_count(db, auth.subject),
        items=[NotificationOut.model_validate(item) for item in items],
    )


@router.post("/notifications/read-all")
def api_read_all(auth: AuthContext = Depends(require_ui_or_token), db: Session = Depends(get_db)):
    return {"updated": mark_all_read(db, auth.subject)}


@router.post("/notifications/{notification_id}/read", response_model=NotificationOut)
def api_read(
    notification_id: int,
    auth: AuthContext = Depends(require_ui_or_token),
    db: Session = Depends(get_db),
):
    return mark_notification_read(db, auth.subject, notification_id)


@router.get("/activity", response_model=list[ActivityItem], dependencies=[Depends(require_ui_or_token)])
def api_activity(since: str | None = None, limit: int = 50, db: Session = Depends(get_db)):
    try:
        return recent_activity(db, since=since, limit=limit)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid since timestamp: {since}") from exc
