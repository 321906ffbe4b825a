from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.config import settings
from ..db.session import get_db
from ..deps.auth import AuthContext, require_ui_or_token
from ..schemas.loan import OverdueCheckResult, OverdueLoan, UpcomingDueLoan
from ..services.overdue import list_overdue_loans, list_upcoming_due_loans, notify_overdue_loans

router = APIRouter(prefix="/api/v1/overdue", tags=["overdue"])


@router.get("", response_model=list[OverdueLoan], dependencies=[Depends(require_ui_or_token)])
def api_overdue(db: Session = Depends(get_db)):
    return list_overdue_loans(db)


@router.get("/upcoming", response_model=list[UpcomingDueLoan], dependencies=[Depends(require_ui_or_token)])
def api_upcoming(within_days: int | None = None, db: Session = Depends(get_db)):
    return list_upcoming_due_loans(db, within_days=within_days)


@router.post("/check", response_model=OverdueCheckResult)
def api_check(auth: AuthContext = Depends(require_ui_or_token), db: Session = Depends(get_db)):
    # The caller always receives the summary alongside the configured recipients.
    recipients = list(settings.OVERDUE_NOTIFY_RECIPIENTS)
    if auth.subject not in recipients:
        recipients.append(auth.subject)
    return notify_overdue_loans(db, recipients)
