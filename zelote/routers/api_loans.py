from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..crud.loans import (
    LONG_DURATION_HOURS,
    bulk_create_loans,
    create_loan,
    list_active_loans,
    list_loan_history,
    list_long_duration_loans,
    list_purposes,
)
from ..crud.returns import loan_details_for_device
from ..db.session import get_db
from ..deps.auth import AuthContext, require_ui_or_token
from ..schemas.common import BulkResult
from ..schemas.loan import BulkLoanCreate, LoanCreate, LoanHistoryItem, LoanHistoryPage, LoanOut
from ..services.reports import export_history_csv

router = APIRouter(prefix="/api/v1/loans", tags=["loans"])

HISTORY_EXPORT_LIMIT = 10000


@router.post("", response_model=LoanOut, status_code=201)
def api_create(
    payload: LoanCreate,
    auth: AuthContext = Depends(require_ui_or_token),
    db: Session = Depends(get_db),
):
    try:
        return create_loan(db, payload.model_dump(), actor=auth.subject)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.post("/bulk", response_model=BulkResult)
def api_bulk_create(
    payload: BulkLoanCreate,
    auth: AuthContext = Depends(require_ui_or_token),
    db: Session = Depends(get_db),
):
    loans = [loan.model_dump() for loan in payload.to_loans()]
    return bulk_create_loans(db, loans, actor=auth.subject)


@router.get("/active", response_model=list[LoanHistoryItem], dependencies=[Depends(require_ui_or_token)])
def api_active(db: Session = Depends(get_db)):
    return list_active_loans(db)


def _history(db: Session, **filters) -> dict:
    try:
        return list_loan_history(db, **filters)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/long-duration", response_model=list[LoanHistoryItem], dependencies=[Depends(require_ui_or_token)])
def api_long_duration(min_hours: int = Query(LONG_DURATION_HOURS, ge=1), db: Session = Depends(get_db)):
    return list_long_duration_loans(db, min_hours=min_hours)


@router.get("/history", response_model=LoanHistoryPage, dependencies=[Depends(require_ui_or_token)])
def api_history(
    status: str | None = None,
    user_type: str | None = None,
    search: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    descending: bool = True,
    limit: int = 100,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    return _history(
        db,
        status=status,
        user_type=user_type,
        search=search,
        date_from=date_from,
        date_to=date_to,
        descending=descending,
        limit=limit,
        offset=offset,
    )


@router.get("/history.csv", dependencies=[Depends(require_ui_or_token)])
def api_history_csv(
    status: str | None = None,
    user_type: str | None = None,
    search: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    db: Session = Depends(get_db),
):
    page = _history(
        db,
        status=status,
        user_type=user_type,
        search=search,
        date_from=date_from,
        date_to=date_to,
        limit=HISTORY_EXPORT_LIMIT,
    )
    return Response(
        content=export_history_csv(page["items"]),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="loan-history.csv"'},
    )


@router.get("/purposes", response_model=list[str], dependencies=[Depends(require_ui_or_token)])
def api_purposes(prefix: str | None = None, limit: int = 20, db: Session = Depends(get_db)):
    return list_purposes(db, prefix=prefix, limit=limit)


@router.get("/device/{device_id}", response_model=LoanHistoryItem, dependencies=[Depends(require_ui_or_token)])
def api_device_loan(device_id: str, db: Session = Depends(get_db)):
    details = loan_details_for_device(db, device_id)
    if details is None:
        raise HTTPException(status_code=404, detail=f"No open loan for {device_id}")
    return details
