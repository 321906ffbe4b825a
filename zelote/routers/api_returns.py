from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..crud.returns import bulk_return_devices, force_return, return_device
from ..db.session import get_db
from ..deps.auth import AuthContext, require_ui_or_token
from ..schemas.common import BulkResult
from ..schemas.loan import BulkReturnCreate, ReturnCreate, ReturnOut

router = APIRouter(prefix="/api/v1/returns", tags=["returns"])


@router.post("", response_model=ReturnOut, status_code=201)
def api_return(
    payload: ReturnCreate,
    auth: AuthContext = Depends(require_ui_or_token),
    db: Session = Depends(get_db),
):
    data = payload.model_dump()
    return return_device(db, data.pop("device_id"), data, actor=auth.subject)


@router.post("/bulk", response_model=BulkResult)
def api_bulk_return(
    payload: BulkReturnCreate,
    auth: AuthContext = Depends(require_ui_or_token),
    db: Session = Depends(get_db),
):
    data = payload.model_dump()
    return bulk_return_devices(db, data.pop("device_ids"), data, actor=auth.subject)


@router.post("/force/{loan_id}", response_model=ReturnOut, status_code=201)
def api_force_return(
    loan_id: int,
    auth: AuthContext = Depends(require_ui_or_token),
    db: Session = Depends(get_db),
):
    return force_return(db, loan_id, actor=auth.subject)
