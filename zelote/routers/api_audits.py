from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..crud.audits import (
    cancel_audit,
    complete_audit,
    count_device,
    expected_devices,
    get_active_audit,
    list_audits,
    require_audit,
    start_audit,
)
from ..db.session import get_db
from ..deps.auth import AuthContext, require_ui_or_token
from ..schemas.audit import AuditCount, AuditDetail, AuditItemOut, AuditOut, AuditStart
from ..schemas.chromebook import ChromebookOut
from ..services.audit_report import audit_report, missing_devices

router = APIRouter(prefix="/api/v1/audits", tags=["audits"])


@router.post("", response_model=AuditOut, status_code=201)
def api_start(
    payload: AuditStart,
    auth: AuthContext = Depends(require_ui_or_token),
    db: Session = Depends(get_db),
):
    try:
        return start_audit(db, payload.name, actor=auth.subject, notes=payload.notes)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("", response_model=list[AuditOut], dependencies=[Depends(require_ui_or_token)])
def api_list(limit: int = 50, offset: int = 0, db: Session = Depends(get_db)):
    return list_audits(db, limit=limit, offset=offset)


@router.get("/active", response_model=AuditDetail | None, dependencies=[Depends(require_ui_or_token)])
def api_active(db: Session = Depends(get_db)):
    return get_active_audit(db)


@router.get("/{audit_id}", response_model=AuditDetail, dependencies=[Depends(require_ui_or_token)])
def api_get(audit_id: int, db: Session = Depends(get_db)):
    return require_audit(db, audit_id)


@router.post("/{audit_id}/count", response_model=AuditItemOut, status_code=201)
def api_count(
    audit_id: int,
    payload: AuditCount,
    auth: AuthContext = Depends(require_ui_or_token),
    db: Session = Depends(get_db),
):
    audit = require_audit(db, audit_id)
    return count_device(
        db,
        audit,
        payload.device_id,
        payload.scan_method,
        actor=auth.subject,
        location_found=payload.location_found,
        condition_found=payload.condition_found,
        location_confirmed=payload.location_confirmed,
        notes=payload.notes,
    )


@router.post("/{audit_id}/complete", response_model=AuditOut, dependencies=[Depends(require_ui_or_token)])
def api_complete(audit_id: int, db: Session = Depends(get_db)):
    return complete_audit(db, require_audit(db, audit_id))


@router.post("/{audit_id}/cancel", response_model=AuditOut, dependencies=[Depends(require_ui_or_token)])
def api_cancel(audit_id: int, db: Session = Depends(get_db)):
    return cancel_audit(db, require_audit(db, audit_id))


@router.get("/{audit_id}/report", dependencies=[Depends(require_ui_or_token)])
def api_report(audit_id: int, db: Session = Depends(get_db)):
    audit = require_audit(db, audit_id)
    return audit_report(audit, audit.items, expected_devices(db))


@router.get("/{audit_id}/missing", response_model=list[ChromebookOut], dependencies=[Depends(require_ui_or_token)])
def api_missing(audit_id: int, db: Session = Depends(get_db)):
    audit = require_audit(db, audit_id)
    return missing_devices(audit.items, expected_devices(db))
