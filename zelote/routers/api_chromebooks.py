from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..crud.chromebooks import (
    create_chromebook,
    delete_chromebook,
    inventory_stats,
    list_chromebooks,
    next_device_id,
    require_chromebook,
    sync_chromebook_status,
    update_chromebook,
)
from ..db.session import get_db
from ..deps.auth import AuthContext, require_ui_or_token
from ..schemas.chromebook import (
    ChromebookCreate,
    ChromebookOut,
    ChromebookUpdate,
    InventoryStats,
    NextDeviceId,
    SyncResult,
)

router = APIRouter(prefix="/api/v1/chromebooks", tags=["chromebooks"])


@router.get("", response_model=list[ChromebookOut], dependencies=[Depends(require_ui_or_token)])
def api_list(
    status: str | None = None,
    search: str | None = None,
    sort: str = "device_id",
    descending: bool = True,
    limit: int = 100,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    try:
        return list_chromebooks(
            db, status=status, search=search, sort=sort, descending=descending, limit=limit, offset=offset
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/next-id", response_model=NextDeviceId, dependencies=[Depends(require_ui_or_token)])
def api_next_id(db: Session = Depends(get_db)):
    return NextDeviceId(device_id=next_device_id(db))


@router.get("/stats", response_model=InventoryStats, dependencies=[Depends(require_ui_or_token)])
def api_stats(db: Session = Depends(get_db)):
    return inventory_stats(db)


@router.get("/{device_id}", response_model=ChromebookOut, dependencies=[Depends(require_ui_or_token)])
def api_get(device_id: str, db: Session = Depends(get_db)):
    return require_chromebook(db, device_id)


@router.post("", response_model=ChromebookOut, status_code=201)
def api_create(
    payload: ChromebookCreate,
    auth: AuthContext = Depends(require_ui_or_token),
    db: Session = Depends(get_db),
):
    try:
        return create_chromebook(db, payload.model_dump(), actor=auth.subject)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.patch("/{device_id}", response_model=ChromebookOut, dependencies=[Depends(require_ui_or_token)])
def api_update(device_id: str, payload: ChromebookUpdate, db: Session = Depends(get_db)):
    item = require_chromebook(db, device_id)
    data = payload.model_dump(exclude_unset=True)
    if not data:
        return item
    try:
        return update_chromebook(db, item, data)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.delete("/{device_id}", dependencies=[Depends(require_ui_or_token)])
def api_delete(device_id: str, db: Session = Depends(get_db)):
    delete_chromebook(db, require_chromebook(db, device_id))
    return {"status": "deleted"}


@router.post("/{device_id}/sync", response_model=SyncResult, dependencies=[Depends(require_ui_or_token)])
def api_sync(device_id: str, db: Session = Depends(get_db)):
    item, message = sync_chromebook_status(db, device_id)
    return SyncResult(device_id=item.device_id, status=item.status, message=message)
