from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from ..crud.chromebooks import count_bookable_chromebooks
from ..crud.reservations import bulk_create_reservations, create_reservation, delete_reservation, list_reservations
from ..db.session import get_db
from ..deps.auth import AuthContext, require_ui_or_token
from ..schemas.reservation import (
    BulkReservationCreate,
    BulkReservationResult,
    ReservationCreate,
    ReservationOut,
    WeekSchedule,
)
from ..services.loancalc import local_date, utcnow
from ..services.mailer import reservation_email_context, send_reservation_confirmation
from ..services.scheduling import TIME_SLOTS, week_bounds, week_days

router = APIRouter(prefix="/api/v1/reservations", tags=["reservations"])


@router.get("/slots", response_model=list[str], dependencies=[Depends(require_ui_or_token)])
def api_slots():
    return list(TIME_SLOTS)


@router.get("/week", response_model=WeekSchedule, dependencies=[Depends(require_ui_or_token)])
def api_week(day: Optional[date] = None, db: Session = Depends(get_db)):
    start, end = week_bounds(day or local_date(utcnow()))
    return WeekSchedule(
        start=start.isoformat(),
        end=end.isoformat(),
        days=[item.isoformat() for item in week_days(start)],
        time_slots=list(TIME_SLOTS),
        capacity=count_bookable_chromebooks(db),
        reservations=[ReservationOut.model_validate(item) for item in list_reservations(db, start, end)],
    )


@router.get("", response_model=list[ReservationOut], dependencies=[Depends(require_ui_or_token)])
def api_list(start: date, end: date, db: Session = Depends(get_db)):
    if end < start:
        raise HTTPException(status_code=422, detail="end must not be before start")
    return list_reservations(db, start, end)


@router.post("", response_model=ReservationOut, status_code=201)
def api_create(
    payload: ReservationCreate,
    background: BackgroundTasks,
    auth: AuthContext = Depends(require_ui_or_token),
    db: Session = Depends(get_db),
):
    reservation = create_reservation(db, payload.model_dump(), actor=auth.subject)
    background.add_task(send_reservation_confirmation, reservation_email_context(reservation))
    return reservation


@router.post("/bulk", response_model=BulkReservationResult, status_code=201)
def api_bulk_create(
    payload: BulkReservationCreate,
    background: BackgroundTasks,
    auth: AuthContext = Depends(require_ui_or_token),
    db: Session = Depends(get_db),
):
    base = payload.model_dump(exclude={"dates"})
    reservations = bulk_create_reservations(db, payload.dates, base, actor=auth.subject)
    for reservation in reservations:
        background.add_task(send_reservation_confirmation, reservation_email_context(reservation))
    return BulkReservationResult(
        count=len(reservations),
        items=[ReservationOut.model_validate(item) for item in reservations],
    )


@router.delete("/{reservation_id}", dependencies=[Depends(require_ui_or_token)])
def api_delete(reservation_id: int, db: Session = Depends(get_db)):
    delete_reservation(db, reservation_id)
    return {"status": "deleted"}
