"""Reservations of devices for a class period, bounded by bookable capacity."""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from ..core.config import settings
from ..core.errors import ConflictError, DomainValidationError, NotFoundError
from ..models.people import Teacher
from ..models.reservation import Reservation
from ..services.loancalc import utcnow_iso
from ..services.scheduling import TIME_SLOTS, is_valid_slot
from .chromebooks import count_bookable_chromebooks
from .notifications import create_notifications

logger = logging.getLogger(__name__)

RESERVATION_FIELDS = (
    "time_slot",
    "teacher_id",
    "justification",
    "quantity_requested",
    "needs_tv",
    "needs_sound",
    "needs_mic",
    "mic_quantity",
    "is_minecraft",
    "classroom",
)


def _as_iso_date(value: date | str) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return date.fromisoformat(str(value).strip()[:10]).isoformat()


def reserved_quantity(db: Session, day: str, time_slot: str) -> int:
    stmt = select(func.coalesce(func.sum(Reservation.quantity_requested), 0)).where(
        Reservation.date == day,
        Reservation.time_slot == time_slot,
    )
    return int(db.execute(stmt).scalar() or 0)


def _clean_base(db: Session, payload: dict) -> tuple[dict, Teacher]:
    data = {key: payload.get(key) for key in RESERVATION_FIELDS}
    if not is_valid_slot(data["time_slot"]):
        raise DomainValidationError(
            f"Invalid time slot {data['time_slot']!r}",
            details={"time_slots": list(TIME_SLOTS)},
        )
    quantity = int(data.get("quantity_requested") or 0)
    if quantity <= 0:
        raise DomainValidationError("quantity_requested must be greater than zero")
    justification = (data.get("justification") or "").strip()
    if not justification:
        raise DomainValidationError("justification is required")
    teacher = db.get(Teacher, data["teacher_id"]) if data.get("teacher_id") is not None else None
    if teacher is None:
        raise NotFoundError(f"Teacher {data.get('teacher_id')} not found")

    data.update(
        quantity_requested=quantity,
        justification=justification,
        needs_tv=bool(data.get("needs_tv")),
        needs_sound=bool(data.get("needs_sound")),
        needs_mic=bool(data.get("needs_mic")),
        mic_quantity=int(data.get("mic_quantity") or 0),
        is_minecraft=bool(data.get("is_minecraft")),
        classroom=(data.get("classroom") or "").strip() or None,
    )
    return data, teacher


def _check_capacity(db: Session, day: str, time_slot: str, quantity: int, capacity: int) -> None:
    booked = reserved_quantity(db, day, time_slot)
    if booked + quantity > capacity:
        remaining = max(capacity - booked, 0)
        raise ConflictError(
            f"Only {remaining} Chromebook(s) left for {day} at {time_slot}",
            details={"date": day, "time_slot": time_slot, "requested": quantity, "available": remaining},
        )


def _notify(db: Session, title: str, message: str, metadata: dict, actor: str | None) -> None:
    create_notifications(
        db,
        settings.RESERVATION_NOTIFY_RECIPIENTS,
        title,
        message,
        "reservation",
        metadata,
        exclude=actor,
    )


def create_reservation(db: Session, payload: dict, actor: str | None = None) -> Reservation:
    """Book devices for one date and slot.

    The confirmation e-mail is sent by the caller (see ``services.mailer``)
    so the database work never waits on the mail provider.
    """

    data, teacher = _clean_base(db, payload)
    day = _as_iso_date(payload.get("date"))
    _check_capacity(db, day, data["time_slot"], data["quantity_requested"], count_bookable_chromebooks(db))

    reservation = Reservation(date=day, created_by=actor, created_at=utcnow_iso(), **data)
    db.add(reservation)
    db.commit()
    db.refresh(reservation)
    logger.info(
        "reservation.created",
        extra={"extra_data": {"reservation_id": reservation.id, "date": day, "slot": reservation.time_slot}},
    )
    _notify(
        db,
        "New reservation",
        f"{teacher.name} reserved {reservation.quantity_requested} Chromebook(s) for {day} at {reservation.time_slot}",
        {"reservation_id": reservation.id, "date": day, "time_slot": reservation.time_slot},
        actor,
    )
    return reservation


def bulk_create_reservations(
    db: Session,
    dates: Iterable[date | str],
    base: dict,
    actor: str | None = None,
) -> list[Reservation]:
    """Book the same slot on several dates; any date over capacity rejects all of them."""

    data, teacher = _clean_base(db, base)
    days = sorted({_as_iso_date(value) for value in dates})
    if not days:
        raise DomainValidationError("At least one date is required")
    capacity = count_bookable_chromebooks(db)
    for day in days:
        _check_capacity(db, day, data["time_slot"], data["quantity_requested"], capacity)

    created_at = utcnow_iso()
    reservations = [Reservation(date=day, created_by=actor, created_at=created_at, **data) for day in days]
    db.add_all(reservations)
    db.commit()
    for reservation in reservations:
        db.refresh(reservation)
    logger.info("reservation.bulk_created", extra={"extra_data": {"count": len(reservations), "slot": data["time_slot"]}})
    _notify(
        db,
        "New reservations",
        f"{teacher.name} reserved {data['quantity_requested']} Chromebook(s) at {data['time_slot']} on {len(days)} date(s)",
        {"reservation_ids": [item.id for item in reservations], "dates": days, "time_slot": data["time_slot"]},
        actor,
    )
    return reservations


def list_reservations(db: Session, start: date | str, end: date | str) -> list[Reservation]:
    stmt = (
        select(Reservation)
        .options(selectinload(Reservation.loans))
        .where(Reservation.date >= _as_iso_date(start), Reservation.date <= _as_iso_date(end))
    )
    reservations = db.execute(stmt).unique().scalars().all()
    order = {slot: index for index, slot in enumerate(TIME_SLOTS)}
    return sorted(reservations, key=lambda item: (item.date, order.get(item.time_slot, len(order)), item.id))


def get_reservation(db: Session, reservation_id: int) -> Reservation | None:
    return db.get(Reservation, reservation_id)


def delete_reservation(db: Session, reservation_id: int) -> None:
    reservation = get_reservation(db, reservation_id)
    if reservation is None:
        raise NotFoundError(f"Reservation {reservation_id} not found")
    for loan in reservation.loans:
        loan.reservation_id = None
    db.delete(reservation)
    db.commit()
    logger.info("reservation.deleted", extra={"extra_data": {"reservation_id": reservation_id}})
