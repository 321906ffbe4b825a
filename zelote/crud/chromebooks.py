"""Inventory CRUD for Chromebooks plus the loan-driven status sync."""

from __future__ import annotations

import logging

from sqlalchemy import asc, desc, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.device_ids import device_id_number, format_device_id, normalize_device_id
from ..core.errors import ConflictError, NotFoundError
from ..core.statuses import (
    BOOKABLE_DEVICE_STATUSES,
    DEVICE_AVAILABLE,
    DEVICE_ON_LOAN,
    DEVICE_STATUS_CHOICES,
    normalize_choice,
)
from ..models.chromebook import Chromebook
from ..models.loan import Loan, Return
from ..services.loancalc import utcnow_iso

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "device_id": Chromebook.device_id,
    "model": Chromebook.model,
    "status": Chromebook.status,
    "location": Chromebook.location,
    "created_at": Chromebook.created_at,
}
UNIQUE_FIELDS = ("device_id", "serial_number", "patrimony_number")
EDITABLE_FIELDS = (
    "device_id",
    "model",
    "manufacturer",
    "serial_number",
    "patrimony_number",
    "status",
    "condition",
    "location",
    "classroom",
    "is_deprovisioned",
)


def _clean_text(value: object) -> object:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _ensure_unique(db: Session, data: dict, exclude_id: int | None = None) -> None:
    for field in UNIQUE_FIELDS:
        value = data.get(field)
        if not value:
            continue
        stmt = select(Chromebook.id).where(getattr(Chromebook, field) == value)
        if exclude_id is not None:
            stmt = stmt.where(Chromebook.id != exclude_id)
        if db.execute(stmt).first():
            raise ConflictError(f"{field} {value!r} is already registered", details={"field": field})


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Device id, serial or patrimony number already registered") from exc


def next_device_id(db: Session) -> str:
    """First id after the highest numeric suffix carrying the configured prefix."""

    highest = 0
    for (device_id,) in db.execute(select(Chromebook.device_id)).all():
        number = device_id_number(device_id)
        if number is not None and number > highest:
            highest = number
    return format_device_id(highest + 1)


def list_chromebooks(
    db: Session,
    *,
    status: str | None = None,
    search: str | None = None,
    limit: int = 100,
    offset: int = 0,
    sort: str = "device_id",
    descending: bool = True,
) -> list[Chromebook]:
    stmt = select(Chromebook)
    if status:
        stmt = stmt.where(Chromebook.status == normalize_choice(status, DEVICE_STATUS_CHOICES, DEVICE_AVAILABLE))
    term = (search or "").strip().lower()
    if term:
        pattern = f"%{term}%"
        stmt = stmt.where(
            or_(
                func.lower(Chromebook.device_id).like(pattern),
                func.lower(Chromebook.serial_number).like(pattern),
                func.lower(Chromebook.patrimony_number).like(pattern),
                func.lower(Chromebook.model).like(pattern),
                func.lower(Chromebook.location).like(pattern),
            )
        )
    column = SORTABLE_FIELDS.get(sort, Chromebook.device_id)
    order = desc(column) if descending else asc(column)
    stmt = stmt.order_by(order, desc(Chromebook.id)).limit(limit).offset(offset)
    return db.execute(stmt).scalars().all()


def get_chromebook(db: Session, item_id: int) -> Chromebook | None:
    return db.get(Chromebook, item_id)


def get_chromebook_by_device_id(db: Session, device_id: str | None) -> Chromebook | None:
    normalized = normalize_device_id(device_id)
    if not normalized:
        return None
    stmt = select(Chromebook).where(Chromebook.device_id == normalized)
    return db.execute(stmt).scalars().first()


def require_chromebook(db: Session, device_id: str) -> Chromebook:
    item = get_chromebook_by_device_id(db, device_id)
    if not item:
        raise NotFoundError(f"Chromebook {device_id} not found")
    return item


def create_chromebook(db: Session, payload: dict, actor: str | None = None) -> Chromebook:
    """Register a device; a missing ``device_id`` is generated from the sequence."""

    data = {key: _clean_text(payload.get(key)) for key in EDITABLE_FIELDS if key in payload}
    if not data.get("model"):
        raise ValueError("model is required")
    data["device_id"] = normalize_device_id(data.get("device_id")) or next_device_id(db)
    data["status"] = normalize_choice(data.get("status"), DEVICE_STATUS_CHOICES, DEVICE_AVAILABLE)
    data["is_deprovisioned"] = bool(data.get("is_deprovisioned") or False)
    _ensure_unique(db, data)

    now = utcnow_iso()
    item = Chromebook(**data, created_by=actor, created_at=now, updated_at=now)
    db.add(item)
    _commit(db)
    db.refresh(item)
    logger.info("chromebook.created", extra={"extra_data": {"device_id": item.device_id}})
    return item


def update_chromebook(db: Session, item: Chromebook, payload: dict) -> Chromebook:
    """Apply known fields; ``created_by`` and timestamps are not editable."""

    data = {key: _clean_text(value) for key, value in payload.items() if key in EDITABLE_FIELDS}
    if "model" in data and not data["model"]:
        raise ValueError("model is required")
    if "device_id" in data:
        data["device_id"] = normalize_device_id(data["device_id"])
        if not data["device_id"]:
            raise ValueError("device_id cannot be blank")
    if "status" in data:
        data["status"] = normalize_choice(data["status"], DEVICE_STATUS_CHOICES, item.status)
    if "is_deprovisioned" in data:
        data["is_deprovisioned"] = bool(data["is_deprovisioned"])
    _ensure_unique(db, data, exclude_id=item.id)
    for key, value in data.items():
        setattr(item, key, value)
    item.updated_at = utcnow_iso()
    _commit(db)
    db.refresh(item)
    return item


def has_open_loan(db: Session, item: Chromebook) -> bool:
    stmt = (
        select(Loan.id)
        .outerjoin(Return, Return.loan_id == Loan.id)
        .where(Loan.chromebook_id == item.id, Return.id.is_(None))
    )
    return db.execute(stmt).first() is not None


def delete_chromebook(db: Session, item: Chromebook) -> None:
    if has_open_loan(db, item):
        raise ConflictError(f"Chromebook {item.device_id} has an open loan and cannot be deleted")
    db.delete(item)
    db.commit()


def apply_loan_status(db: Session, item: Chromebook) -> tuple[str, str]:
    """Recompute ``item.status`` from its loans without committing.

    An open loan forces ``on_loan``; a device marked ``on_loan`` without one
    goes back to ``available``. Fixed, maintenance and out-of-use devices
    keep their status while no loan is open.
    """

    previous = item.status
    if has_open_loan(db, item):
        item.status = DEVICE_ON_LOAN
    elif item.status == DEVICE_ON_LOAN:
        item.status = DEVICE_AVAILABLE
    if item.status == previous:
        return item.status, f"Chromebook {item.device_id} already {item.status}"
    item.updated_at = utcnow_iso()
    return item.status, f"Chromebook {item.device_id} changed from {previous} to {item.status}"


def sync_chromebook_status(db: Session, device_id: str) -> tuple[Chromebook, str]:
    item = require_chromebook(db, device_id)
    _, message = apply_loan_status(db, item)
    db.commit()
    db.refresh(item)
    logger.info("chromebook.synced", extra={"extra_data": {"device_id": item.device_id, "status": item.status}})
    return item, message


def count_bookable_chromebooks(db: Session) -> int:
    stmt = select(func.count(Chromebook.id)).where(Chromebook.status.in_(BOOKABLE_DEVICE_STATUSES))
    return int(db.execute(stmt).scalar() or 0)


def inventory_stats(db: Session) -> dict[str, object]:
    rows = db.execute(select(Chromebook.status, func.count(Chromebook.id)).group_by(Chromebook.status)).all()
    by_status = {status: 0 for status in DEVICE_STATUS_CHOICES}
    for status, count in rows:
        by_status[status] = int(count)
    return {
        "total": sum(by_status.values()),
        "by_status": by_status,
        "bookable": sum(by_status[status] for status in BOOKABLE_DEVICE_STATUSES),
    }
