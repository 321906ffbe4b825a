"""Loans: creation (single and bulk), history queries and autocomplete."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import and_, asc, desc, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.device_ids import normalize_device_id
from ..core.emails import normalize_email, validate_email
from ..core.errors import ConflictError, DomainValidationError, NotFoundError
from ..core.statuses import (
    DEVICE_AVAILABLE,
    DEVICE_ON_LOAN,
    LOAN_ACTIVE,
    LOAN_INDIVIDUAL,
    LOAN_OVERDUE,
    LOAN_RETURNED,
    LOAN_STATUS_CHOICES,
    LOAN_TYPE_CHOICES,
    USER_STUDENT,
    USER_TYPE_CHOICES,
    normalize_choice,
)
from ..models.chromebook import Chromebook
from ..models.loan import Loan, Return
from ..models.reservation import Reservation
from ..services.loancalc import (
    due_status_message,
    due_status_variant,
    format_detailed_duration,
    local_day_bounds,
    normalize_due_date,
    to_utc_iso,
    utcnow,
)
from .chromebooks import get_chromebook_by_device_id

logger = logging.getLogger(__name__)

LONG_DURATION_HOURS = 24


def _text(value: object) -> str | None:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def _now_iso(now: datetime | None) -> str:
    return to_utc_iso(now or utcnow())


def bulk_result(success_count: int, errors: list[dict[str, str]]) -> dict[str, object]:
    return {"success_count": success_count, "error_count": len(errors), "errors": errors}


def prepare_loan_fields(db: Session, payload: dict) -> dict[str, object]:
    """Validate borrower data shared by single and bulk loans.

    Raises ``DomainValidationError`` for a bad e-mail and ``NotFoundError``
    for an unknown reservation.
    """

    user_type = normalize_choice(payload.get("user_type"), USER_TYPE_CHOICES, USER_STUDENT)
    borrower_name = _text(payload.get("borrower_name"))
    purpose = _text(payload.get("purpose"))
    if not borrower_name:
        raise DomainValidationError("borrower_name is required")
    if not purpose:
        raise DomainValidationError("purpose is required")
    check = validate_email(payload.get("borrower_email"), user_type)
    if not check.valid:
        raise DomainValidationError(check.message, details={"field": "borrower_email"})
    reservation_id = payload.get("reservation_id")
    if reservation_id is not None and db.get(Reservation, reservation_id) is None:
        raise NotFoundError(f"Reservation {reservation_id} not found")
    return {
        "borrower_name": borrower_name,
        "borrower_ra": _text(payload.get("borrower_ra")),
        "borrower_email": normalize_email(payload.get("borrower_email")),
        "purpose": purpose,
        "user_type": user_type,
        "loan_type": normalize_choice(payload.get("loan_type"), LOAN_TYPE_CHOICES, LOAN_INDIVIDUAL),
        "expected_return_date": normalize_due_date(payload.get("expected_return_date")),
        "reservation_id": reservation_id,
    }


def create_loan(db: Session, payload: dict, actor: str | None = None) -> Loan:
    device_id = normalize_device_id(payload.get("device_id"))
    device = get_chromebook_by_device_id(db, device_id)
    if device is None or device.status != DEVICE_AVAILABLE:
        raise ConflictError(f"Chromebook {device_id} not found or not available")
    fields = prepare_loan_fields(db, payload)

    now = _now_iso(None)
    loan = Loan(
        chromebook_id=device.id,
        loan_date=now,
        created_by=actor,
        created_at=now,
        updated_at=now,
        **fields,
    )
    db.add(loan)
    device.status = DEVICE_ON_LOAN
    device.updated_at = now
    db.commit()
    db.refresh(loan)
    logger.info(
        "loan.created",
        extra={"extra_data": {"loan_id": loan.id, "device_id": device.device_id, "borrower": loan.borrower_email}},
    )
    return loan


def bulk_create_loans(db: Session, payloads: list[dict], actor: str | None = None) -> dict[str, object]:
    """Lend several devices at once; invalid entries are skipped and reported."""

    normalized = [normalize_device_id(payload.get("device_id")) or "" for payload in payloads]
    devices = {
        device.device_id: device
        for device in db.execute(select(Chromebook).where(Chromebook.device_id.in_(normalized))).scalars()
    }

    now = _now_iso(None)
    errors: list[dict[str, str]] = []
    pending: list[tuple[Loan, Chromebook]] = []
    claimed: set[str] = set()
    for device_id, payload in zip(normalized, payloads):
        device = devices.get(device_id)
        if device is None or device.status != DEVICE_AVAILABLE or device_id in claimed:
            reason = "not found or not available"
        else:
            try:
                fields = prepare_loan_fields(db, payload)
            except (DomainValidationError, NotFoundError, ValueError) as exc:
                reason = str(exc)
            else:
                claimed.add(device_id)
                loan = Loan(
                    chromebook_id=device.id,
                    loan_date=now,
                    created_by=actor,
                    created_at=now,
                    updated_at=now,
                    **fields,
                )
                pending.append((loan, device))
                continue
        errors.append({"device_id": device_id or str(payload.get("device_id") or ""), "reason": reason})
        logger.warning("loan.bulk_skipped", extra={"extra_data": {"device_id": device_id, "reason": reason}})

    if not pending:
        return bulk_result(0, errors)

    try:
        for loan, device in pending:
            db.add(loan)
            device.status = DEVICE_ON_LOAN
            device.updated_at = now
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("loan.bulk_failed", extra={"extra_data": {"count": len(pending)}})
        errors.extend({"device_id": device.device_id, "reason": "database error"} for _, device in pending)
        return bulk_result(0, errors)

    logger.info("loan.bulk_created", extra={"extra_data": {"created": len(pending), "skipped": len(errors)}})
    return bulk_result(len(pending), errors)


def _open_loan_stmt():
    return (
        select(Loan)
        .outerjoin(Return, Return.loan_id == Loan.id)
        .where(Return.id.is_(None))
    )


def get_active_loan_for_device(db: Session, device_id: str) -> Loan | None:
    normalized = normalize_device_id(device_id)
    if not normalized:
        return None
    stmt = (
        _open_loan_stmt()
        .join(Chromebook, Chromebook.id == Loan.chromebook_id)
        .where(Chromebook.device_id == normalized)
        .order_by(desc(Loan.loan_date), desc(Loan.id))
    )
    return db.execute(stmt).unique().scalars().first()


def loan_history_item(loan: Loan, now: datetime | None = None) -> dict[str, object]:
    """Flatten a loan and its return into the history row shown to operators."""

    returned = loan.return_record
    current = now or utcnow()
    status = loan.status_at(to_utc_iso(current))
    return {
        "id": loan.id,
        "device_id": loan.device_id,
        "chromebook_model": loan.chromebook.model if loan.chromebook else None,
        "borrower_name": loan.borrower_name,
        "borrower_ra": loan.borrower_ra,
        "borrower_email": loan.borrower_email,
        "purpose": loan.purpose,
        "user_type": loan.user_type,
        "loan_type": loan.loan_type,
        "loan_date": loan.loan_date,
        "expected_return_date": loan.expected_return_date,
        "return_date": returned.return_date if returned else None,
        "returned_by_name": returned.returned_by_name if returned else None,
        "returned_by_email": returned.returned_by_email if returned else None,
        "returned_by_type": returned.returned_by_type if returned else None,
        "return_notes": returned.notes if returned else None,
        "status": status,
        "due_message": None if returned else due_status_message(loan.expected_return_date, now=current),
        "due_variant": None if returned else due_status_variant(loan.expected_return_date, now=current),
        "duration": format_detailed_duration(
            loan.loan_date, returned.return_date if returned else None, now=current
        ),
    }


def list_active_loans(db: Session, now: datetime | None = None) -> list[dict[str, object]]:
    stmt = _open_loan_stmt().order_by(desc(Loan.loan_date), desc(Loan.id))
    loans = db.execute(stmt).unique().scalars().all()
    return [loan_history_item(loan, now) for loan in loans]


def list_long_duration_loans(
    db: Session,
    min_hours: int = LONG_DURATION_HOURS,
    now: datetime | None = None,
) -> list[dict[str, object]]:
    """Open loans lent at least ``min_hours`` ago, oldest first."""

    current = now or utcnow()
    cutoff = to_utc_iso(current - timedelta(hours=min_hours))
    stmt = _open_loan_stmt().where(Loan.loan_date <= cutoff).order_by(asc(Loan.loan_date), asc(Loan.id))
    loans = db.execute(stmt).unique().scalars().all()
    return [loan_history_item(loan, current) for loan in loans]


def _history_filters(
    *,
    status: str | None,
    user_type: str | None,
    search: str | None,
    date_from: str | None,
    date_to: str | None,
    now_iso: str,
) -> list:
    clauses = []
    if status:
        status = normalize_choice(status, LOAN_STATUS_CHOICES, LOAN_ACTIVE)
        if status == LOAN_RETURNED:
            clauses.append(Return.id.is_not(None))
        elif status == LOAN_OVERDUE:
            clauses.append(
                and_(
                    Return.id.is_(None),
                    Loan.expected_return_date.is_not(None),
                    Loan.expected_return_date < now_iso,
                )
            )
        else:
            clauses.append(
                and_(
                    Return.id.is_(None),
                    or_(Loan.expected_return_date.is_(None), Loan.expected_return_date >= now_iso),
                )
            )
    if user_type:
        clauses.append(Loan.user_type == normalize_choice(user_type, USER_TYPE_CHOICES, USER_STUDENT))
    term = (search or "").strip().lower()
    if term:
        pattern = f"%{term}%"
        clauses.append(
            or_(
                func.lower(Loan.borrower_name).like(pattern),
                func.lower(Loan.borrower_email).like(pattern),
                func.lower(Loan.purpose).like(pattern),
                func.lower(Chromebook.device_id).like(pattern),
            )
        )
    if date_from:
        clauses.append(Loan.loan_date >= local_day_bounds(date_from)[0])
    if date_to:
        clauses.append(Loan.loan_date <= local_day_bounds(date_to)[1])
    return clauses


def list_loan_history(
    db: Session,
    *,
    status: str | None = None,
    user_type: str | None = None,
    search: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    descending: bool = True,
    limit: int = 100,
    offset: int = 0,
    now: datetime | None = None,
) -> dict[str, object]:
    """Filtered page of loan history plus the total number of matches."""

    current = now or utcnow()
    clauses = _history_filters(
        status=status,
        user_type=user_type,
        search=search,
        date_from=date_from,
        date_to=date_to,
        now_iso=to_utc_iso(current),
    )

    count_stmt = (
        select(func.count(Loan.id))
        .select_from(Loan)
        .join(Chromebook, Chromebook.id == Loan.chromebook_id)
        .outerjoin(Return, Return.loan_id == Loan.id)
        .where(*clauses)
    )
    total = int(db.execute(count_stmt).scalar() or 0)

    order = desc(Loan.loan_date) if descending else asc(Loan.loan_date)
    stmt = (
        select(Loan)
        .join(Chromebook, Chromebook.id == Loan.chromebook_id)
        .outerjoin(Return, Return.loan_id == Loan.id)
        .where(*clauses)
        .order_by(order, desc(Loan.id))
        .limit(limit)
        .offset(offset)
    )
    loans = db.execute(stmt).unique().scalars().all()
    return {"total": total, "items": [loan_history_item(loan, current) for loan in loans]}


def all_history_items(db: Session, now: datetime | None = None) -> list[dict[str, object]]:
    stmt = select(Loan).order_by(desc(Loan.loan_date), desc(Loan.id))
    loans = db.execute(stmt).unique().scalars().all()
    return [loan_history_item(loan, now) for loan in loans]


def list_purposes(db: Session, prefix: str | None = None, limit: int = 20) -> list[str]:
    stmt = select(Loan.purpose).distinct()
    term = (prefix or "").strip().lower()
    if term:
        stmt = stmt.where(func.lower(Loan.purpose).like(f"{term}%"))
    stmt = stmt.order_by(Loan.purpose).limit(limit)
    return [purpose for (purpose,) in db.execute(stmt).all()]
