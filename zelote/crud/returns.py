"""Returns close open loans and hand the device back to the pool."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.device_ids import normalize_device_id
from ..core.emails import normalize_email
from ..core.errors import ConflictError, DomainValidationError, NotFoundError
from ..core.statuses import USER_STAFF, USER_STUDENT, USER_TYPE_CHOICES, normalize_choice
from ..models.chromebook import Chromebook
from ..models.loan import Loan, Return
from ..services.loancalc import utcnow_iso
from .chromebooks import apply_loan_status
from .loans import bulk_result, get_active_loan_for_device, loan_history_item

logger = logging.getLogger(__name__)


def _returner_fields(payload: dict) -> dict[str, object]:
    name = (payload.get("returned_by_name") or "").strip()
    email = normalize_email(payload.get("returned_by_email"))
    if not name:
        raise DomainValidationError("returned_by_name is required")
    if not email:
        raise DomainValidationError("returned_by_email is required")
    notes = (payload.get("notes") or "").strip() or None
    return {
        "returned_by_name": name,
        "returned_by_ra": (payload.get("returned_by_ra") or "").strip() or None,
        "returned_by_email": email,
        "returned_by_type": normalize_choice(payload.get("returned_by_type"), USER_TYPE_CHOICES, USER_STUDENT),
        "notes": notes,
    }


def return_device(db: Session, device_id: str, payload: dict, actor: str | None = None) -> Return:
    fields = _returner_fields(payload)
    loan = get_active_loan_for_device(db, device_id)
    if loan is None:
        raise ConflictError(f"Chromebook {normalize_device_id(device_id)} has no open loan")

    now = utcnow_iso()
    record = Return(loan_id=loan.id, return_date=now, created_by=actor, created_at=now, **fields)
    db.add(record)
    loan.updated_at = now
    db.flush()
    apply_loan_status(db, loan.chromebook)
    db.commit()
    db.refresh(record)
    logger.info(
        "loan.returned",
        extra={"extra_data": {"loan_id": loan.id, "device_id": loan.device_id}},
    )
    return record


def bulk_return_devices(
    db: Session,
    device_ids: list[str],
    payload: dict,
    actor: str | None = None,
) -> dict[str, object]:
    """Return several devices for one person; devices without an open loan are reported."""

    fields = _returner_fields(payload)
    normalized = [normalize_device_id(device_id) or "" for device_id in device_ids]
    stmt = (
        select(Loan)
        .join(Chromebook, Chromebook.id == Loan.chromebook_id)
        .outerjoin(Return, Return.loan_id == Loan.id)
        .where(Chromebook.device_id.in_(normalized), Return.id.is_(None))
    )
    open_loans = {loan.device_id: loan for loan in db.execute(stmt).unique().scalars()}

    now = utcnow_iso()
    errors: list[dict[str, str]] = []
    pending: list[tuple[Return, Loan]] = []
    for device_id in normalized:
        loan = open_loans.pop(device_id, None)
        if loan is None:
            reason = "no open loan"
            errors.append({"device_id": device_id, "reason": reason})
            logger.warning("return.bulk_skipped", extra={"extra_data": {"device_id": device_id, "reason": reason}})
            continue
        pending.append((Return(loan_id=loan.id, return_date=now, created_by=actor, created_at=now, **fields), loan))

    if not pending:
        return bulk_result(0, errors)

    try:
        for record, loan in pending:
            db.add(record)
            loan.updated_at = now
        db.flush()
        for _, loan in pending:
            apply_loan_status(db, loan.chromebook)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("return.bulk_failed", extra={"extra_data": {"count": len(pending)}})
        errors.extend({"device_id": loan.device_id, "reason": "database error"} for _, loan in pending)
        return bulk_result(0, errors)

    logger.info("return.bulk_created", extra={"extra_data": {"returned": len(pending), "skipped": len(errors)}})
    return bulk_result(len(pending), errors)


def force_return(db: Session, loan_id: int, actor: str | None = None) -> Return:
    """Close an inconsistent loan on behalf of the operator."""

    loan = db.get(Loan, loan_id)
    if loan is None:
        raise NotFoundError(f"Loan {loan_id} not found")
    if loan.return_record is not None:
        raise ConflictError(f"Loan {loan_id} is already closed")

    operator = actor or "system"
    now = utcnow_iso()
    record = Return(
        loan_id=loan.id,
        returned_by_name=operator,
        returned_by_email=operator,
        returned_by_type=USER_STAFF,
        return_date=now,
        notes=f"Forced return. Original borrower: {loan.borrower_name} ({loan.borrower_email})",
        created_by=actor,
        created_at=now,
    )
    db.add(record)
    loan.updated_at = now
    db.flush()
    apply_loan_status(db, loan.chromebook)
    db.commit()
    db.refresh(record)
    logger.warning(
        "loan.force_returned",
        extra={"extra_data": {"loan_id": loan.id, "device_id": loan.device_id, "borrower": loan.borrower_email}},
    )
    return record


def loan_details_for_device(db: Session, device_id: str, now: datetime | None = None) -> dict[str, object] | None:
    loan = get_active_loan_for_device(db, device_id)
    if loan is None:
        return None
    return loan_history_item(loan, now)
