"""Inventory audits: physical counts of the fleet."""

from __future__ import annotations

import logging

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from ..core.device_ids import normalize_device_id
from ..core.errors import ConflictError, NotFoundError
from ..core.statuses import (
    AUDIT_CANCELLED,
    AUDIT_COMPLETED,
    AUDIT_IN_PROGRESS,
    DEVICE_OUT_OF_USE,
    SCAN_MANUAL_ID,
    SCAN_METHOD_CHOICES,
    normalize_choice,
)
from ..models.audit import AuditItem, InventoryAudit
from ..models.chromebook import Chromebook
from ..services.loancalc import utcnow_iso
from .chromebooks import get_chromebook_by_device_id

logger = logging.getLogger(__name__)


def get_active_audit(db: Session) -> InventoryAudit | None:
    stmt = (
        select(InventoryAudit)
        .where(InventoryAudit.status == AUDIT_IN_PROGRESS)
        .order_by(desc(InventoryAudit.started_at))
    )
    return db.execute(stmt).scalars().first()


def list_audits(db: Session, limit: int = 50, offset: int = 0) -> list[InventoryAudit]:
    stmt = (
        select(InventoryAudit)
        .order_by(desc(InventoryAudit.started_at), desc(InventoryAudit.id))
        .limit(limit)
        .offset(offset)
    )
    return db.execute(stmt).scalars().all()


def get_audit(db: Session, audit_id: int) -> InventoryAudit | None:
    return db.get(InventoryAudit, audit_id)


def require_audit(db: Session, audit_id: int) -> InventoryAudit:
    audit = get_audit(db, audit_id)
    if audit is None:
        raise NotFoundError(f"Audit {audit_id} not found")
    return audit


def expected_devices(db: Session) -> list[Chromebook]:
    """Devices a count should find: everything not out of use."""

    stmt = (
        select(Chromebook)
        .where(Chromebook.status != DEVICE_OUT_OF_USE)
        .order_by(Chromebook.device_id)
    )
    return db.execute(stmt).scalars().all()


def start_audit(db: Session, name: str, actor: str | None = None, notes: str | None = None) -> InventoryAudit:
    if get_active_audit(db) is not None:
        raise ConflictError("An audit is already in progress")
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValueError("name is required")

    expected = db.execute(
        select(func.count(Chromebook.id)).where(Chromebook.status != DEVICE_OUT_OF_USE)
    ).scalar()
    now = utcnow_iso()
    audit = InventoryAudit(
        name=cleaned,
        status=AUDIT_IN_PROGRESS,
        started_at=now,
        notes=(notes or "").strip() or None,
        total_expected=int(expected or 0),
        total_counted=0,
        created_by=actor,
        created_at=now,
    )
    db.add(audit)
    db.commit()
    db.refresh(audit)
    logger.info("audit.started", extra={"extra_data": {"audit_id": audit.id, "expected": audit.total_expected}})
    return audit


def _require_in_progress(audit: InventoryAudit) -> None:
    if audit.status != AUDIT_IN_PROGRESS:
        raise ConflictError(f"Audit {audit.id} is {audit.status}")


def count_device(
    db: Session,
    audit: InventoryAudit,
    raw_id: str,
    scan_method: str = SCAN_MANUAL_ID,
    *,
    actor: str | None = None,
    location_found: str | None = None,
    condition_found: str | None = None,
    location_confirmed: bool | None = None,
    notes: str | None = None,
) -> AuditItem:
    """Record one scanned device in an audit."""

    _require_in_progress(audit)
    device_id = normalize_device_id(raw_id)
    device = get_chromebook_by_device_id(db, device_id)
    if device is None:
        raise NotFoundError(f"Chromebook {device_id} not found")
    already = db.execute(
        select(AuditItem.id).where(AuditItem.audit_id == audit.id, AuditItem.chromebook_id == device.id)
    ).first()
    if already:
        raise ConflictError(f"Chromebook {device.device_id} was already counted in this audit")

    item = AuditItem(
        audit_id=audit.id,
        chromebook_id=device.id,
        counted_at=utcnow_iso(),
        counted_by=actor,
        scan_method=normalize_choice(scan_method, SCAN_METHOD_CHOICES, SCAN_MANUAL_ID),
        location_found=(location_found or "").strip() or None,
        condition_found=(condition_found or "").strip() or None,
        location_confirmed=location_confirmed,
        notes=(notes or "").strip() or None,
    )
    db.add(item)
    audit.total_counted = (audit.total_counted or 0) + 1
    db.commit()
    db.refresh(item)
    logger.info("audit.counted", extra={"extra_data": {"audit_id": audit.id, "device_id": device.device_id}})
    return item


def _finish(db: Session, audit: InventoryAudit, status: str) -> InventoryAudit:
    _require_in_progress(audit)
    audit.status = status
    audit.completed_at = utcnow_iso()
    db.commit()
    db.refresh(audit)
    logger.info("audit.finished", extra={"extra_data": {"audit_id": audit.id, "status": status}})
    return audit


def complete_audit(db: Session, audit: InventoryAudit) -> InventoryAudit:
    return _finish(db, audit, AUDIT_COMPLETED)


def cancel_audit(db: Session, audit: InventoryAudit) -> InventoryAudit:
    return _finish(db, audit, AUDIT_CANCELLED)
