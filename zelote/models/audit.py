from __future__ import annotations

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.statuses import AUDIT_IN_PROGRESS
from ..db.session import Base


class InventoryAudit(Base):
    """A physical count of the fleet."""

    __tablename__ = "inventory_audits"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default=AUDIT_IN_PROGRESS, index=True)
    started_at = Column(Text, nullable=False)
    completed_at = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    total_expected = Column(Integer, nullable=False, default=0)
    total_counted = Column(Integer, nullable=False, default=0)
    created_by = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)

    items = relationship(
        "AuditItem",
        back_populates="audit",
        cascade="all, delete-orphan",
        order_by="AuditItem.counted_at",
    )


class AuditItem(Base):
    __tablename__ = "audit_items"
    __table_args__ = (UniqueConstraint("audit_id", "chromebook_id", name="uq_audit_items_device"),)

    id = Column(Integer, primary_key=True, index=True)
    audit_id = Column(Integer, ForeignKey("inventory_audits.id"), nullable=False, index=True)
    chromebook_id = Column(Integer, ForeignKey("chromebooks.id"), nullable=False, index=True)
    counted_at = Column(Text, nullable=False)
    counted_by = Column(Text, nullable=True)
    scan_method = Column(Text, nullable=False)
    location_found = Column(Text, nullable=True)
    condition_found = Column(Text, nullable=True)
    location_confirmed = Column(Boolean, nullable=True)
    notes = Column(Text, nullable=True)

    audit = relationship("InventoryAudit", back_populates="items")
    chromebook = relationship("Chromebook", lazy="joined")

    @property
    def device_id(self) -> str | None:
        return self.chromebook.device_id if self.chromebook else None


__all__ = ["AuditItem", "InventoryAudit"]
