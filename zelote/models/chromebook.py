from __future__ import annotations

from sqlalchemy import Boolean, Column, Integer, Text
from sqlalchemy.orm import relationship

from ..core.statuses import DEVICE_AVAILABLE
from ..db.session import Base


class Chromebook(Base):
    """A lendable device in the school's inventory."""

    __tablename__ = "chromebooks"

    id = Column(Integer, primary_key=True, index=True)
    device_id = Column(Text, nullable=False, unique=True, index=True)
    model = Column(Text, nullable=False)
    manufacturer = Column(Text, nullable=True)
    serial_number = Column(Text, nullable=True, unique=True)
    patrimony_number = Column(Text, nullable=True, unique=True)
    status = Column(Text, nullable=False, default=DEVICE_AVAILABLE, index=True)
    condition = Column(Text, nullable=True)
    location = Column(Text, nullable=True)
    classroom = Column(Text, nullable=True)
    is_deprovisioned = Column(Boolean, nullable=False, default=False)
    created_by = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    loans = relationship("Loan", back_populates="chromebook", passive_deletes=True)


__all__ = ["Chromebook"]
