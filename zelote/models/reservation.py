from __future__ import annotations

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base


class Reservation(Base):
    """Devices booked by a teacher for one date and class period."""

    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Text, nullable=False, index=True)
    time_slot = Column(Text, nullable=False)
    teacher_id = Column(Integer, ForeignKey("teachers.id"), nullable=False, index=True)
    justification = Column(Text, nullable=False)
    quantity_requested = Column(Integer, nullable=False)
    needs_tv = Column(Boolean, nullable=False, default=False)
    needs_sound = Column(Boolean, nullable=False, default=False)
    needs_mic = Column(Boolean, nullable=False, default=False)
    mic_quantity = Column(Integer, nullable=False, default=0)
    is_minecraft = Column(Boolean, nullable=False, default=False)
    classroom = Column(Text, nullable=True)
    created_by = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)

    teacher = relationship("Teacher", lazy="joined")
    loans = relationship("Loan", back_populates="reservation")

    @property
    def teacher_name(self) -> str | None:
        return self.teacher.name if self.teacher else None

    @property
    def teacher_email(self) -> str | None:
        return self.teacher.email if self.teacher else None

    @property
    def associated_device_ids(self) -> list[str]:
        return [loan.device_id for loan in self.loans if loan.device_id]


__all__ = ["Reservation"]
