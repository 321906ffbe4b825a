from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..core.statuses import LOAN_ACTIVE, LOAN_OVERDUE, LOAN_RETURNED
from ..db.session import Base


class Loan(Base):
    """A device handed to a borrower. It stays open until a ``Return`` exists."""

    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, index=True)
    chromebook_id = Column(Integer, ForeignKey("chromebooks.id"), nullable=False, index=True)
    borrower_name = Column(Text, nullable=False)
    borrower_ra = Column(Text, nullable=True)
    borrower_email = Column(Text, nullable=False, index=True)
    purpose = Column(Text, nullable=False)
    user_type = Column(Text, nullable=False)
    loan_type = Column(Text, nullable=False)
    loan_date = Column(Text, nullable=False, index=True)
    expected_return_date = Column(Text, nullable=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id", ondelete="SET NULL"), nullable=True)
    created_by = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    chromebook = relationship("Chromebook", back_populates="loans", lazy="joined")
    return_record = relationship("Return", back_populates="loan", uselist=False, lazy="joined")
    reservation = relationship("Reservation", back_populates="loans")

    @property
    def device_id(self) -> str | None:
        return self.chromebook.device_id if self.chromebook else None

    @property
    def is_open(self) -> bool:
        return self.return_record is None

    def status_at(self, now_iso: str) -> str:
        """Derived status; ISO-8601 UTC strings compare chronologically."""

        if self.return_record is not None:
            return LOAN_RETURNED
        if self.expected_return_date and self.expected_return_date < now_iso:
            return LOAN_OVERDUE
        return LOAN_ACTIVE


class Return(Base):
    """Closes a loan; a loan can be closed only once."""

    __tablename__ = "returns"

    id = Column(Integer, primary_key=True, index=True)
    loan_id = Column(Integer, ForeignKey("loans.id"), nullable=False, unique=True, index=True)
    returned_by_name = Column(Text, nullable=False)
    returned_by_ra = Column(Text, nullable=True)
    returned_by_email = Column(Text, nullable=False)
    returned_by_type = Column(Text, nullable=False)
    return_date = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    created_by = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)

    loan = relationship("Loan", back_populates="return_record")


__all__ = ["Loan", "Return"]
