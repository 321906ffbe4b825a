from __future__ import annotations

from sqlalchemy import JSON, Boolean, Column, Integer, Text

from ..db.session import Base


class Notification(Base):
    """In-app message addressed to one principal (``ui:admin``, ``jwt:...``)."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    recipient = Column(Text, nullable=False, index=True)
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    type = Column(Text, nullable=False)
    payload = Column("metadata", JSON, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(Text, nullable=False)


__all__ = ["Notification"]
