"""Importing this package registers every table with ``Base.metadata``."""

from .audit import AuditItem, InventoryAudit
from .chromebook import Chromebook
from .loan import Loan, Return
from .notification import Notification
from .people import Staff, Student, Teacher
from .reservation import Reservation

__all__ = [
    "AuditItem",
    "Chromebook",
    "InventoryAudit",
    "Loan",
    "Notification",
    "Reservation",
    "Return",
    "Staff",
    "Student",
    "Teacher",
]
