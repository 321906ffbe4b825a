"""Institutional e-mail rules per borrower type."""

from __future__ import annotations

import re
from typing import NamedTuple

from .config import settings
from .statuses import USER_TYPE_CHOICES

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

USER_TYPE_LABELS = {
    "student": "student",
    "teacher": "teacher",
    "staff": "staff member",
}


class EmailCheck(NamedTuple):
    valid: bool
    message: str | None = None


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def is_valid_email_format(email: str | None) -> bool:
    return bool(_EMAIL_RE.match((email or "").strip()))


def validate_email(email: str | None, user_type: str) -> EmailCheck:
    """Check format first, then that the domain matches the borrower type."""

    if not email or not email.strip():
        return EmailCheck(False, "Email is required")
    if not is_valid_email_format(email):
        return EmailCheck(False, "Invalid email format")
    domain = settings.email_domain_for(user_type)
    if not normalize_email(email).endswith(domain.lower()):
        return EmailCheck(False, f"A {USER_TYPE_LABELS[user_type]} email must end with {domain}")
    return EmailCheck(True)


def user_type_from_email(email: str | None) -> str | None:
    normalized = normalize_email(email)
    if not normalized:
        return None
    for user_type in USER_TYPE_CHOICES:
        if normalized.endswith(settings.email_domain_for(user_type).lower()):
            return user_type
    return None
