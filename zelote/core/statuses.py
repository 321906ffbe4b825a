"""Shared status and type constants for devices, borrowers, loans and audits."""

DEVICE_AVAILABLE = "available"
DEVICE_ON_LOAN = "on_loan"
DEVICE_FIXED = "fixed"
DEVICE_OUT_OF_USE = "out_of_use"
DEVICE_MAINTENANCE = "maintenance"

DEVICE_STATUS_CHOICES = (
    DEVICE_AVAILABLE,
    DEVICE_ON_LOAN,
    DEVICE_FIXED,
    DEVICE_OUT_OF_USE,
    DEVICE_MAINTENANCE,
)

# Devices that count towards reservation capacity.
BOOKABLE_DEVICE_STATUSES = (DEVICE_AVAILABLE, DEVICE_FIXED)
# Devices that never leave their spot and are excluded from usage rates.
STATIONARY_DEVICE_STATUSES = (DEVICE_FIXED, DEVICE_OUT_OF_USE)

USER_STUDENT = "student"
USER_TEACHER = "teacher"
USER_STAFF = "staff"
USER_TYPE_CHOICES = (USER_STUDENT, USER_TEACHER, USER_STAFF)

LOAN_INDIVIDUAL = "individual"
LOAN_BATCH = "batch"
LOAN_TYPE_CHOICES = (LOAN_INDIVIDUAL, LOAN_BATCH)

LOAN_ACTIVE = "active"
LOAN_RETURNED = "returned"
LOAN_OVERDUE = "overdue"
LOAN_STATUS_CHOICES = (LOAN_ACTIVE, LOAN_RETURNED, LOAN_OVERDUE)
OPEN_LOAN_STATUSES = (LOAN_ACTIVE, LOAN_OVERDUE)

AUDIT_IN_PROGRESS = "in_progress"
AUDIT_COMPLETED = "completed"
AUDIT_CANCELLED = "cancelled"
AUDIT_STATUS_CHOICES = (AUDIT_IN_PROGRESS, AUDIT_COMPLETED, AUDIT_CANCELLED)

SCAN_QR_CODE = "qr_code"
SCAN_MANUAL_ID = "manual_id"
SCAN_METHOD_CHOICES = (SCAN_QR_CODE, SCAN_MANUAL_ID)


def normalize_choice(value: str | None, choices: tuple[str, ...], default: str) -> str:
    """Return a lowercase choice, falling back to ``default`` when blank."""

    cleaned = (value or default).strip().lower()
    if cleaned not in choices:
        raise ValueError(f"{cleaned!r} is not one of {', '.join(choices)}")
    return cleaned
