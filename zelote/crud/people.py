"""Registries of people allowed to borrow devices."""

from __future__ import annotations

import logging

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.emails import normalize_email, validate_email
from ..core.errors import ConflictError, DomainValidationError, NotFoundError
from ..core.statuses import USER_STAFF, USER_STUDENT, USER_TEACHER, USER_TYPE_CHOICES
from ..models.people import MODELS_BY_USER_TYPE, Staff, Student, Teacher
from ..services.loancalc import utcnow_iso

logger = logging.getLogger(__name__)

# Columns each registry accepts besides ``name`` and ``email``.
EXTRA_FIELDS = {
    USER_STUDENT: ("ra", "class_name"),
    USER_TEACHER: ("subject",),
    USER_STAFF: (),
}
REQUIRED_FIELDS = {
    USER_STUDENT: ("name", "email", "ra", "class_name"),
    USER_TEACHER: ("name", "email"),
    USER_STAFF: ("name", "email"),
}


def _model_for(user_type: str):
    try:
        return MODELS_BY_USER_TYPE[user_type]
    except KeyError as exc:
        raise ValueError(f"Unknown user type {user_type!r}") from exc


def _clean(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def person_to_dict(person, user_type: str) -> dict[str, object]:
    return {
        "id": person.id,
        "user_type": user_type,
        "name": person.name,
        "email": person.email,
        "ra": getattr(person, "ra", None),
        "class_name": getattr(person, "class_name", None),
        "subject": getattr(person, "subject", None),
        "created_at": person.created_at,
    }


def clean_person_payload(user_type: str, payload: dict, *, partial: bool = False) -> dict[str, str | None]:
    """Trim values, lower-case the e-mail and check the institutional domain.

    Raises ``DomainValidationError`` listing every problem found.
    """

    allowed = ("name", "email") + EXTRA_FIELDS[user_type]
    data = {key: _clean(payload.get(key)) for key in allowed if not partial or key in payload}
    problems: list[str] = []
    for key in REQUIRED_FIELDS[user_type]:
        if key in data and not data[key]:
            problems.append(f"{key} is required")
        elif key not in data and not partial:
            problems.append(f"{key} is required")
    if data.get("email"):
        check = validate_email(data["email"], user_type)
        if not check.valid:
            problems.append(check.message)
        data["email"] = normalize_email(data["email"])
    if problems:
        raise DomainValidationError("; ".join(problems), details={"errors": problems})
    return data


def _ensure_unique(db: Session, user_type: str, data: dict, exclude_id: int | None = None) -> None:
    model = _model_for(user_type)
    keys = ("email", "ra") if user_type == USER_STUDENT else ("email",)
    for key in keys:
        value = data.get(key)
        if not value:
            continue
        stmt = select(model.id).where(getattr(model, key) == value)
        if exclude_id is not None:
            stmt = stmt.where(model.id != exclude_id)
        if db.execute(stmt).first():
            label = "RA" if key == "ra" else "e-mail"
            raise ConflictError(f"A {user_type} with {label} {value} already exists", details={"field": key})


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Duplicate registration") from exc


def get_person(db: Session, user_type: str, person_id: int):
    return db.get(_model_for(user_type), person_id)


def require_person(db: Session, user_type: str, person_id: int):
    person = get_person(db, user_type, person_id)
    if person is None:
        raise NotFoundError(f"{user_type.capitalize()} {person_id} not found")
    return person


def create_person(db: Session, user_type: str, payload: dict):
    data = clean_person_payload(user_type, payload)
    _ensure_unique(db, user_type, data)
    person = _model_for(user_type)(**data, created_at=utcnow_iso())
    db.add(person)
    _commit(db)
    db.refresh(person)
    logger.info("person.created", extra={"extra_data": {"user_type": user_type, "person_id": person.id}})
    return person


def create_student(db: Session, payload: dict) -> Student:
    return create_person(db, USER_STUDENT, payload)


def create_teacher(db: Session, payload: dict) -> Teacher:
    return create_person(db, USER_TEACHER, payload)


def create_staff(db: Session, payload: dict) -> Staff:
    return create_person(db, USER_STAFF, payload)


def update_person(db: Session, user_type: str, person, payload: dict):
    data = clean_person_payload(user_type, payload, partial=True)
    _ensure_unique(db, user_type, data, exclude_id=person.id)
    for key, value in data.items():
        setattr(person, key, value)
    _commit(db)
    db.refresh(person)
    return person


def update_student(db: Session, person: Student, payload: dict) -> Student:
    return update_person(db, USER_STUDENT, person, payload)


def update_teacher(db: Session, person: Teacher, payload: dict) -> Teacher:
    return update_person(db, USER_TEACHER, person, payload)


def update_staff(db: Session, person: Staff, payload: dict) -> Staff:
    return update_person(db, USER_STAFF, person, payload)


def delete_person(db: Session, user_type: str, person_id: int) -> None:
    person = require_person(db, user_type, person_id)
    db.delete(person)
    _commit(db)


def delete_all_students(db: Session) -> int:
    result = db.execute(delete(Student))
    db.commit()
    logger.info("students.cleared", extra={"extra_data": {"deleted": result.rowcount}})
    return int(result.rowcount or 0)


def _search_clause(model, term: str):
    pattern = f"%{term.lower()}%"
    columns = [model.name, model.email]
    if model is Student:
        columns.extend([Student.ra, Student.class_name])
    return or_(*(func.lower(column).like(pattern) for column in columns))


def list_people(
    db: Session,
    user_type: str,
    *,
    search: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list:
    model = _model_for(user_type)
    stmt = select(model)
    term = (search or "").strip()
    if term:
        stmt = stmt.where(_search_clause(model, term))
    stmt = stmt.order_by(model.name, model.id).limit(limit).offset(offset)
    return db.execute(stmt).scalars().all()


def search_people(db: Session, query: str, limit: int = 10) -> list[dict[str, object]]:
    """Borrower autocomplete across the three registries, matches ordered by name."""

    term = (query or "").strip()
    if not term:
        return []
    results: list[dict[str, object]] = []
    for user_type in USER_TYPE_CHOICES:
        model = MODELS_BY_USER_TYPE[user_type]
        stmt = select(model).where(_search_clause(model, term)).order_by(model.name).limit(limit)
        for person in db.execute(stmt).scalars():
            results.append(
                {
                    "id": person.id,
                    "name": person.name,
                    "email": person.email,
                    "ra": getattr(person, "ra", None),
                    "class_name": getattr(person, "class_name", None),
                    "user_type": user_type,
                }
            )
    results.sort(key=lambda item: item["name"].lower())
    return results[:limit]


def existing_keys(db: Session, user_type: str) -> tuple[set[str], set[str]]:
    """E-mails and (for students) RAs already registered."""

    model = _model_for(user_type)
    emails = {email for (email,) in db.execute(select(model.email)).all()}
    ras: set[str] = set()
    if user_type == USER_STUDENT:
        ras = {ra for (ra,) in db.execute(select(Student.ra)).all()}
    return emails, ras
