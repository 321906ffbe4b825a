"""CSV import of student and teacher rosters.

The whole file is validated before anything is written: a single bad row
rejects the import. Rows whose e-mail (or RA) is already registered are
skipped and reported in the ``skipped`` count.
"""

from __future__ import annotations

import csv
import io
import logging

from sqlalchemy.orm import Session

from ..core.errors import DomainValidationError
from ..core.statuses import USER_STUDENT, USER_TEACHER
from ..crud.people import clean_person_payload, existing_keys
from ..models.people import MODELS_BY_USER_TYPE
from .loancalc import utcnow_iso

logger = logging.getLogger(__name__)

HEADER_ALIASES = {
    "name": "name",
    "nome": "name",
    "nome_completo": "name",
    "ra": "ra",
    "email": "email",
    "e-mail": "email",
    "class_name": "class_name",
    "class": "class_name",
    "turma": "class_name",
    "subject": "subject",
    "materia": "subject",
    "matéria": "subject",
}


def _canonical_header(raw: str) -> str:
    key = (raw or "").strip().lower().replace(" ", "_")
    return HEADER_ALIASES.get(key, key)


def read_rows(text: str) -> list[dict[str, str]]:
    """Parse CSV text into dicts keyed by canonical column names."""

    cleaned = (text or "").lstrip("\ufeff")
    sample = cleaned[:2048]
    delimiter = ";" if sample.count(";") > sample.count(",") else ","
    reader = csv.reader(io.StringIO(cleaned), delimiter=delimiter)
    rows = [row for row in reader if any(cell.strip() for cell in row)]
    if not rows:
        return []
    headers = [_canonical_header(cell) for cell in rows[0]]
    return [
        {header: (row[index].strip() if index < len(row) else "") for index, header in enumerate(headers)}
        for row in rows[1:]
    ]


def _import(db: Session, user_type: str, text: str) -> dict[str, int]:
    rows = read_rows(text)
    if not rows:
        raise DomainValidationError("The CSV file has no data rows")

    cleaned: list[tuple[int, dict]] = []
    problems: list[dict[str, object]] = []
    # Row numbers are 1-based and count the header line.
    for number, row in enumerate(rows, start=2):
        try:
            cleaned.append((number, clean_person_payload(user_type, row)))
        except DomainValidationError as exc:
            problems.append({"row": number, "errors": exc.details["errors"]})
    if problems:
        rows_label = ", ".join(str(problem["row"]) for problem in problems)
        raise DomainValidationError(f"Invalid rows: {rows_label}", details={"rows": problems})

    emails, ras = existing_keys(db, user_type)
    model = MODELS_BY_USER_TYPE[user_type]
    created_at = utcnow_iso()
    imported = skipped = 0
    for number, data in cleaned:
        if data["email"] in emails or (data.get("ra") and data["ra"] in ras):
            skipped += 1
            logger.warning(
                "roster.row_skipped",
                extra={"extra_data": {"user_type": user_type, "row": number, "email": data["email"]}},
            )
            continue
        db.add(model(**data, created_at=created_at))
        emails.add(data["email"])
        if data.get("ra"):
            ras.add(data["ra"])
        imported += 1
    db.commit()
    logger.info(
        "roster.imported",
        extra={"extra_data": {"user_type": user_type, "imported": imported, "skipped": skipped}},
    )
    return {"imported": imported, "skipped": skipped}


def import_students_csv(db: Session, text: str) -> dict[str, int]:
    return _import(db, USER_STUDENT, text)


def import_teachers_csv(db: Session, text: str) -> dict[str, int]:
    return _import(db, USER_TEACHER, text)
