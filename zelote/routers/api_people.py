from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from ..core.errors import DomainValidationError
from ..crud.people import (
    create_person,
    delete_all_students,
    delete_person,
    list_people,
    person_to_dict,
    require_person,
    search_people,
    update_person,
)
from ..db.session import get_db
from ..deps.auth import require_ui_or_token
from ..schemas.people import DeleteCount, ImportResult, PersonCreate, PersonOut, PersonUpdate, UserType
from ..services.roster_import import import_students_csv, import_teachers_csv

router = APIRouter(prefix="/api/v1/people", tags=["people"], dependencies=[Depends(require_ui_or_token)])

IMPORTERS = {
    "student": import_students_csv,
    "teacher": import_teachers_csv,
}


@router.get("/search")
def api_search(q: str = "", limit: int = 10, db: Session = Depends(get_db)):
    return search_people(db, q, limit=limit)


@router.get("/{user_type}", response_model=list[PersonOut])
def api_list(
    user_type: UserType,
    search: str | None = None,
    limit: int = 100,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    people = list_people(db, user_type, search=search, limit=limit, offset=offset)
    return [person_to_dict(person, user_type) for person in people]


@router.get("/{user_type}/{person_id}", response_model=PersonOut)
def api_get(user_type: UserType, person_id: int, db: Session = Depends(get_db)):
    return person_to_dict(require_person(db, user_type, person_id), user_type)


@router.post("/{user_type}", response_model=PersonOut, status_code=201)
def api_create(user_type: UserType, payload: PersonCreate, db: Session = Depends(get_db)):
    person = create_person(db, user_type, payload.model_dump())
    return person_to_dict(person, user_type)


@router.post("/{user_type}/import", response_model=ImportResult)
async def api_import(user_type: UserType, file: UploadFile = File(...), db: Session = Depends(get_db)):
    importer = IMPORTERS.get(user_type)
    if importer is None:
        raise HTTPException(status_code=400, detail=f"CSV import is not available for {user_type}")
    raw = await file.read()
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise DomainValidationError("The CSV file must be UTF-8 encoded") from exc
    return importer(db, text)


@router.patch("/{user_type}/{person_id}", response_model=PersonOut)
def api_update(user_type: UserType, person_id: int, payload: PersonUpdate, db: Session = Depends(get_db)):
    person = require_person(db, user_type, person_id)
    data = payload.model_dump(exclude_unset=True)
    if data:
        person = update_person(db, user_type, person, data)
    return person_to_dict(person, user_type)


@router.delete("/student", response_model=DeleteCount)
def api_delete_students(db: Session = Depends(get_db)):
    return DeleteCount(deleted=delete_all_students(db))


@router.delete("/{user_type}/{person_id}")
def api_delete(user_type: UserType, person_id: int, db: Session = Depends(get_db)):
    delete_person(db, user_type, person_id)
    return {"status": "deleted"}
