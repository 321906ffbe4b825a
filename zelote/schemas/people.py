from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

UserType = Literal["student", "teacher", "staff"]


class PersonCreate(BaseModel):
    """Registry payload; ``ra``/``class_name`` apply to students, ``subject`` to teachers."""

    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    ra: Optional[str] = None
    class_name: Optional[str] = None
    subject: Optional[str] = None


class PersonUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    ra: Optional[str] = None
    class_name: Optional[str] = None
    subject: Optional[str] = None


class PersonOut(BaseModel):
    id: int
    user_type: UserType
    name: str
    email: str
    ra: Optional[str] = None
    class_name: Optional[str] = None
    subject: Optional[str] = None
    created_at: Optional[str] = None


class ImportResult(BaseModel):
    imported: int
    skipped: int


class DeleteCount(BaseModel):
    deleted: int
