from __future__ import annotations

from sqlalchemy import Column, Integer, Text

from ..db.session import Base


class Student(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    ra = Column(Text, nullable=False, unique=True, index=True)
    email = Column(Text, nullable=False, unique=True, index=True)
    class_name = Column(Text, nullable=False)
    created_at = Column(Text, nullable=False)


class Teacher(Base):
    __tablename__ = "teachers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False, unique=True, index=True)
    subject = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)


class Staff(Base):
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False, unique=True, index=True)
    created_at = Column(Text, nullable=False)


MODELS_BY_USER_TYPE = {
    "student": Student,
    "teacher": Teacher,
    "staff": Staff,
}


__all__ = ["MODELS_BY_USER_TYPE", "Staff", "Student", "Teacher"]
