import pytest

from zelote.core.errors import ConflictError, DomainValidationError, NotFoundError
from zelote.crud.people import (
    create_staff,
    create_student,
    create_teacher,
    delete_all_students,
    delete_person,
    list_people,
    search_people,
    update_student,
)
from zelote.services.roster_import import import_students_csv, import_teachers_csv, read_rows


def _student(**overrides):
    payload = {"name": "Ana Souza", "ra": "1001", "email": "ana@sj.g12.br", "class_name": "9A"}
    payload.update(overrides)
    return payload


def test_create_student_trims_and_lowercases(db_session):
    student = create_student(db_session, _student(name="  Ana Souza ", email=" ANA@SJ.G12.BR "))
    assert student.name == "Ana Souza"
    assert student.email == "ana@sj.g12.br"
    assert student.created_at.endswith("Z")


def test_create_rejects_wrong_domain_and_missing_fields(db_session):
    with pytest.raises(DomainValidationError) as excinfo:
        create_student(db_session, _student(email="ana@gmail.com"))
    assert "@sj.g12.br" in excinfo.value.message

    with pytest.raises(DomainValidationError):
        create_student(db_session, _student(ra=""))

    with pytest.raises(DomainValidationError):
        create_teacher(db_session, {"name": "Maria", "email": "maria@sj.g12.br"})


def test_duplicates_raise_conflict(db_session):
    create_student(db_session, _student())
    with pytest.raises(ConflictError):
        create_student(db_session, _student(email="other@sj.g12.br"))
    with pytest.raises(ConflictError):
        create_student(db_session, _student(ra="2002"))

    create_teacher(db_session, {"name": "Maria", "email": "maria@sj.pro.br", "subject": "History"})
    with pytest.raises(ConflictError):
        create_teacher(db_session, {"name": "Maria Clara", "email": "MARIA@sj.pro.br"})


def test_update_and_delete(db_session):
    student = create_student(db_session, _student())
    other = create_student(db_session, _student(ra="1002", email="bia@sj.g12.br"))

    updated = update_student(db_session, student, {"class_name": "9B"})
    assert updated.class_name == "9B"
    assert updated.ra == "1001"

    with pytest.raises(ConflictError):
        update_student(db_session, other, {"ra": "1001"})

    delete_person(db_session, "student", other.id)
    with pytest.raises(NotFoundError):
        delete_person(db_session, "student", other.id)

    create_student(db_session, _student(ra="1003", email="caio@sj.g12.br"))
    assert delete_all_students(db_session) == 2
    assert list_people(db_session, "student") == []


def test_list_and_search_people(db_session):
    create_student(db_session, _student())
    create_student(db_session, _student(name="Bruno Lima", ra="1002", email="bruno@sj.g12.br"))
    create_teacher(db_session, {"name": "Ana Paula", "email": "anapaula@sj.pro.br"})
    create_staff(db_session, {"name": "Carlos", "email": "carlos@colegiosaojudas.com.br"})

    assert [person.name for person in list_people(db_session, "student")] == ["Ana Souza", "Bruno Lima"]
    assert [person.name for person in list_people(db_session, "student", search="1002")] == ["Bruno Lima"]

    results = search_people(db_session, "ana")
    assert [(item["name"], item["user_type"]) for item in results] == [
        ("Ana Paula", "teacher"),
        ("Ana Souza", "student"),
    ]
    assert results[1]["ra"] == "1001"
    assert results[1]["class_name"] == "9A"
    assert search_people(db_session, "  ") == []


def test_read_rows_accepts_aliases_and_semicolons():
    rows = read_rows("\ufeffNome_Completo;RA;Email;Turma\nAna;1;ana@sj.g12.br;9A\n\n")
    assert rows == [{"name": "Ana", "ra": "1", "email": "ana@sj.g12.br", "class_name": "9A"}]


def test_import_students_skips_existing_rows(db_session):
    create_student(db_session, _student())
    text = (
        "name,ra,email,class_name\n"
        "Ana Souza,1001,ana@sj.g12.br,9A\n"
        "Bruno Lima,1002,BRUNO@sj.g12.br,9A\n"
        "Caio Reis,1003,caio@sj.g12.br,9B\n"
    )
    assert import_students_csv(db_session, text) == {"imported": 2, "skipped": 1}
    emails = {person.email for person in list_people(db_session, "student")}
    assert emails == {"ana@sj.g12.br", "bruno@sj.g12.br", "caio@sj.g12.br"}


def test_import_rejects_whole_file_on_invalid_row(db_session):
    text = (
        "name,ra,email,class_name\n"
        "Bruno Lima,1002,bruno@sj.g12.br,9A\n"
        "Caio Reis,1003,caio@gmail.com,9B\n"
        ",1004,dani@sj.g12.br,9B\n"
    )
    with pytest.raises(DomainValidationError) as excinfo:
        import_students_csv(db_session, text)
    assert [row["row"] for row in excinfo.value.details["rows"]] == [3, 4]
    assert list_people(db_session, "student") == []


def test_import_teachers_with_portuguese_headers(db_session):
    text = "nome,email,materia\nMaria,maria@sj.pro.br,History\nJoao,joao@sj.pro.br,\n"
    assert import_teachers_csv(db_session, text) == {"imported": 2, "skipped": 0}
    teachers = list_people(db_session, "teacher")
    assert [(t.name, t.subject) for t in teachers] == [("Joao", None), ("Maria", "History")]

    with pytest.raises(DomainValidationError):
        import_teachers_csv(db_session, "name,email\n")
