from datetime import date

import pytest

from zelote.core.config import settings
from zelote.core.errors import ConflictError, DomainValidationError, NotFoundError
from zelote.crud.chromebooks import create_chromebook
from zelote.crud.notifications import list_notifications
from zelote.crud.people import create_teacher
from zelote.crud.reservations import (
    bulk_create_reservations,
    create_reservation,
    delete_reservation,
    get_reservation,
    list_reservations,
    reserved_quantity,
)
from zelote.models.reservation import Reservation
from zelote.services.scheduling import week_bounds, week_days


@pytest.fixture()
def teacher(db_session):
    return create_teacher(db_session, {"name": "Ana Souza", "email": "ana@sj.pro.br", "subject": "History"})


@pytest.fixture()
def three_devices(db_session):
    for _ in range(3):
        create_chromebook(db_session, {"model": "Acer"})
    create_chromebook(db_session, {"model": "Acer", "status": "maintenance"})


def _payload(teacher, **overrides):
    payload = {
        "date": "2026-05-04",
        "time_slot": "08h00",
        "teacher_id": teacher.id,
        "justification": "Research project",
        "quantity_requested": 2,
    }
    payload.update(overrides)
    return payload


def test_capacity_counts_bookable_devices(db_session, teacher, three_devices):
    first = create_reservation(db_session, _payload(teacher), actor="ui:admin")
    assert first.date == "2026-05-04"
    assert first.teacher_name == "Ana Souza"
    assert reserved_quantity(db_session, "2026-05-04", "08h00") == 2

    with pytest.raises(ConflictError) as excinfo:
        create_reservation(db_session, _payload(teacher), actor="ui:admin")
    assert excinfo.value.details["available"] == 1

    # Another slot has its own capacity.
    create_reservation(db_session, _payload(teacher, time_slot="08h50", quantity_requested=3))
    create_reservation(db_session, _payload(teacher, quantity_requested=1))
    assert reserved_quantity(db_session, "2026-05-04", "08h00") == 3


def test_rejects_bad_input(db_session, teacher, three_devices):
    with pytest.raises(DomainValidationError):
        create_reservation(db_session, _payload(teacher, time_slot="09h00"))
    with pytest.raises(DomainValidationError):
        create_reservation(db_session, _payload(teacher, quantity_requested=0))
    with pytest.raises(DomainValidationError):
        create_reservation(db_session, _payload(teacher, justification="   "))
    with pytest.raises(NotFoundError):
        create_reservation(db_session, _payload(teacher, teacher_id=999))
    assert db_session.query(Reservation).count() == 0


def test_bulk_is_all_or_nothing(db_session, teacher, three_devices):
    create_reservation(db_session, _payload(teacher, date="2026-05-06", quantity_requested=3))

    with pytest.raises(ConflictError):
        bulk_create_reservations(db_session, ["2026-05-05", "2026-05-06"], _payload(teacher))
    assert db_session.query(Reservation).count() == 1

    created = bulk_create_reservations(
        db_session,
        ["2026-05-07", date(2026, 5, 5), "2026-05-07"],
        _payload(teacher),
    )
    assert [item.date for item in created] == ["2026-05-05", "2026-05-07"]


def test_list_orders_by_date_then_slot(db_session, teacher, three_devices):
    create_reservation(db_session, _payload(teacher, date="2026-05-05", time_slot="07h10", quantity_requested=1))
    create_reservation(db_session, _payload(teacher, time_slot="14h00", quantity_requested=1))
    create_reservation(db_session, _payload(teacher, time_slot="07h10", quantity_requested=1))
    create_reservation(db_session, _payload(teacher, date="2026-05-11", quantity_requested=1))

    monday, friday = week_bounds(date(2026, 5, 6))
    assert (monday, friday) == (date(2026, 5, 4), date(2026, 5, 8))
    assert len(week_days(date(2026, 5, 6))) == 5

    items = list_reservations(db_session, monday, friday)
    assert [(item.date, item.time_slot) for item in items] == [
        ("2026-05-04", "07h10"),
        ("2026-05-04", "14h00"),
        ("2026-05-05", "07h10"),
    ]


def test_delete_reservation(db_session, teacher, three_devices):
    reservation = create_reservation(db_session, _payload(teacher))
    delete_reservation(db_session, reservation.id)
    assert get_reservation(db_session, reservation.id) is None
    with pytest.raises(NotFoundError):
        delete_reservation(db_session, reservation.id)


def test_notifies_recipients_except_actor(db_session, teacher, three_devices, monkeypatch):
    monkeypatch.setattr(settings, "RESERVATION_NOTIFY_RECIPIENTS", ["ui:admin", "ui:coordinator"])

    create_reservation(db_session, _payload(teacher), actor="ui:admin")

    assert list_notifications(db_session, "ui:admin") == []
    [notification] = list_notifications(db_session, "ui:coordinator")
    assert notification.type == "reservation"
    assert "Ana Souza" in notification.message
