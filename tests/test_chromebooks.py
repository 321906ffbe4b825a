import pytest

from zelote.core.errors import ConflictError, NotFoundError
from zelote.crud.chromebooks import (
    count_bookable_chromebooks,
    create_chromebook,
    delete_chromebook,
    get_chromebook_by_device_id,
    inventory_stats,
    list_chromebooks,
    next_device_id,
    sync_chromebook_status,
    update_chromebook,
)
from zelote.crud.loans import create_loan
from zelote.crud.returns import return_device


def _loan_payload(device_id: str) -> dict:
    return {
        "device_id": device_id,
        "borrower_name": "Ana Souza",
        "borrower_email": "ana@sj.g12.br",
        "purpose": "Math class",
        "user_type": "student",
    }


def test_create_generates_and_normalizes_device_ids(db_session):
    assert next_device_id(db_session) == "CHR001"

    first = create_chromebook(db_session, {"model": "Acer C733"}, actor="ui:admin")
    assert first.device_id == "CHR001"
    assert first.status == "available"
    assert first.created_by == "ui:admin"
    assert first.created_at.endswith("Z")

    manual = create_chromebook(db_session, {"model": "Acer C733", "device_id": "15"})
    assert manual.device_id == "CHR015"
    assert next_device_id(db_session) == "CHR016"

    create_chromebook(db_session, {"model": "Lenovo 100e", "device_id": "LAB900"})
    assert next_device_id(db_session) == "CHR016"


def test_create_requires_model_and_unique_keys(db_session):
    with pytest.raises(ValueError):
        create_chromebook(db_session, {"model": "  "})

    create_chromebook(db_session, {"model": "Acer", "device_id": "chr001", "serial_number": "SN-1"})
    with pytest.raises(ConflictError):
        create_chromebook(db_session, {"model": "Acer", "device_id": "1"})
    with pytest.raises(ConflictError):
        create_chromebook(db_session, {"model": "Acer", "serial_number": "SN-1"})


def test_list_filters_searches_and_sorts(db_session):
    create_chromebook(db_session, {"model": "Acer C733", "location": "Library"})
    create_chromebook(db_session, {"model": "Lenovo 100e", "location": "Lab 2", "status": "fixed"})
    create_chromebook(db_session, {"model": "Acer Spin", "patrimony_number": "PAT-77"})

    ids = [item.device_id for item in list_chromebooks(db_session)]
    assert ids == ["CHR003", "CHR002", "CHR001"]

    ascending = [item.device_id for item in list_chromebooks(db_session, descending=False)]
    assert ascending == ["CHR001", "CHR002", "CHR003"]

    assert [item.device_id for item in list_chromebooks(db_session, status="fixed")] == ["CHR002"]
    assert [item.device_id for item in list_chromebooks(db_session, search="LIBRARY")] == ["CHR001"]
    assert [item.device_id for item in list_chromebooks(db_session, search="pat-77")] == ["CHR003"]
    assert len(list_chromebooks(db_session, search="acer")) == 2
    assert len(list_chromebooks(db_session, limit=1, offset=1)) == 1


def test_update_ignores_unknown_fields_and_keeps_creator(db_session):
    item = create_chromebook(db_session, {"model": "Acer"}, actor="ui:admin")
    other = create_chromebook(db_session, {"model": "Acer", "serial_number": "SN-9"})

    updated = update_chromebook(
        db_session,
        item,
        {"location": "Room 12", "status": "maintenance", "created_by": "hacker", "color": "red"},
    )
    assert updated.location == "Room 12"
    assert updated.status == "maintenance"
    assert updated.created_by == "ui:admin"

    with pytest.raises(ConflictError):
        update_chromebook(db_session, other, {"device_id": "1"})


def test_sync_status_follows_open_loans(db_session):
    item = create_chromebook(db_session, {"model": "Acer"})
    create_loan(db_session, _loan_payload("CHR001"))

    # Simulate a device wrongly flagged as available while lent out.
    item.status = "available"
    db_session.commit()
    synced, message = sync_chromebook_status(db_session, "1")
    assert synced.status == "on_loan"
    assert "available" in message and "on_loan" in message

    return_device(
        db_session,
        "CHR001",
        {"returned_by_name": "Ana Souza", "returned_by_email": "ana@sj.g12.br", "returned_by_type": "student"},
    )
    assert get_chromebook_by_device_id(db_session, "CHR001").status == "available"

    item.status = "on_loan"
    db_session.commit()
    synced, _ = sync_chromebook_status(db_session, "CHR001")
    assert synced.status == "available"

    update_chromebook(db_session, item, {"status": "fixed"})
    synced, message = sync_chromebook_status(db_session, "CHR001")
    assert synced.status == "fixed"
    assert "already" in message

    with pytest.raises(NotFoundError):
        sync_chromebook_status(db_session, "CHR999")


def test_delete_blocked_by_open_loan(db_session):
    item = create_chromebook(db_session, {"model": "Acer"})
    create_loan(db_session, _loan_payload("CHR001"))
    with pytest.raises(ConflictError):
        delete_chromebook(db_session, item)

    spare = create_chromebook(db_session, {"model": "Acer"})
    delete_chromebook(db_session, spare)
    assert get_chromebook_by_device_id(db_session, "CHR002") is None


def test_inventory_stats_and_bookable_count(db_session):
    for status in ("available", "available", "fixed", "out_of_use", "maintenance"):
        create_chromebook(db_session, {"model": "Acer", "status": status})

    stats = inventory_stats(db_session)
    assert stats["total"] == 5
    assert stats["by_status"]["available"] == 2
    assert stats["by_status"]["on_loan"] == 0
    assert stats["bookable"] == 3
    assert count_bookable_chromebooks(db_session) == 3
