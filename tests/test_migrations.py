from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool

from zelote.db.migrate import run_migrations
from zelote.db.session import Base


def _engine():
    return create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)


def test_adds_columns_missing_from_older_databases():
    engine = _engine()
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE chromebooks (id INTEGER PRIMARY KEY, device_id TEXT, model TEXT)"))
        conn.execute(text("INSERT INTO chromebooks (device_id, model) VALUES ('CHR001', 'Acer')"))

    applied = run_migrations(engine)

    assert applied == ["chromebooks.is_deprovisioned", "chromebooks.classroom"]
    columns = {column["name"] for column in inspect(engine).get_columns("chromebooks")}
    assert {"is_deprovisioned", "classroom"} <= columns
    with engine.connect() as conn:
        assert conn.execute(text("SELECT is_deprovisioned FROM chromebooks")).scalar() == 0
    assert run_migrations(engine) == []


def test_current_schema_needs_nothing():
    engine = _engine()
    Base.metadata.create_all(bind=engine)
    assert run_migrations(engine) == []
    indexes = {index["name"] for index in inspect(engine).get_indexes("notifications")}
    assert "ix_notifications_recipient_read" in indexes
