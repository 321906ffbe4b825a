"""Idempotent schema upgrades for databases created by older releases.

``Base.metadata.create_all`` only creates missing tables, so columns and
indexes added after a table first shipped are patched in here.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# (table, column, DDL fragment) added after the first release.
ADDED_COLUMNS: tuple[tuple[str, str, str], ...] = (
    ("chromebooks", "is_deprovisioned", "is_deprovisioned BOOLEAN NOT NULL DEFAULT 0"),
    ("chromebooks", "classroom", "classroom TEXT"),
    ("loans", "reservation_id", "reservation_id INTEGER"),
    ("reservations", "classroom", "classroom TEXT"),
)

ADDED_INDEXES: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("loans", "ix_loans_loan_date", ("loan_date",)),
    ("notifications", "ix_notifications_recipient_read", ("recipient", "is_read")),
)


def _column_names(engine: Engine, table: str) -> set[str]:
    return {column["name"] for column in inspect(engine).get_columns(table)}


def _create_index_if_not_exists(engine: Engine, table: str, name: str, cols: Iterable[str]) -> None:
    cols_sql = ", ".join(cols)
    with engine.begin() as conn:
        conn.execute(text(f"CREATE INDEX IF NOT EXISTS {name} ON {table} ({cols_sql})"))


def run_migrations(engine: Engine) -> list[str]:
    """Apply missing columns/indexes and return a list of what changed."""

    applied: list[str] = []
    tables = set(inspect(engine).get_table_names())
    for table, column, ddl in ADDED_COLUMNS:
        if table not in tables or column in _column_names(engine, table):
            continue
        with engine.begin() as conn:
            conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {ddl}"))
        applied.append(f"{table}.{column}")
        logger.info("migration.column_added", extra={"extra_data": {"table": table, "column": column}})
    for table, name, cols in ADDED_INDEXES:
        if table not in tables:
            continue
        _create_index_if_not_exists(engine, table, name, cols)
    return applied
