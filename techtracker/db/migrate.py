"""Additive, idempotent schema upgrades.

``Base.metadata.create_all`` builds fresh databases. Databases created by
earlier releases predate the audit columns, so we add them in place here.
Nothing is ever dropped.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

logger = logging.getLogger("techtracker.db.migrate")

EQUIPMENT_COLUMNS: dict[str, str] = {
    "created_by": "TEXT",
    "last_modified_by": "TEXT",
    "row_version": "INTEGER NOT NULL DEFAULT 1",
}

HISTORY_COLUMNS: dict[str, str] = {
    "equipment_inventory_number": "TEXT",
}


def _column_names(engine: Engine, table: str) -> set[str]:
    inspector = inspect(engine)
    if not inspector.has_table(table):
        return set()
    return {column["name"] for column in inspector.get_columns(table)}


def _has_unique(engine: Engine, table: str, column: str) -> bool:
    inspector = inspect(engine)
    for index in inspector.get_indexes(table):
        if index.get("unique") and index.get("column_names") == [column]:
            return True
    for constraint in inspector.get_unique_constraints(table):
        if constraint.get("column_names") == [column]:
            return True
    return False


def _add_column(engine: Engine, table: str, col_def: str) -> None:
    with engine.begin() as conn:
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {col_def}"))


def _create_index_if_not_exists(engine: Engine, table: str, name: str, cols: Iterable[str], unique: bool = False) -> None:
    cols_sql = ", ".join(cols)
    unique_sql = "UNIQUE " if unique else ""
    with engine.begin() as conn:
        conn.execute(text(f"CREATE {unique_sql}INDEX IF NOT EXISTS {name} ON {table} ({cols_sql})"))


def _ensure_columns(engine: Engine, table: str, needed: dict[str, str]) -> list[str]:
    present = _column_names(engine, table)
    if not present:
        # Table absent; create_all owns fresh schemas.
        return []
    added = []
    for name, dtype in needed.items():
        if name not in present:
            _add_column(engine, table, f"{name} {dtype}")
            added.append(name)
    return added


def run_migrations(engine: Engine) -> None:
    """Bring an existing schema up to date with the models."""

    added = {
        "equipment": _ensure_columns(engine, "equipment", EQUIPMENT_COLUMNS),
        "equipment_history": _ensure_columns(engine, "equipment_history", HISTORY_COLUMNS),
    }
    if _column_names(engine, "equipment") and not _has_unique(engine, "equipment", "inventory_number"):
        _create_index_if_not_exists(
            engine, "equipment", "ix_equipment_inventory_number_unique", ["inventory_number"], unique=True
        )
    for table, columns in added.items():
        if columns:
            logger.info("db.migrated", extra={"extra_data": {"table": table, "columns": columns}})
