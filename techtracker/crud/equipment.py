"""Equipment mutations and their audit trail.

Each mutation runs as one unit of work on the caller's session: the row is
read (with ``FOR UPDATE`` where the database supports it), changed, the
history entry is added, and a single commit persists both. A failure anywhere
rolls back the row change and the entry together.

The row's ``row_version`` guards the window between the read and the write on
backends that ignore ``FOR UPDATE`` (SQLite): if another writer committed in
between, the commit raises ``ConflictError`` and nothing is written, so a
history entry is never diffed against a stale "before".
"""

from __future__ import annotations

import logging
from typing import Mapping
from uuid import uuid4

from sqlalchemy import asc, desc, select
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError, ValidationError
from ..core.normalize import clean_text, normalize_label, parse_date_added
from ..db.session import commit
from ..models.equipment import Equipment
from ..models.history import HistoryAction
from ..services.audit import describe_created, describe_deleted, describe_updated, diff_tracked, snapshot
from .history import build_entry, utcnow

logger = logging.getLogger("techtracker.equipment")

REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("name", "name"),
    ("inventory_number", "inventoryNumber"),
    ("category", "category"),
    ("location", "location"),
    ("date_added", "dateAdded"),
)


def clean_payload(payload: Mapping[str, object]) -> dict[str, str]:
    """Validate required fields and return the normalised values to store.

    Raises ``ValidationError`` naming the missing fields or the bad date.
    """

    data = {field: clean_text(_as_str(payload.get(field))) for field, _ in REQUIRED_FIELDS}
    missing = [public for field, public in REQUIRED_FIELDS if not data[field]]
    if missing:
        raise ValidationError(
            "Missing required fields: " + ", ".join(missing),
            details={"fields": missing},
        )
    try:
        parse_date_added(data["date_added"])
    except ValueError as exc:
        raise ValidationError(str(exc), details={"fields": ["dateAdded"]}) from exc
    data["category"] = normalize_label(data["category"])
    data["location"] = normalize_label(data["location"])
    return data


def _as_str(value: object) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _duplicate_message(inventory_number: str) -> str:
    return f"Inventory number '{inventory_number}' already exists."


def list_equipment(db: Session) -> list[Equipment]:
    stmt = select(Equipment).order_by(desc(Equipment.created_at), desc(Equipment.id))
    return list(db.execute(stmt).scalars().all())


def get_equipment(db: Session, equipment_id: str) -> Equipment | None:
    return db.get(Equipment, equipment_id)


def _get_for_update(db: Session, equipment_id: str) -> Equipment:
    # populate_existing: the "before" snapshot must come from the locked read,
    # not from whatever this session cached earlier.
    stmt = (
        select(Equipment)
        .where(Equipment.id == equipment_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    item = db.execute(stmt).scalars().first()
    if item is None:
        raise NotFoundError(f"Equipment '{equipment_id}' was not found.")
    return item


def list_categories(db: Session) -> list[str]:
    stmt = select(Equipment.category).distinct().order_by(asc(Equipment.category))
    return list(db.execute(stmt).scalars().all())


def list_locations(db: Session) -> list[str]:
    stmt = select(Equipment.location).distinct().order_by(asc(Equipment.location))
    return list(db.execute(stmt).scalars().all())


def create_equipment(db: Session, payload: Mapping[str, object], *, changed_by: str) -> Equipment:
    """Insert a new unit and its ``Created`` history entry."""

    data = clean_payload(payload)
    now = utcnow()
    item = Equipment(
        id=str(uuid4()),
        created_at=now,
        updated_at=now,
        created_by=changed_by,
        last_modified_by=changed_by,
        **data,
    )
    db.add(item)
    db.add(
        build_entry(
            action=HistoryAction.CREATED,
            equipment_id=item.id,
            equipment_name=item.name,
            inventory_number=item.inventory_number,
            details=describe_created(item.name, item.inventory_number),
            changed_by=changed_by,
            changed_at=now,
        )
    )
    commit(db, conflict_message=_duplicate_message(data["inventory_number"]))
    logger.info(
        "equipment.created",
        extra={"extra_data": {"equipment_id": item.id, "inventory_number": item.inventory_number}},
    )
    return item


def update_equipment(
    db: Session,
    equipment_id: str,
    payload: Mapping[str, object],
    *,
    changed_by: str,
) -> tuple[Equipment, bool]:
    """Replace the tracked fields of a unit.

    Returns the refreshed row and whether a history entry was written. Edits
    that leave all five tracked fields unchanged still bump ``updated_at`` and
    ``last_modified_by`` but leave no audit trace.
    """

    data = clean_payload(payload)
    item = _get_for_update(db, equipment_id)
    before = snapshot(item)
    for field, value in data.items():
        setattr(item, field, value)
    now = utcnow()
    item.updated_at = now
    item.last_modified_by = changed_by

    changes = diff_tracked(before, snapshot(item))
    if changes:
        db.add(
            build_entry(
                action=HistoryAction.UPDATED,
                equipment_id=item.id,
                equipment_name=item.name,
                inventory_number=item.inventory_number,
                details=describe_updated(changes),
                changed_by=changed_by,
                changed_at=now,
            )
        )
    commit(db, conflict_message=_duplicate_message(data["inventory_number"]))
    logger.info(
        "equipment.updated",
        extra={
            "extra_data": {
                "equipment_id": item.id,
                "changed_fields": [label for label, _, _ in changes],
            }
        },
    )
    return item, bool(changes)


def delete_equipment(db: Session, equipment_id: str, *, changed_by: str) -> None:
    """Remove a unit, leaving a ``Deleted`` entry with its last name and number."""

    item = _get_for_update(db, equipment_id)
    name, inventory_number = item.name, item.inventory_number
    db.delete(item)
    db.add(
        build_entry(
            action=HistoryAction.DELETED,
            equipment_id=equipment_id,
            equipment_name=name,
            inventory_number=inventory_number,
            details=describe_deleted(name, inventory_number),
            changed_by=changed_by,
        )
    )
    commit(db, conflict_message="Could not delete equipment because of a conflicting change.")
    logger.info("equipment.deleted", extra={"extra_data": {"equipment_id": equipment_id}})
