"""History entries: built alongside equipment mutations, read by the history view."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..models.history import HistoryAction, HistoryEntry


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_entry(
    *,
    action: HistoryAction,
    equipment_id: str,
    equipment_name: str,
    inventory_number: str,
    details: str,
    changed_by: str,
    changed_at: str | None = None,
) -> HistoryEntry:
    """Return an unsaved entry; the caller adds it to the mutation's transaction."""

    return HistoryEntry(
        action=action.value,
        equipment_id=equipment_id,
        equipment_name=equipment_name,
        equipment_inventory_number=inventory_number,
        details=details,
        changed_by=changed_by,
        changed_at=changed_at or utcnow(),
    )


def list_history(
    db: Session,
    *,
    equipment_id: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> list[HistoryEntry]:
    """Most recent first; ties broken by insertion order.

    Without ``limit`` the whole (filtered) table is returned.
    """

    stmt = select(HistoryEntry)
    if equipment_id:
        stmt = stmt.where(HistoryEntry.equipment_id == equipment_id)
    stmt = stmt.order_by(desc(HistoryEntry.changed_at), desc(HistoryEntry.id))
    if limit is not None:
        stmt = stmt.limit(limit)
    if offset:
        stmt = stmt.offset(offset)
    return list(db.execute(stmt).scalars().all())
