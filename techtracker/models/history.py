"""Append-only audit trail for equipment changes."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Column, Integer, Text

from ..db.session import Base


class HistoryAction(str, Enum):
    CREATED = "Created"
    UPDATED = "Updated"
    DELETED = "Deleted"


class HistoryEntry(Base):
    """One recorded change to an equipment unit.

    ``equipment_id`` is a plain reference with no foreign key: the entry must
    outlive the equipment row it describes. ``equipment_name`` and
    ``equipment_inventory_number`` are snapshots taken when the action happened.
    Rows are inserted by the audit engine and never updated or deleted.
    """

    __tablename__ = "equipment_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(Text, nullable=False, index=True)
    equipment_id = Column(Text, nullable=False, index=True)
    equipment_name = Column(Text, nullable=False)
    equipment_inventory_number = Column(Text, nullable=True)
    details = Column(Text, nullable=False)
    changed_by = Column(Text, nullable=False)
    changed_at = Column(Text, nullable=False, index=True)


__all__ = ["HistoryAction", "HistoryEntry"]
