"""SQLAlchemy model for a tracked equipment unit."""

from __future__ import annotations

from sqlalchemy import Column, Integer, Text

from ..db.session import Base


class Equipment(Base):
    __tablename__ = "equipment"

    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)
    inventory_number = Column(Text, nullable=False, unique=True, index=True)
    category = Column(Text, nullable=False, index=True)
    location = Column(Text, nullable=False, index=True)
    # Plain YYYY-MM-DD text: a date-only value must never pass through a timezone.
    date_added = Column(Text, nullable=False)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)
    created_by = Column(Text, nullable=True)
    last_modified_by = Column(Text, nullable=True)
    # Maintained by the ORM: UPDATE and DELETE only match the version that was
    # read, so a write that lost a race fails with StaleDataError.
    row_version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": row_version}


__all__ = ["Equipment"]
