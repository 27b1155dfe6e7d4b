from __future__ import annotations

from sqlalchemy import Column, Text

from ..db.session import Base


# Staff account. ``password_hash`` holds a bcrypt hash, never the password itself.
class User(Base):
    __tablename__ = "users"

    id = Column(Text, primary_key=True)
    username = Column(Text, nullable=False, unique=True, index=True)
    password_hash = Column(Text, nullable=False)
    role = Column(Text, nullable=False)
    department = Column(Text, nullable=False, default="")


__all__ = ["User"]
