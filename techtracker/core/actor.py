"""The acting principal for one request."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


def parse_role(value: object) -> Role | None:
    """Return the matching ``Role``, or ``None`` for anything unrecognised."""

    try:
        return Role(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class Actor:
    id: str | None = None
    username: str | None = None
    role: Role | None = None
    department: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.id is not None and self.role is not None

    @property
    def principal(self) -> str:
        """Short label used in logs."""
        if not self.is_authenticated:
            return "anonymous"
        return f"{self.role.value}:{self.username}"


ANONYMOUS = Actor()
