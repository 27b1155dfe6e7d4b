"""Account payloads. Password hashes never appear in a response model."""

from __future__ import annotations

from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from ..core.actor import Role
from ..core.security import PASSWORD_TOO_LONG, password_fits


def _fits_bcrypt(value: str) -> str:
    if not password_fits(value):
        raise ValueError(PASSWORD_TOO_LONG)
    return value


Password = Annotated[str, Field(min_length=1), AfterValidator(_fits_bcrypt)]


class UserCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(..., min_length=1)
    password: Password
    role: Role
    department: str = Field(..., min_length=1)


class UserUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    username: Optional[str] = Field(default=None, min_length=1)
    password: Optional[Password] = None
    role: Optional[Role] = None
    department: Optional[str] = Field(default=None, min_length=1)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    # Plain text so that a row with a role this release does not know about can
    # still be listed and corrected by an admin.
    role: str
    department: str
