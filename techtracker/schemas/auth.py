from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.actor import Role


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    model_config = {
        "json_schema_extra": {
            "example": {"username": "jdoe", "password": "secret"}
        },
    }


class LoginResponse(BaseModel):
    ok: bool = True
    username: str
    role: Role
    department: str
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class SessionUser(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_logged_in: bool = Field(alias="isLoggedIn")
    id: Optional[str] = None
    username: Optional[str] = None
    role: Optional[Role] = None
    department: Optional[str] = None
