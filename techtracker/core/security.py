from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

ALGORITHM = "HS256"
AUDIENCE = "techtracker-clients"
ISSUER = "techtracker"

# bcrypt only looks at the first 72 bytes and newer releases refuse longer input.
PASSWORD_MAX_BYTES = 72
PASSWORD_TOO_LONG = f"password must be at most {PASSWORD_MAX_BYTES} bytes when UTF-8 encoded"


class AccessClaims(BaseModel):
    sub: str
    name: str
    role: str | None = None
    dept: str | None = None
    exp: datetime
    iat: datetime
    typ: str
    aud: str
    iss: str


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def password_fits(plain: str) -> bool:
    return len(plain.encode("utf-8")) <= PASSWORD_MAX_BYTES


def hash_password(plain: str) -> str:
    if not password_fits(plain):
        raise ValueError(PASSWORD_TOO_LONG)
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    if not plain or not hashed or not password_fits(plain):
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash (e.g. a legacy plaintext value): never a match.
        return False


def issue_access_token(
    *,
    subject: str,
    username: str,
    role: str | None,
    department: str | None,
    secret: str,
    ttl_minutes: int,
) -> str:
    now = _now()
    payload: dict[str, Any] = {
        "sub": subject,
        "name": username,
        "role": role,
        "dept": department,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl_minutes)).timestamp()),
        "typ": "access",
        "aud": AUDIENCE,
        "iss": ISSUER,
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_access_token(token: str, *, secret: str) -> AccessClaims:
    try:
        decoded = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            audience=AUDIENCE,
            issuer=ISSUER,
        )
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    try:
        claims = AccessClaims.model_validate(decoded)
    except ValidationError as exc:
        raise ValueError("Invalid token payload") from exc
    if claims.typ != "access":
        raise ValueError("Invalid token type")
    return claims
