"""Account management helpers.

Accounts are administered by admins only and, unlike equipment, their changes
leave no history entries.
"""

from __future__ import annotations

import logging
from typing import Mapping
from uuid import uuid4

from sqlalchemy import asc, select
from sqlalchemy.orm import Session

from ..core.actor import Role
from ..core.errors import NotFoundError, ValidationError
from ..core.security import PASSWORD_TOO_LONG, hash_password, password_fits, verify_password
from ..db.session import commit
from ..models.user import User

logger = logging.getLogger("techtracker.accounts")

UPDATABLE_FIELDS = ("username", "password", "role", "department")


def _duplicate_message(username: str | None) -> str:
    if username:
        return f"A user named '{username}' already exists."
    return "A user with this username already exists."


def _password_hash(password: str) -> str:
    if not password_fits(password):
        raise ValidationError(PASSWORD_TOO_LONG, details={"fields": ["password"]})
    return hash_password(password)


def _role_value(role: Role | str) -> str:
    try:
        return Role(role).value
    except ValueError as exc:
        raise ValidationError("role must be 'admin' or 'user'", details={"fields": ["role"]}) from exc


def list_users(db: Session) -> list[User]:
    stmt = select(User).order_by(asc(User.username))
    return list(db.execute(stmt).scalars().all())


def get_user(db: Session, user_id: str) -> User | None:
    return db.get(User, user_id)


def require_user(db: Session, user_id: str) -> User:
    user = get_user(db, user_id)
    if user is None:
        raise NotFoundError(f"User '{user_id}' was not found.")
    return user


def get_user_by_username(db: Session, username: str) -> User | None:
    stmt = select(User).where(User.username == username)
    return db.execute(stmt).scalars().first()


def authenticate(db: Session, username: str, password: str) -> User | None:
    """Return the account when the credentials match, else ``None``."""

    user = get_user_by_username(db, username)
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def create_user(db: Session, payload: Mapping[str, object]) -> User:
    username = str(payload.get("username") or "").strip()
    password = str(payload.get("password") or "")
    department = str(payload.get("department") or "").strip()
    role = payload.get("role")
    missing = [
        name
        for name, value in (("username", username), ("password", password), ("role", role), ("department", department))
        if not value
    ]
    if missing:
        raise ValidationError("Missing required fields: " + ", ".join(missing), details={"fields": missing})
    user = User(
        id=str(uuid4()),
        username=username,
        password_hash=_password_hash(password),
        role=_role_value(role),
        department=department,
    )
    db.add(user)
    commit(db, conflict_message=_duplicate_message(username))
    logger.info("account.created", extra={"extra_data": {"user_id": user.id, "role": user.role}})
    return user


def update_user(db: Session, user: User, payload: Mapping[str, object]) -> User:
    """Apply a partial update; ``None`` values are ignored.

    The caller is responsible for the protected-row check before calling.
    """

    changes = {key: payload[key] for key in UPDATABLE_FIELDS if payload.get(key) not in (None, "")}
    if not changes:
        raise ValidationError("No fields to update")
    new_hash = _password_hash(str(changes["password"])) if "password" in changes else None
    new_role = _role_value(changes["role"]) if "role" in changes else None
    if "username" in changes:
        user.username = str(changes["username"]).strip()
    if new_hash is not None:
        user.password_hash = new_hash
    if "department" in changes:
        user.department = str(changes["department"]).strip()
    if new_role is not None:
        user.role = new_role
    commit(db, conflict_message=_duplicate_message(user.username))
    logger.info(
        "account.updated",
        extra={"extra_data": {"user_id": user.id, "fields": sorted(changes)}},
    )
    return user


def delete_user(db: Session, user: User) -> None:
    user_id = user.id
    db.delete(user)
    commit(db, conflict_message="Could not delete user because of a conflicting change.")
    logger.info("account.deleted", extra={"extra_data": {"user_id": user_id}})


def ensure_bootstrap_admin(db: Session, *, username: str, password: str, department: str = "IT") -> User | None:
    """Create the first admin account when none exists yet."""

    stmt = select(User).where(User.role == Role.ADMIN.value)
    if db.execute(stmt).scalars().first() is not None:
        return None
    if get_user_by_username(db, username) is not None:
        logger.warning("account.bootstrap_skipped", extra={"extra_data": {"username": username}})
        return None
    user = create_user(
        db,
        {"username": username, "password": password, "role": Role.ADMIN, "department": department},
    )
    logger.info("account.bootstrapped", extra={"extra_data": {"user_id": user.id}})
    return user
