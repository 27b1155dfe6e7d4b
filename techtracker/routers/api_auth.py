"""Sign-in, sign-out and "who am I" for browser and headless clients."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..core.actor import Actor, parse_role
from ..core.errors import AuthenticationError, AuthorizationError
from ..core.security import issue_access_token
from ..crud.users import authenticate
from ..db.session import get_db
from ..deps.auth import SESSION_KEY, current_actor, session_payload
from ..middlewares import principal_ctx_var
from ..schemas.auth import LoginRequest, LoginResponse, SessionUser

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])
logger = logging.getLogger("techtracker.auth")

INVALID_CREDENTIALS = "Invalid username or password"
UNKNOWN_ROLE = "This account has no valid role. Ask an administrator to fix it."


@router.post("/login", response_model=LoginResponse, summary="Sign in with username and password")
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    user = authenticate(db, payload.username, payload.password)
    if user is None:
        logger.warning("auth.login_failed", extra={"extra_data": {"username": payload.username}})
        raise AuthenticationError(INVALID_CREDENTIALS)
    role = parse_role(user.role)
    if role is None:
        logger.warning("auth.login_unknown_role", extra={"extra_data": {"user_id": user.id, "role": user.role}})
        raise AuthorizationError(UNKNOWN_ROLE, reason="wrong_role")
    actor = Actor(id=user.id, username=user.username, role=role, department=user.department)
    request.session.clear()
    request.session[SESSION_KEY] = session_payload(actor)
    request.state.principal = actor.principal
    principal_ctx_var.set(actor.principal)
    settings = request.app.state.settings
    token = issue_access_token(
        subject=user.id,
        username=user.username,
        role=user.role,
        department=user.department,
        secret=settings.JWT_SECRET,
        ttl_minutes=settings.JWT_ACCESS_TTL_MIN,
    )
    logger.info("auth.login", extra={"extra_data": {"user_id": user.id}})
    return LoginResponse(
        username=user.username,
        role=actor.role,
        department=user.department,
        access_token=token,
        expires_in=settings.JWT_ACCESS_TTL_MIN * 60,
    )


@router.post("/logout")
def logout(request: Request):
    request.session.clear()
    return {"ok": True}


@router.get("/user", response_model=SessionUser, response_model_exclude_none=True)
def whoami(actor: Actor = Depends(current_actor)):
    if not actor.is_authenticated:
        return SessionUser(is_logged_in=False)
    return SessionUser(
        is_logged_in=True,
        id=actor.id,
        username=actor.username,
        role=actor.role,
        department=actor.department,
    )
