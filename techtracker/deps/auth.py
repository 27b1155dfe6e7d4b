from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from fastapi import Request
from fastapi.security.utils import get_authorization_scheme_param
from pydantic import BaseModel, ValidationError

from ..core.actor import ANONYMOUS, Actor, Role, parse_role
from ..core.policy import Action, Resource, enforce
from ..core.security import decode_access_token
from ..middlewares import principal_ctx_var

logger = logging.getLogger("techtracker.auth")

SESSION_KEY = "actor"


class SessionClaims(BaseModel):
    """Shape of the actor stored inside the sealed session cookie."""

    id: str
    username: str
    role: Role
    department: str | None = None


def session_payload(actor: Actor) -> dict[str, Any]:
    return {
        "id": actor.id,
        "username": actor.username,
        "role": actor.role.value if actor.role else None,
        "department": actor.department,
    }


def _from_session(request: Request) -> Actor | None:
    # SessionMiddleware has already verified the cookie signature; an
    # unverifiable cookie shows up here as an empty session.
    if "session" not in request.scope:
        return None
    raw = request.session.get(SESSION_KEY)
    if not raw:
        return None
    try:
        claims = SessionClaims.model_validate(raw)
    except ValidationError:
        logger.warning("auth.session_malformed")
        return None
    return Actor(id=claims.id, username=claims.username, role=claims.role, department=claims.department)


def _from_bearer(request: Request) -> Actor | None:
    authorization = request.headers.get("Authorization")
    if not authorization:
        return None
    scheme, credentials = get_authorization_scheme_param(authorization)
    if scheme.lower() != "bearer" or not credentials:
        return None
    settings = request.app.state.settings
    try:
        claims = decode_access_token(credentials, secret=settings.JWT_SECRET)
    except ValueError:
        logger.info("auth.token_rejected")
        return None
    role = parse_role(claims.role)
    if role is None:
        return None
    return Actor(id=claims.sub, username=claims.name, role=role, department=claims.dept)


def resolve_actor(request: Request) -> Actor:
    """Return the acting principal, or ``ANONYMOUS``.

    Never raises: anything wrong with the credential is treated as no
    credential at all.
    """

    cached = getattr(request.state, "actor", None)
    if isinstance(cached, Actor):
        return cached
    actor = _from_session(request) or _from_bearer(request) or ANONYMOUS
    request.state.actor = actor
    request.state.principal = actor.principal
    principal_ctx_var.set(actor.principal)
    return actor


def gate(action: Action, resource: Resource) -> Callable[[Request], Awaitable[Actor]]:
    """Dependency factory: resolve the actor and enforce the policy table."""

    async def _dependency(request: Request) -> Actor:
        return enforce(resolve_actor(request), action, resource)

    _dependency.__name__ = f"gate_{action.value}_{resource.value}"
    return _dependency


async def current_actor(request: Request) -> Actor:
    return resolve_actor(request)
