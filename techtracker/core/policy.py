"""Central authorization policy.

Every endpoint asks one question, ``authorize(actor, action, resource)``, and
gets back either ``ALLOW`` or a ``Deny`` carrying the reason. The table below
is the whole policy:

==========================================  =================  =====================
Action                                      Required role      Notes
==========================================  =================  =====================
read equipment/categories/locations/history none               public
create/update/delete equipment              ``user``           admin is not enough
read/create/update/delete account           ``admin``          user is not enough
update/delete an account with role admin    always denied      protected row
==========================================  =================  =====================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .actor import Actor, Role, parse_role
from .errors import AuthenticationError, AuthorizationError

logger = logging.getLogger("techtracker.authz")


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class Resource(str, Enum):
    EQUIPMENT = "equipment"
    CATEGORY = "category"
    LOCATION = "location"
    HISTORY = "history"
    ACCOUNT = "account"


class DenyReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    WRONG_ROLE = "wrong_role"
    PROTECTED_TARGET = "protected_target"


@dataclass(frozen=True)
class Allow:
    allowed: bool = True


@dataclass(frozen=True)
class Deny:
    reason: DenyReason
    allowed: bool = False


ALLOW = Allow()

PUBLIC_READS = frozenset({Resource.EQUIPMENT, Resource.CATEGORY, Resource.LOCATION, Resource.HISTORY})

REQUIRED_ROLE: dict[Resource, Role] = {
    Resource.EQUIPMENT: Role.USER,
    Resource.ACCOUNT: Role.ADMIN,
}

_DENY_MESSAGES = {
    DenyReason.UNAUTHENTICATED: "You must be signed in to perform this action.",
    DenyReason.WRONG_ROLE: "Your role does not permit this action.",
    DenyReason.PROTECTED_TARGET: "Administrator accounts cannot be modified or deleted.",
}


def authorize(
    actor: Actor,
    action: Action,
    resource: Resource,
    target_role: Role | str | None = None,
) -> Allow | Deny:
    """Decide whether ``actor`` may perform ``action`` on ``resource``.

    ``target_role`` is the role of the specific account being updated or
    deleted, when there is one. A role this release does not recognise is not
    protected, so an admin can correct it.
    """

    if action is Action.READ and resource in PUBLIC_READS:
        return ALLOW
    if not actor.is_authenticated:
        return Deny(DenyReason.UNAUTHENTICATED)
    if (
        resource is Resource.ACCOUNT
        and action in (Action.UPDATE, Action.DELETE)
        and parse_role(target_role) is Role.ADMIN
    ):
        return Deny(DenyReason.PROTECTED_TARGET)
    required = REQUIRED_ROLE.get(resource)
    if required is None or actor.role is not required:
        return Deny(DenyReason.WRONG_ROLE)
    return ALLOW


def enforce(
    actor: Actor,
    action: Action,
    resource: Resource,
    target_role: Role | str | None = None,
) -> Actor:
    """Raise the matching domain error unless ``authorize`` allows the action."""

    decision = authorize(actor, action, resource, target_role)
    if isinstance(decision, Allow):
        return actor
    logger.warning(
        "authz.denied",
        extra={
            "extra_data": {
                "action": action.value,
                "resource": resource.value,
                "reason": decision.reason.value,
                "principal": actor.principal,
            }
        },
    )
    message = _DENY_MESSAGES[decision.reason]
    if decision.reason is DenyReason.UNAUTHENTICATED:
        raise AuthenticationError(message)
    raise AuthorizationError(message, reason=decision.reason.value)
