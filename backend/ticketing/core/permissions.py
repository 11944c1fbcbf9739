"""
Role-based capability checks.

`has_capability` is a plain lookup with no framework dependency; routes use
`require_capability` to turn it into a FastAPI dependency.
"""

from fastapi import Depends

from ticketing.core.exceptions import PermissionDeniedError
from ticketing.core.security import Identity, get_current_identity

EVENTS_MANAGE = "events:manage"
EVENTS_MANAGE_ANY = "events:manage_any"
CATEGORIES_MANAGE = "categories:manage"
USERS_MANAGE = "users:manage"
TICKETS_PURCHASE = "tickets:purchase"

ROLE_CAPABILITIES: dict[str, frozenset[str]] = {
    "user": frozenset({TICKETS_PURCHASE}),
    "organizer": frozenset({TICKETS_PURCHASE, EVENTS_MANAGE}),
    "admin": frozenset(
        {TICKETS_PURCHASE, EVENTS_MANAGE, EVENTS_MANAGE_ANY, CATEGORIES_MANAGE, USERS_MANAGE}
    ),
}

DENIED_MESSAGES = {
    EVENTS_MANAGE: "Access denied. Organizer or Admin privileges required.",
    CATEGORIES_MANAGE: "Access denied. Admin privileges required.",
    USERS_MANAGE: "Access denied. Admin privileges required.",
}


def has_capability(role: str, capability: str) -> bool:
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


def require_capability(capability: str):
    async def dependency(identity: Identity = Depends(get_current_identity)) -> Identity:
        if not has_capability(identity.role, capability):
            raise PermissionDeniedError(DENIED_MESSAGES.get(capability, "Access denied."))
        return identity

    return dependency
