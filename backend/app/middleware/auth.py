"""
X Tracking API — Auth Gate
============================

What:  Request gates that decide pass-through vs. rejection before any
       route validation or handler runs.
How:   FastAPI dependencies. A route table attaches exactly one gate per
       route (see routes/table.py); FastAPI resolves it before the body
       validation dependency, and a raised error stops the request there.

Gates:
    protect            fails closed unless the caller presents a valid token
                       for an existing user (Bearer header, else `token` cookie)
    authorize(*roles)  protect + the user's role must be one of `roles`

Auth requirements (attached to route descriptors at startup):
    OPEN               no gate
    REQUIRE_AUTH       protect
    require_role(...)  authorize(...)
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, FrozenSet, Optional, Union

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.exceptions import AuthenticationRequiredError, AuthorizationDeniedError
from app.models.user import User
from app.security import decode_access_token

logger = logging.getLogger(__name__)

TOKEN_COOKIE_NAME = "token"


# ══════════════════════════════════════════════════════════════════════════
# Auth Requirements
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Open:
    """No credential needed."""


@dataclass(frozen=True)
class RequireAuth:
    """Any authenticated user."""


@dataclass(frozen=True)
class RequireRole:
    """An authenticated user holding one of `roles`."""

    roles: FrozenSet[str]


AuthRequirement = Union[Open, RequireAuth, RequireRole]

OPEN = Open()
REQUIRE_AUTH = RequireAuth()


def require_role(*roles: str) -> RequireRole:
    if not roles:
        raise ValueError("require_role() needs at least one role")
    return RequireRole(roles=frozenset(roles))


# ══════════════════════════════════════════════════════════════════════════
# Gates
# ══════════════════════════════════════════════════════════════════════════

def extract_token(request: Request) -> Optional[str]:
    """Bearer token from the Authorization header, falling back to the cookie."""
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(TOKEN_COOKIE_NAME) or None


async def protect(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """Resolve the calling user or raise AuthenticationRequiredError."""
    token = extract_token(request)
    if not token:
        raise AuthenticationRequiredError(context={"reason": "missing_token"})

    user_id = decode_access_token(token)
    user = await db.get(User, user_id)
    if user is None:
        logger.info("Token presented for unknown user %s", user_id)
        raise AuthenticationRequiredError(context={"reason": "unknown_user"})

    request.state.user_id = str(user.id)
    return user


def authorize(*roles: str) -> Callable[..., Awaitable[User]]:
    """Build a gate that admits authenticated users holding one of `roles`."""
    allowed = frozenset(roles)

    async def gate(user: User = Depends(protect)) -> User:
        if user.role not in allowed:
            logger.info("User %s with role '%s' denied (needs one of %s)",
                        user.id, user.role, sorted(allowed))
            raise AuthorizationDeniedError(role=user.role, allowed_roles=list(allowed))
        return user

    return gate


async def allow_anonymous() -> None:
    return None


def gate_for(requirement: AuthRequirement) -> Callable[..., Awaitable[Optional[User]]]:
    """Map an auth requirement to the dependency that enforces it."""
    if isinstance(requirement, Open):
        return allow_anonymous
    if isinstance(requirement, RequireAuth):
        return protect
    if isinstance(requirement, RequireRole):
        return authorize(*sorted(requirement.roles))
    raise TypeError(f"Unknown auth requirement: {requirement!r}")
