"""
FastAPI dependencies for dashboard session authentication.

Flow:
  1. Take the access token from `Authorization: Bearer …`, falling back
     to the session cookie (SESSION_COOKIE_NAME)
  2. Ask the identity provider who it belongs to
  3. Return the Principal

Security:
  • Generic 401 {"error": "Unauthorized"} for ALL failure modes
  • Tokens are NEVER logged
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, Request

from upview.auth.identity import IdentityProvider, Principal
from upview.core.clients import get_identity_provider
from upview.core.config import settings
from upview.core.errors import UnauthorizedError


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.split(" ", maxsplit=1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        return None
    return parts[1]


async def get_optional_principal(
    request: Request,
    identity: Annotated[IdentityProvider, Depends(get_identity_provider)],
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Principal | None:
    """Resolve the caller's session if there is one; None otherwise."""
    token = _bearer_token(authorization) or request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        return None
    return await identity.verify(token)


async def get_current_principal(
    principal: Annotated[Principal | None, Depends(get_optional_principal)],
) -> Principal:
    """
    FastAPI dependency — resolves the session to a Principal.

    Usage in routers:
        CurrentUser = Annotated[Principal, Depends(get_current_principal)]
    """
    if principal is None:
        raise UnauthorizedError("Unauthorized")
    return principal


async def get_bearer_principal(
    identity: Annotated[IdentityProvider, Depends(get_identity_provider)],
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Principal:
    """Bearer-only variant for endpoints called cross-origin (no cookies)."""
    token = _bearer_token(authorization)
    if token is None:
        raise UnauthorizedError("Unauthorized")

    principal = await identity.verify(token)
    if principal is None:
        raise UnauthorizedError("Unauthorized")
    return principal
