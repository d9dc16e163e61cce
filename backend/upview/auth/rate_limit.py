"""
FastAPI dependencies for API-key requests (game servers → feedback).

Order in request pipeline:
  FORMAT CHECK (no DB) → KEY LOOKUP → RATE LIMIT → ROUTER LOGIC.

On limit exceeded, returns 429 with quota fields in the body and the
X-RateLimit-* / Retry-After headers so well-behaved callers can back off.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from upview.auth.api_keys import is_valid_api_key_format, redact
from upview.core.database import get_db_session, utcnow
from upview.core.errors import RateLimitedError, UnauthorizedError
from upview.services.credentials import (
    CredentialNotFoundError,
    CredentialOwner,
    resolve_credential,
)
from upview.services.rate_limiter import RateLimitResult, check_rate_limit

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ApiKeyContext:
    """Authenticated, rate-checked API key request.

    Attributes:
        key:        The raw key (never log it — use redact()).
        owner:      Principal and workspace the key belongs to.
        rate_limit: Quota state after this request was counted.
    """

    key: str
    owner: CredentialOwner
    rate_limit: RateLimitResult


async def require_api_key(
    x_api_key: str | None = Header(default=None, alias="x-api-key"),
) -> str:
    """Reject missing or malformed keys before touching the store."""
    if not x_api_key:
        raise UnauthorizedError("Missing API key")

    if not is_valid_api_key_format(x_api_key):
        logger.warning("Invalid API key format: %s", redact(x_api_key))
        raise UnauthorizedError("Invalid API key format")

    return x_api_key


async def enforce_rate_limit(
    key: Annotated[str, Depends(require_api_key)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiKeyContext:
    """Resolve the key's owner and count this request against its quota."""
    try:
        owner = await resolve_credential(session, key)
    except CredentialNotFoundError:
        logger.warning("API key not found: %s", redact(key))
        raise UnauthorizedError(
            "API key not found. Please generate a new key in the dashboard."
        )
    except SQLAlchemyError:
        logger.exception("API key lookup error")
        raise UnauthorizedError("Error validating API key")

    result = await check_rate_limit(session, key)

    if not result.admitted:
        retry_after = result.retry_after(utcnow())
        raise RateLimitedError(
            "Rate limit exceeded",
            extra={
                "remaining": result.remaining,
                "reset": result.reset_ms,
                "retryAfter": retry_after,
            },
            headers={**result.headers(), "Retry-After": str(retry_after)},
        )

    return ApiKeyContext(key=key, owner=owner, rate_limit=result)
