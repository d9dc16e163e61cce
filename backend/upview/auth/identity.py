"""
Session verification against the hosted identity provider (Supabase GoTrue).

The dashboard authenticates users itself; this backend only asks the
provider "whose token is this?" via GET /auth/v1/user. Anything other
than a 200 with a user id means unauthenticated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Principal:
    """A verified dashboard user."""

    id: str
    email: str | None = None


class IdentityProvider:
    """Thin client over the provider's user endpoint."""

    def __init__(self, client: httpx.AsyncClient, base_url: str, anon_key: str) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._anon_key = anon_key

    async def verify(self, token: str) -> Principal | None:
        """Resolve an access token to a Principal, or None if it is not valid."""
        if not self._base_url:
            logger.error("SUPABASE_URL is not configured; rejecting session")
            return None

        try:
            response = await self._client.get(
                f"{self._base_url}/auth/v1/user",
                headers={
                    "apikey": self._anon_key,
                    "Authorization": f"Bearer {token}",
                },
            )
        except httpx.HTTPError as exc:
            logger.warning("Identity provider unreachable: %s", exc)
            return None

        if response.status_code != 200:
            logger.debug("Session rejected by identity provider: %d", response.status_code)
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning("Identity provider returned a non-JSON body")
            return None
        if not isinstance(data, dict):
            return None

        user_id = data.get("id")
        if not user_id:
            return None

        return Principal(id=str(user_id), email=data.get("email"))
