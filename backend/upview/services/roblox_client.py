"""
Roblox API client — username → headshot lookup and OAuth code exchange.

Headshot lookup is two calls:
  1. POST users.roblox.com/v1/usernames/users   {"usernames": [name]}
  2. GET  thumbnails.roblox.com/v1/users/avatar-headshot?userIds=<id>

The thumbnails payload is returned as-is: {"data": [{"imageUrl": ...}]}.
Only the first element's imageUrl is ever consulted (see first_image_url).

Failures surface immediately — there is no retry/backoff.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from upview.core.config import settings
from upview.core.errors import NotFoundError, UpstreamError

logger = logging.getLogger(__name__)

HEADSHOT_SIZE = "48x48"


class AvatarLookup(Protocol):
    """Anything that can turn a Roblox username into a headshot payload."""

    async def fetch_headshots(self, username: str) -> dict[str, Any]: ...


def first_image_url(payload: dict[str, Any]) -> str | None:
    """Extract data[0].imageUrl, or None if any level is missing."""
    if not isinstance(payload, dict):
        return None
    data = payload.get("data")
    if not isinstance(data, list) or not data:
        return None
    first = data[0]
    if not isinstance(first, dict):
        return None
    return first.get("imageUrl") or None


def _decode(response: httpx.Response, message: str) -> dict[str, Any]:
    """JSON object body of a successful response; anything else is an upstream failure."""
    try:
        body = response.json()
    except ValueError as exc:
        logger.error("Roblox returned a non-JSON body: %s", exc)
        raise UpstreamError(message) from exc
    if not isinstance(body, dict):
        logger.error("Roblox returned a %s body, expected an object", type(body).__name__)
        raise UpstreamError(message)
    return body

class RobloxClient:
    """Async client over the public Roblox users/thumbnails/OAuth APIs."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        users_url: str = settings.ROBLOX_USERS_URL,
        thumbnails_url: str = settings.ROBLOX_THUMBNAILS_URL,
        oauth_url: str = settings.ROBLOX_OAUTH_URL,
    ) -> None:
        self._client = client
        self._users_url = users_url.rstrip("/")
        self._thumbnails_url = thumbnails_url.rstrip("/")
        self._oauth_url = oauth_url.rstrip("/")

    # ── Avatar lookup ───────────────────────────────────────
    async def fetch_user_id(self, username: str) -> int:
        """
        Resolve a username to a Roblox user id.

        Raises:
            UpstreamError: non-2xx from the users API or transport failure.
            NotFoundError: the username does not exist.
        """
        try:
            response = await self._client.post(
                f"{self._users_url}/v1/usernames/users",
                json={"usernames": [username]},
            )
        except httpx.HTTPError as exc:
            logger.error("Roblox users API unreachable: %s", exc)
            raise UpstreamError("Failed to fetch user") from exc

        if not response.is_success:
            logger.error("Roblox users API error: status=%d", response.status_code)
            raise UpstreamError("Failed to fetch user")

        data = _decode(response, "Failed to fetch user").get("data") or []
        if not isinstance(data, list):
            raise UpstreamError("Failed to fetch user")
        first = data[0] if data else None
        user_id = first.get("id") if isinstance(first, dict) else None
        if not user_id:
            raise NotFoundError("User not found")

        try:
            return int(user_id)
        except (TypeError, ValueError) as exc:
            logger.error("Roblox users API returned a non-numeric id: %r", user_id)
            raise UpstreamError("Failed to fetch user") from exc

    async def fetch_headshots(self, username: str) -> dict[str, Any]:
        """Return the raw thumbnails payload for a username's headshot."""
        user_id = await self.fetch_user_id(username)

        try:
            response = await self._client.get(
                f"{self._thumbnails_url}/v1/users/avatar-headshot",
                params={
                    "userIds": str(user_id),
                    "size": HEADSHOT_SIZE,
                    "format": "Png",
                    "isCircular": "false",
                },
            )
        except httpx.HTTPError as exc:
            logger.error("Roblox thumbnails API unreachable: %s", exc)
            raise UpstreamError("Failed to fetch headshot") from exc

        if not response.is_success:
            logger.error("Roblox thumbnails API error: status=%d", response.status_code)
            raise UpstreamError("Failed to fetch headshot")

        return _decode(response, "Failed to fetch headshot")

    # ── OAuth ───────────────────────────────────────────────
    async def exchange_code(self, code: str, redirect_uri: str) -> dict[str, Any]:
        """Trade an authorization code for access/refresh tokens."""
        response = await self._client.post(
            f"{self._oauth_url}/token",
            data={
                "client_id": settings.ROBLOX_CLIENT_ID,
                "client_secret": settings.ROBLOX_CLIENT_SECRET,
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
            },
        )
        if not response.is_success:
            raise UpstreamError("Failed to exchange code for token")
        return _decode(response, "Failed to exchange code for token")

    async def fetch_userinfo(self, access_token: str) -> dict[str, Any]:
        response = await self._client.get(
            f"{self._oauth_url}/userinfo",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if not response.is_success:
            raise UpstreamError("Failed to get user info")
        return _decode(response, "Failed to get user info")
