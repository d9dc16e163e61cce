"""
Roblox router — public headshot proxy and the OAuth account-link callback.

POST /roblox                 {username} → raw thumbnails payload
GET  /auth/roblox/callback   ?code=…    → link account, redirect to onboarding
"""

import logging
from typing import Annotated, Any

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from upview.auth.dependencies import get_optional_principal
from upview.auth.identity import Principal
from upview.core.clients import get_roblox_client
from upview.core.config import settings
from upview.core.database import get_db_session
from upview.core.errors import AppError
from upview.services.profiles import save_profile
from upview.services.roblox_client import RobloxClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Roblox"])

DbSession = Annotated[AsyncSession, Depends(get_db_session)]
MaybeUser = Annotated[Principal | None, Depends(get_optional_principal)]
Roblox = Annotated[RobloxClient, Depends(get_roblox_client)]


class HeadshotRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)


@router.post("/roblox", summary="Headshot lookup by Roblox username")
async def lookup_headshot(payload: HeadshotRequest, roblox: Roblox) -> dict[str, Any]:
    return await roblox.fetch_headshots(payload.username)


@router.get(
    "/auth/roblox/callback",
    summary="Roblox OAuth callback",
    response_class=RedirectResponse,
)
async def roblox_callback(
    request: Request,
    session: DbSession,
    principal: MaybeUser,
    roblox: Roblox,
    code: str | None = None,
) -> RedirectResponse:
    """
    Exchange the authorization code, fetch the Roblox identity and store it
    on the signed-in principal's profile. Always ends in a redirect.
    """
    onboarding = settings.ONBOARDING_URL

    if not code:
        return RedirectResponse(f"{onboarding}?error=no_code")

    redirect_uri = str(request.url_for("roblox_callback"))

    try:
        tokens = await roblox.exchange_code(code, redirect_uri)
        userinfo = await roblox.fetch_userinfo(tokens["access_token"])

        if principal is not None:
            await save_profile(
                session,
                principal.id,
                {
                    "roblox_id": str(userinfo.get("sub")),
                    "roblox_username": userinfo.get("preferred_username"),
                    "roblox_access_token": tokens.get("access_token"),
                    "roblox_refresh_token": tokens.get("refresh_token"),
                },
            )
            logger.info("Linked Roblox account for %s", principal.id)
    except (AppError, httpx.HTTPError, KeyError) as exc:
        logger.error("Roblox OAuth error: %s", exc)
        return RedirectResponse(f"{onboarding}?error=oauth_failed")

    return RedirectResponse(f"{onboarding}?step=workspace")
