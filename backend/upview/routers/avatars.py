"""
Avatar router — Roblox headshots for dashboard users and in-game players.

GET /avatars?type=user|player&id=…
  • player → served from the 24h avatar cache, refreshed on miss
  • user   → linked Roblox account, looked up on every call
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from upview.auth.dependencies import get_current_principal
from upview.auth.identity import Principal
from upview.core.clients import get_roblox_client
from upview.core.database import get_db_session
from upview.core.errors import InvalidInputError
from upview.services.avatar_cache import SubjectKind, resolve_avatar
from upview.services.roblox_client import RobloxClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Avatars"])

DbSession = Annotated[AsyncSession, Depends(get_db_session)]
CurrentUser = Annotated[Principal, Depends(get_current_principal)]
Roblox = Annotated[RobloxClient, Depends(get_roblox_client)]


@router.get(
    "",
    summary="Resolve a Roblox headshot URL",
    description=(
        "Returns {data: imageUrl}. 404 when the user/player or its avatar "
        "cannot be found, 502 when Roblox fails."
    ),
)
async def get_avatar(
    session: DbSession,
    principal: CurrentUser,
    roblox: Roblox,
    kind: str | None = Query(default=None, alias="type", examples=["player"]),
    subject_id: str | None = Query(default=None, alias="id"),
) -> dict[str, str]:
    if not kind or not subject_id:
        raise InvalidInputError("Missing type or id parameter")

    try:
        subject_kind = SubjectKind(kind)
    except ValueError:
        raise InvalidInputError("Invalid type parameter")

    url = await resolve_avatar(
        session, roblox, subject_kind, subject_id, principal_id=principal.id,
    )
    return {"data": url}
