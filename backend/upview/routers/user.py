"""
User router — the signed-in principal's API key and Roblox profile.

GET  /api/user/api-key  — current key, or {data: null}
POST /api/user/api-key  — issue a new key, superseding the old one
GET  /api/user/profile  — linked Roblox profile, or {data: null}
PUT  /api/user/profile  — link / update the Roblox profile
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from upview.auth.dependencies import get_current_principal
from upview.auth.identity import Principal
from upview.core.database import get_db_session
from upview.models.workspace import Workspace
from upview.schemas.credential import CredentialOut
from upview.schemas.profile import ProfileOut, ProfileUpdate
from upview.services.credentials import get_credential_for_principal, issue_credential
from upview.services.profiles import get_profile, save_profile

logger = logging.getLogger(__name__)

router = APIRouter(tags=["User"])

DbSession = Annotated[AsyncSession, Depends(get_db_session)]
CurrentUser = Annotated[Principal, Depends(get_current_principal)]


# ── API key ─────────────────────────────────────────────────
@router.get("/api-key", summary="Current API key")
async def read_api_key(session: DbSession, principal: CurrentUser) -> dict[str, Any]:
    credential = await get_credential_for_principal(session, principal.id)
    if credential is None:
        return {"data": None}
    return {"data": CredentialOut.model_validate(credential).model_dump(mode="json")}


@router.post("/api-key", summary="Issue a new API key")
async def create_api_key(session: DbSession, principal: CurrentUser) -> dict[str, Any]:
    """
    Replace the principal's key with a fresh one.

    The key is linked to the principal's oldest workspace if one exists;
    otherwise it is issued unlinked and feedback submissions are refused
    until a new key is generated after creating a workspace.
    """
    stmt = (
        select(Workspace.id)
        .where(Workspace.owner_id == principal.id)
        .order_by(Workspace.created_at.asc())
        .limit(1)
    )
    result = await session.execute(stmt)
    workspace_id = result.scalar_one_or_none()

    credential = await issue_credential(session, principal.id, workspace_id)
    return {"data": CredentialOut.model_validate(credential).model_dump(mode="json")}


# ── Profile ─────────────────────────────────────────────────
@router.get("/profile", summary="Linked Roblox profile")
async def read_profile(session: DbSession, principal: CurrentUser) -> dict[str, Any]:
    profile = await get_profile(session, principal.id)
    if profile is None:
        return {"data": None}
    return {"data": ProfileOut.model_validate(profile).model_dump(mode="json")}


@router.put("/profile", summary="Link or update the Roblox profile")
async def update_profile(
    payload: ProfileUpdate,
    session: DbSession,
    principal: CurrentUser,
) -> dict[str, Any]:
    profile = await save_profile(session, principal.id, payload.model_dump())
    return {"data": ProfileOut.model_validate(profile).model_dump(mode="json")}
