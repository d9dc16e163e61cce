"""
Workspaces router — list and create the principal's workspaces.

GET  /workspaces — owned workspaces, oldest first
POST /workspaces — create one (name 2–100 chars, description ≤ 500)
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from upview.auth.dependencies import get_current_principal
from upview.auth.identity import Principal
from upview.core.database import get_db_session, utcnow
from upview.core.errors import InternalError
from upview.models.workspace import Workspace
from upview.schemas.workspace import WorkspaceCreate, WorkspaceOut

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Workspaces"])

DbSession = Annotated[AsyncSession, Depends(get_db_session)]
CurrentUser = Annotated[Principal, Depends(get_current_principal)]


@router.get("", summary="List owned workspaces")
async def list_workspaces(session: DbSession, principal: CurrentUser) -> dict[str, Any]:
    stmt = (
        select(Workspace)
        .where(Workspace.owner_id == principal.id)
        .order_by(Workspace.created_at.asc())
    )
    result = await session.execute(stmt)
    workspaces = result.scalars().all()
    return {
        "data": [WorkspaceOut.model_validate(w).model_dump(mode="json") for w in workspaces]
    }


@router.post("", summary="Create a workspace")
async def create_workspace(
    payload: WorkspaceCreate,
    session: DbSession,
    principal: CurrentUser,
) -> dict[str, Any]:
    workspace = Workspace(
        owner_id=principal.id,
        name=payload.name,
        description=payload.description,
        created_at=utcnow(),
    )

    try:
        session.add(workspace)
        await session.commit()
        await session.refresh(workspace)
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to create workspace for %s", principal.id)
        raise InternalError("Failed to create workspace")

    logger.info("Workspace %s created by %s", workspace.id, principal.id)
    return {"data": WorkspaceOut.model_validate(workspace).model_dump(mode="json")}
