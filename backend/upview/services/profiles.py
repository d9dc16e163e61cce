"""Linked Roblox profile persistence (user_profiles)."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from upview.core.database import upsert, utcnow
from upview.core.errors import InternalError
from upview.models.user_profile import UserProfile

logger = logging.getLogger(__name__)


async def get_profile(session: AsyncSession, user_id: str) -> UserProfile | None:
    return await session.get(UserProfile, user_id)


async def save_profile(
    session: AsyncSession,
    user_id: str,
    fields: dict[str, Any],
) -> UserProfile:
    """Upsert the profile row for a principal. Raises InternalError on failure."""
    values = {**fields, "updated_at": utcnow()}
    stmt = upsert(session, UserProfile).values(user_id=user_id, **values)
    stmt = stmt.on_conflict_do_update(index_elements=["user_id"], set_=values)

    try:
        await session.execute(stmt)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Failed to save profile for %s", user_id)
        raise InternalError("Failed to save profile") from exc

    profile = await session.get(UserProfile, user_id, populate_existing=True)
    if profile is None:
        raise InternalError("Failed to save profile")
    return profile
