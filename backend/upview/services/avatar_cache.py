"""
Avatar resolution with a database-backed freshness cache.

Two subject kinds:
  • player — read-through/write-through cache in avatar_cache. A fresh
    entry (younger than the TTL, 24h by default) is returned with zero
    upstream calls. Otherwise the player's name is looked up, Roblox is
    asked for the headshot and the entry is upserted.
  • user   — the principal's linked Roblox username is looked up and
    Roblox is queried on every call. This branch is deliberately NOT
    cached; see DESIGN.md.

Check-then-upsert is two round trips with no lock; concurrent refreshes
of one player may both hit Roblox and the last write wins.
"""

from __future__ import annotations

import datetime
import enum
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from upview.core.config import settings
from upview.core.database import as_utc, upsert, utcnow
from upview.core.errors import NotFoundError
from upview.models.avatar_cache import AvatarCacheEntry
from upview.models.player import Player
from upview.models.user_profile import UserProfile
from upview.services.roblox_client import AvatarLookup, first_image_url

logger = logging.getLogger(__name__)


class SubjectKind(str, enum.Enum):
    USER = "user"
    PLAYER = "player"


def default_ttl() -> datetime.timedelta:
    return datetime.timedelta(hours=settings.AVATAR_CACHE_TTL_HOURS)


def is_fresh(
    entry: AvatarCacheEntry,
    now: datetime.datetime,
    ttl: datetime.timedelta,
) -> bool:
    return bool(entry.image_url) and now - as_utc(entry.updated_at) < ttl


async def get_cached_avatar(
    session: AsyncSession,
    subject_id: str,
) -> AvatarCacheEntry | None:
    stmt = select(AvatarCacheEntry).where(AvatarCacheEntry.subject_id == subject_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def store_avatar(
    session: AsyncSession,
    subject_id: str,
    principal_id: str,
    image_url: str,
    now: datetime.datetime,
) -> None:
    """Insert or overwrite the cache entry for a subject."""
    stmt = upsert(session, AvatarCacheEntry).values(
        subject_id=subject_id,
        principal_id=principal_id,
        image_url=image_url,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["subject_id"],
        set_={
            "principal_id": stmt.excluded.principal_id,
            "image_url": stmt.excluded.image_url,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    await session.execute(stmt)
    await session.commit()


async def _lookup_image_url(lookup: AvatarLookup, username: str) -> str:
    payload = await lookup.fetch_headshots(username)
    image_url = first_image_url(payload)
    if not image_url:
        raise NotFoundError("No avatar URL found")
    return image_url


async def resolve_user_avatar(
    session: AsyncSession,
    lookup: AvatarLookup,
    user_id: str,
) -> str:
    """Headshot of a principal's linked Roblox account. Always hits upstream."""
    stmt = select(UserProfile.roblox_username).where(UserProfile.user_id == user_id)
    result = await session.execute(stmt)
    username = result.scalar_one_or_none()

    if not username:
        raise NotFoundError("No Roblox username found")

    return await _lookup_image_url(lookup, username)


async def resolve_player_avatar(
    session: AsyncSession,
    lookup: AvatarLookup,
    player_id: str,
    principal_id: str,
    *,
    ttl: datetime.timedelta | None = None,
    now: datetime.datetime | None = None,
) -> str:
    """
    Headshot of an in-game player, served from cache while fresh.

    Raises:
        NotFoundError: unknown player, player without a name, or Roblox
                       returned no image URL. Unknown players fail before
                       any upstream call.
        UpstreamError: Roblox answered with an error.
    """
    ttl = ttl or default_ttl()
    now = now or utcnow()

    # ── 1. Cache hit ────────────────────────────────────────
    cached = await get_cached_avatar(session, player_id)
    if cached is not None and is_fresh(cached, now, ttl):
        return cached.image_url

    # ── 2. Player name ──────────────────────────────────────
    stmt = select(Player.name).where(Player.id == player_id)
    result = await session.execute(stmt)
    name = result.scalar_one_or_none()

    if not name:
        raise NotFoundError("Player not found")

    # ── 3. Upstream ─────────────────────────────────────────
    image_url = await _lookup_image_url(lookup, name)

    # ── 4. Write through ────────────────────────────────────
    try:
        await store_avatar(session, player_id, principal_id, image_url, now)
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to cache avatar for player %s", player_id)

    return image_url


async def resolve_avatar(
    session: AsyncSession,
    lookup: AvatarLookup,
    kind: SubjectKind,
    subject_id: str,
    principal_id: str,
    *,
    now: datetime.datetime | None = None,
) -> str:
    if kind is SubjectKind.USER:
        return await resolve_user_avatar(session, lookup, subject_id)
    return await resolve_player_avatar(
        session, lookup, subject_id, principal_id, now=now,
    )
