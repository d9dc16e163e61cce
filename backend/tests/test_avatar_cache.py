"""Tests for avatar resolution and the player avatar cache."""

import datetime

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from conftest import AVATAR_URL, T0, USER_ID
from upview.core.database import as_utc
from upview.core.errors import NotFoundError, UpstreamError
from upview.models.avatar_cache import AvatarCacheEntry
from upview.models.player import Player
from upview.models.user_profile import UserProfile
from upview.services.avatar_cache import (
    SubjectKind,
    get_cached_avatar,
    resolve_avatar,
    resolve_player_avatar,
    store_avatar,
)

PLAYER_ID = "1"
NEW_URL = "https://tr.rbxcdn.com/headshot-48x48-v2.png"


@pytest_asyncio.fixture
async def player(session) -> Player:
    p = Player(id=PLAYER_ID, name="Roblox", created_at=T0)
    session.add(p)
    await session.commit()
    return p


async def _cache_rows(session) -> int:
    return await session.scalar(select(func.count()).select_from(AvatarCacheEntry))


# ── Player branch ───────────────────────────────────────────
async def test_second_lookup_within_ttl_is_served_from_cache(session, player, roblox) -> None:
    first = await resolve_player_avatar(session, roblox, PLAYER_ID, USER_ID, now=T0)
    second = await resolve_player_avatar(
        session, roblox, PLAYER_ID, USER_ID, now=T0 + datetime.timedelta(hours=23, minutes=59)
    )

    assert first == second == AVATAR_URL
    assert roblox.calls == ["Roblox"]


async def test_stale_entry_is_refreshed_and_overwritten(session, player, roblox) -> None:
    await resolve_player_avatar(session, roblox, PLAYER_ID, USER_ID, now=T0)
    roblox.payload = {"data": [{"imageUrl": NEW_URL}]}

    later = T0 + datetime.timedelta(hours=24, seconds=1)
    url = await resolve_player_avatar(session, roblox, PLAYER_ID, USER_ID, now=later)

    assert url == NEW_URL
    assert len(roblox.calls) == 2

    session.expire_all()
    entry = await get_cached_avatar(session, PLAYER_ID)
    assert entry.image_url == NEW_URL
    assert as_utc(entry.updated_at) == later
    assert await _cache_rows(session) == 1


async def test_unknown_player_fails_before_any_upstream_call(session, roblox) -> None:
    with pytest.raises(NotFoundError, match="Player not found"):
        await resolve_player_avatar(session, roblox, "404", USER_ID, now=T0)

    assert roblox.calls == []


async def test_player_without_name_is_not_found(session, roblox) -> None:
    session.add(Player(id="2", name=None, created_at=T0))
    await session.commit()

    with pytest.raises(NotFoundError):
        await resolve_player_avatar(session, roblox, "2", USER_ID, now=T0)

    assert roblox.calls == []


async def test_missing_image_url_is_not_found_and_not_cached(session, player, roblox) -> None:
    roblox.payload = {"data": []}

    with pytest.raises(NotFoundError, match="No avatar URL found"):
        await resolve_player_avatar(session, roblox, PLAYER_ID, USER_ID, now=T0)

    assert await _cache_rows(session) == 0


async def test_upstream_failure_leaves_no_entry(session, player, roblox) -> None:
    roblox.error = UpstreamError("Failed to fetch headshot")

    with pytest.raises(UpstreamError):
        await resolve_player_avatar(session, roblox, PLAYER_ID, USER_ID, now=T0)

    assert await _cache_rows(session) == 0


async def test_cache_write_failure_still_returns_the_url(session, player, roblox, monkeypatch, caplog) -> None:
    async def broken_commit():
        raise OperationalError("INSERT INTO avatar_cache", {}, Exception("disk full"))

    monkeypatch.setattr(session, "commit", broken_commit)

    url = await resolve_player_avatar(session, roblox, PLAYER_ID, USER_ID, now=T0)

    assert url == AVATAR_URL
    assert "Failed to cache avatar for player 1" in caplog.text
    assert await _cache_rows(session) == 0


# ── User branch ─────────────────────────────────────────────
async def test_user_branch_always_hits_upstream_and_never_caches(session, roblox) -> None:
    session.add(UserProfile(user_id=USER_ID, roblox_username="Builderman", updated_at=T0))
    await session.commit()

    for _ in range(2):
        url = await resolve_avatar(session, roblox, SubjectKind.USER, USER_ID, USER_ID, now=T0)
        assert url == AVATAR_URL

    assert roblox.calls == ["Builderman", "Builderman"]
    assert await _cache_rows(session) == 0


async def test_user_without_linked_account_is_not_found(session, roblox) -> None:
    with pytest.raises(NotFoundError, match="No Roblox username found"):
        await resolve_avatar(session, roblox, SubjectKind.USER, USER_ID, USER_ID, now=T0)

    assert roblox.calls == []


# ── Store ───────────────────────────────────────────────────
async def test_store_upserts_a_single_row_per_subject(session) -> None:
    await store_avatar(session, PLAYER_ID, USER_ID, AVATAR_URL, T0)
    later = T0 + datetime.timedelta(hours=1)
    await store_avatar(session, PLAYER_ID, USER_ID, NEW_URL, later)

    session.expire_all()
    entry = await get_cached_avatar(session, PLAYER_ID)
    assert await _cache_rows(session) == 1
    assert entry.image_url == NEW_URL
    assert as_utc(entry.updated_at) == later
