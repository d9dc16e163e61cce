"""
Database-backed rate limiter for API keys.

Counts rate_events rows for a key inside a trailing window that is
recomputed from wall-clock time on every check (default: 60 requests per
60 seconds, configurable).

Design decisions:
  • Every check is recorded, admitted or not — hammering a key while over
    the limit keeps it over the limit instead of being free.
  • Fail-open — if the owning principal cannot be resolved or the count
    query fails, the request is admitted with a full quota and the result
    is flagged `degraded`. A store outage must not block all traffic.
  • Count and insert are separate round trips with no lock between them.
    Concurrent checks on one key can over/under-admit slightly.
  • Rows older than 2× the window are swept per key on every check.
    Sweep failures are logged and ignored.
"""

from __future__ import annotations

import datetime
import logging
import math
from dataclasses import dataclass

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from upview.auth.api_keys import redact
from upview.core.config import settings
from upview.core.database import utcnow
from upview.models.credential import Credential
from upview.models.rate_event import RateEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    max_requests: int = 60
    window_seconds: int = 60

    def __post_init__(self) -> None:
        if self.max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

    @property
    def window(self) -> datetime.timedelta:
        return datetime.timedelta(seconds=self.window_seconds)

    @classmethod
    def from_settings(cls) -> RateLimitConfig:
        return cls(
            max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        )


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    """Outcome of one check.

    Attributes:
        admitted:  Whether the request may proceed.
        remaining: Requests left in the window (never negative).
        reset_at:  now + window at the time of the check.
        limit:     The configured ceiling.
        degraded:  True when the store failed and the limiter admitted
                   the request without counting it.
    """

    admitted: bool
    remaining: int
    reset_at: datetime.datetime
    limit: int
    degraded: bool = False

    @property
    def reset_ms(self) -> int:
        """reset_at as epoch milliseconds."""
        return int(self.reset_at.timestamp() * 1000)

    def retry_after(self, now: datetime.datetime | None = None) -> int:
        """Whole seconds until reset, rounded up."""
        now = now or utcnow()
        now_ms = now.timestamp() * 1000
        return max(0, math.ceil((self.reset_ms - now_ms) / 1000))

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_ms),
        }


def _admit_degraded(config: RateLimitConfig, now: datetime.datetime) -> RateLimitResult:
    return RateLimitResult(
        admitted=True,
        remaining=config.max_requests,
        reset_at=now + config.window,
        limit=config.max_requests,
        degraded=True,
    )


async def _lookup_principal(session: AsyncSession, key: str) -> str | None:
    stmt = select(Credential.principal_id).where(Credential.key == key)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def _count_in_window(
    session: AsyncSession,
    key: str,
    window_start: datetime.datetime,
) -> int:
    stmt = select(func.count()).select_from(RateEvent).where(
        RateEvent.credential_key == key,
        RateEvent.created_at >= window_start,
    )
    result = await session.execute(stmt)
    return result.scalar_one()


async def _record(
    session: AsyncSession,
    key: str,
    principal_id: str,
    now: datetime.datetime,
) -> None:
    try:
        session.add(RateEvent(credential_key=key, principal_id=principal_id, created_at=now))
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Error recording rate limit event for %s", redact(key))


async def _sweep(
    session: AsyncSession,
    key: str,
    threshold: datetime.datetime,
) -> None:
    try:
        await session.execute(
            delete(RateEvent).where(
                RateEvent.credential_key == key,
                RateEvent.created_at < threshold,
            )
        )
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Error cleaning up rate limit events for %s", redact(key))


async def check_rate_limit(
    session: AsyncSession,
    key: str,
    config: RateLimitConfig | None = None,
    *,
    now: datetime.datetime | None = None,
) -> RateLimitResult:
    """
    Check and record one request against an API key.

    The key must already have passed format validation. Side effects on
    every non-degraded call: one insert and one sweep, regardless of the
    admission outcome. Never raises on store errors.
    """
    config = config or RateLimitConfig.from_settings()
    now = now or utcnow()

    # ── 1. Owning principal (fail-open) ─────────────────────
    try:
        principal_id = await _lookup_principal(session, key)
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Error getting principal for rate limit; admitting request")
        return _admit_degraded(config, now)

    if principal_id is None:
        logger.warning("Rate limit check for unknown key %s; admitting request", redact(key))
        return _admit_degraded(config, now)

    # ── 2. Count the trailing window (fail-open) ────────────
    try:
        count = await _count_in_window(session, key, now - config.window)
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Error checking rate limit; admitting request")
        return _admit_degraded(config, now)

    result = RateLimitResult(
        admitted=count < config.max_requests,
        remaining=max(0, config.max_requests - count),
        reset_at=now + config.window,
        limit=config.max_requests,
    )

    # ── 3. Record this attempt, sweep old rows ──────────────
    await _record(session, key, principal_id, now)
    await _sweep(session, key, now - 2 * config.window)

    if not result.admitted:
        logger.info("Rate limit exceeded for %s (%d in window)", redact(key), count)

    return result
