"""
Credential store accessor — API key → owning principal and workspace.

resolve_credential() is a pure lookup used by the feedback dispatcher.
A key whose workspace_id is NULL resolves successfully; callers decide
whether that state is acceptable (it is distinct from "key not found").

Issuance keeps the one-live-key-per-principal invariant by deleting the
previous key in the same transaction as inserting the new one.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from upview.auth.api_keys import generate_api_key, redact
from upview.core.database import utcnow
from upview.core.errors import InternalError, NotFoundError
from upview.models.credential import Credential

logger = logging.getLogger(__name__)


class CredentialNotFoundError(NotFoundError):
    """Raised when an API key does not exist in the store."""


@dataclass(frozen=True, slots=True)
class CredentialOwner:
    """Who an API key belongs to.

    Attributes:
        principal_id: The dashboard user that issued the key.
        workspace_id: The workspace the key submits into, or None if the
                      principal had no workspace when the key was issued.
    """

    principal_id: str
    workspace_id: uuid.UUID | None

    @property
    def has_workspace(self) -> bool:
        return self.workspace_id is not None


async def resolve_credential(session: AsyncSession, key: str) -> CredentialOwner:
    """Look up a key. Raises CredentialNotFoundError if it does not exist."""
    stmt = select(Credential.principal_id, Credential.workspace_id).where(
        Credential.key == key,
    )
    result = await session.execute(stmt)
    row = result.one_or_none()

    if row is None:
        raise CredentialNotFoundError("API key not found")

    return CredentialOwner(principal_id=row.principal_id, workspace_id=row.workspace_id)


async def get_credential_for_principal(
    session: AsyncSession,
    principal_id: str,
) -> Credential | None:
    stmt = select(Credential).where(Credential.principal_id == principal_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def issue_credential(
    session: AsyncSession,
    principal_id: str,
    workspace_id: uuid.UUID | None = None,
    *,
    now: datetime.datetime | None = None,
) -> Credential:
    """
    Issue a fresh key for a principal, superseding any existing one.

    Raises InternalError if the store rejects the write — the caller asked
    for this mutation, so a failure is not swallowed.
    """
    now = now or utcnow()
    credential = Credential(
        key=generate_api_key(),
        principal_id=principal_id,
        workspace_id=workspace_id,
        created_at=now,
        last_used_at=now,
    )

    try:
        await session.execute(
            delete(Credential).where(Credential.principal_id == principal_id)
        )
        session.add(credential)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Failed to issue API key for principal %s", principal_id)
        raise InternalError("Failed to create API key") from exc

    logger.info("Issued API key %s for principal %s", redact(credential.key), principal_id)
    return credential


async def touch_credential(
    session: AsyncSession,
    key: str,
    *,
    now: datetime.datetime | None = None,
) -> None:
    """Record that a key was just used. Best-effort: failures are logged only."""
    try:
        await session.execute(
            update(Credential)
            .where(Credential.key == key)
            .values(last_used_at=now or utcnow())
        )
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Error updating last-used timestamp for %s", redact(key))
