"""
Credential model — the API key a game server sends as `x-api-key`.

Notes:
  • The key itself is the primary key: it is opaque, immutable once issued
    and looked up on every feedback request.
  • One live key per principal (unique principal_id). Issuing a new key
    deletes the previous row.
  • workspace_id is nullable: a principal can hold a key before creating
    a workspace, and that state is distinct from "key not found".
"""

import uuid
import datetime

from sqlalchemy import DateTime, ForeignKey, String, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from upview.core.database import Base


class Credential(Base):
    """API key belonging to one principal (and optionally one workspace)."""

    __tablename__ = "credentials"

    key: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )
    principal_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
    )
    workspace_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("workspaces.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    last_used_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return (
            f"<Credential key={self.key[:8]!r}… principal={self.principal_id!r} "
            f"workspace={self.workspace_id!s:.8}>"
        )
