"""
Rate limit event log — one row per rate-limit check on an API key.

Admission counts rows for a key inside the trailing window; rows older
than twice the window are swept by the same code path that counts them.
The table is append-only apart from that sweep.
"""

import uuid
import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from upview.core.database import Base


class RateEvent(Base):
    """A single timestamped hit against an API key."""

    __tablename__ = "rate_events"
    __table_args__ = (
        # Covers both the window count and the per-key sweep
        Index("ix_rate_events_key_created", "credential_key", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    credential_key: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("credentials.key", ondelete="CASCADE"),
        nullable=False,
    )
    principal_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<RateEvent key={self.credential_key[:8]!r}… at={self.created_at}>"
