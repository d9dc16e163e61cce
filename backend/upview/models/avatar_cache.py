"""
Cached avatar entry — last resolved headshot URL per player.

An entry is fresh while now − updated_at is under the configured TTL
(24h by default). Entries are upserted on refresh and never deleted.
"""

import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from upview.core.database import Base


class AvatarCacheEntry(Base):
    """Resolved image URL for one subject, keyed by subject id."""

    __tablename__ = "avatar_cache"

    subject_id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )
    principal_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    image_url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AvatarCacheEntry subject={self.subject_id!r} updated={self.updated_at}>"
