"""
User profile — the Roblox account linked to a dashboard principal.

Populated by the Roblox OAuth callback or PUT /api/user/profile.
roblox_username drives the `user` branch of avatar resolution.
"""

import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from upview.core.database import Base


class UserProfile(Base):
    """One row per principal; upserted on every link/refresh."""

    __tablename__ = "user_profiles"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    roblox_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    roblox_username: Mapped[str | None] = mapped_column(Text, nullable=True)
    roblox_access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    roblox_refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<UserProfile user={self.user_id!r} roblox={self.roblox_username!r}>"
