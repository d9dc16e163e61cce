"""Player model — an in-game player seen by one of the owner's games."""

import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from upview.core.database import Base


class Player(Base):
    __tablename__ = "players"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # Roblox username, the avatar lookup key
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Player id={self.id!r} name={self.name!r}>"
