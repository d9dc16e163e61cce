"""
Feedback model — one message submitted by a player through a game.

Rows are written by POST /upview/feedback, scoped to the workspace of
the API key that submitted them, with a label from the classifier.
"""

import uuid
import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from upview.core.database import Base


class Feedback(Base):
    """Player feedback with its classified category."""

    __tablename__ = "feedback"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    workspace_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # ── Origin (as reported by the game) ────────────────────
    game_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    player_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    player_name: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Content ─────────────────────────────────────────────
    text: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Feedback id={self.id!s:.8} category={self.category!r}>"
