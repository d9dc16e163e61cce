"""
Pydantic v2 schemas for feedback submission.

Game servers send camelCase keys (gameId, playerId, playerName); the
server answers with the assigned category and the caller's quota.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class FeedbackCreate(BaseModel):
    """Payload accepted by POST /upview/feedback."""

    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(
        ...,
        min_length=1,
        max_length=5000,
        description="Free-text feedback written by the player.",
    )
    game_id: str | None = Field(default=None, alias="gameId", max_length=64)
    player_id: str | None = Field(default=None, alias="playerId", max_length=64)
    player_name: str | None = Field(default=None, alias="playerName", max_length=255)


class FeedbackAccepted(BaseModel):
    """Response after feedback is stored."""

    success: bool = True
    category: str
    remaining: int
    reset: int = Field(..., description="Window reset time, epoch milliseconds.")
