"""Pydantic v2 schemas for the linked Roblox profile."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ProfileUpdate(BaseModel):
    """Payload accepted by PUT /api/user/profile."""

    roblox_id: str | None = Field(default=None, max_length=64)
    roblox_username: str | None = Field(default=None, max_length=255)
    roblox_access_token: str | None = None
    roblox_refresh_token: str | None = None


class ProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    roblox_id: str | None
    roblox_username: str | None
    updated_at: datetime
