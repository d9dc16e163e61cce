"""Pydantic v2 schemas for API key management."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class CredentialOut(BaseModel):
    """The principal's key as shown in the dashboard."""

    model_config = ConfigDict(from_attributes=True)

    key: str
    workspace_id: uuid.UUID | None
    created_at: datetime
    last_used_at: datetime
