"""
Feedback router — the entry point game servers call with an API key.

POST /upview/feedback
  1. Checks the x-api-key format (no DB access for malformed keys).
  2. Resolves the key and enforces the per-key rate limit.
  3. Requires the key to be linked to a workspace.
  4. Classifies the text (Bug / Suggestion / Spam / Rude / Other).
  5. Touches the key's last-used timestamp (best effort).
  6. Persists the feedback scoped to the key's workspace.
  7. Returns the category plus quota, with X-RateLimit-* headers.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from upview.auth.api_keys import redact
from upview.auth.rate_limit import ApiKeyContext, enforce_rate_limit
from upview.core.clients import get_feedback_classifier
from upview.core.database import get_db_session, utcnow
from upview.core.errors import InternalError, UnauthorizedError
from upview.models.feedback import Feedback
from upview.schemas.feedback import FeedbackAccepted, FeedbackCreate
from upview.services.credentials import touch_credential
from upview.services.feedback_classifier import FeedbackClassifier

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Feedback"])

DbSession = Annotated[AsyncSession, Depends(get_db_session)]
ApiKey = Annotated[ApiKeyContext, Depends(enforce_rate_limit)]
Classifier = Annotated[FeedbackClassifier, Depends(get_feedback_classifier)]


@router.post(
    "/feedback",
    response_model=FeedbackAccepted,
    summary="Submit player feedback",
    description="Authenticated with x-api-key. Rate limited per key.",
)
async def submit_feedback(
    payload: FeedbackCreate,
    response: Response,
    auth: ApiKey,  # before the session: malformed keys never open one
    session: DbSession,
    classifier: Classifier,
) -> FeedbackAccepted:
    # ── 1. Workspace required ───────────────────────────────
    if not auth.owner.has_workspace:
        logger.warning("API key %s is not associated with a workspace", redact(auth.key))
        raise UnauthorizedError(
            "API key not associated with a workspace. "
            "Please generate a new key in the dashboard."
        )

    # ── 2. Classify ─────────────────────────────────────────
    category = await classifier.classify(payload.text)

    # ── 3. Last used ────────────────────────────────────────
    now = utcnow()
    await touch_credential(session, auth.key, now=now)

    # ── 4. Persist ──────────────────────────────────────────
    feedback = Feedback(
        user_id=auth.owner.principal_id,
        workspace_id=auth.owner.workspace_id,
        game_id=payload.game_id,
        player_id=payload.player_id,
        player_name=payload.player_name,
        text=payload.text,
        category=category,
        created_at=now,
    )
    try:
        session.add(feedback)
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Error storing feedback")
        raise InternalError("Failed to store feedback")

    response.headers.update(auth.rate_limit.headers())
    return FeedbackAccepted(
        category=category,
        remaining=auth.rate_limit.remaining,
        reset=auth.rate_limit.reset_ms,
    )
