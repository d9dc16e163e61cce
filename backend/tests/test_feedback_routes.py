"""End-to-end tests for POST /upview/feedback."""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import API_KEY, T0, USER_ID
from upview.core.config import settings
from upview.core.database import as_utc, get_db_session
from upview.main import app
from upview.models.credential import Credential
from upview.models.feedback import Feedback

BODY = {"text": "The door in level 2 won't open", "gameId": "g-1", "playerId": "1", "playerName": "Roblox"}


@pytest.fixture
def db_opened(client) -> list[bool]:
    """Replace the session dependency with one that records being opened."""
    opened: list[bool] = []

    async def _tracking_session():
        opened.append(True)
        yield None

    app.dependency_overrides[get_db_session] = _tracking_session
    return opened


@pytest.mark.parametrize("headers, message", [
    ({}, "Missing API key"),
    ({"x-api-key": "upv_0A1B_2C3D_4E5F_6789"}, "Invalid API key format"),
    ({"x-api-key": "upv_0a1b_2c3d"}, "Invalid API key format"),
    ({"x-api-key": "sk_live_0a1b_2c3d_4e5f_6789"}, "Invalid API key format"),
])
async def test_malformed_keys_are_rejected_without_store_access(
    client, db_opened, headers, message
) -> None:
    response = await client.post("/upview/feedback", json=BODY, headers=headers)

    assert response.status_code == 401
    assert response.json() == {"error": message}
    assert db_opened == []


async def test_unknown_key_is_unauthorized(client, classifier) -> None:
    response = await client.post("/upview/feedback", json=BODY, headers={"x-api-key": API_KEY})

    assert response.status_code == 401
    assert response.json()["error"].startswith("API key not found")
    assert classifier.texts == []


async def test_key_without_workspace_is_unauthorized(client, session, classifier) -> None:
    session.add(Credential(key=API_KEY, principal_id=USER_ID, created_at=T0, last_used_at=T0))
    await session.commit()

    response = await client.post("/upview/feedback", json=BODY, headers={"x-api-key": API_KEY})

    assert response.status_code == 401
    assert "not associated with a workspace" in response.json()["error"]
    assert classifier.texts == []


async def test_feedback_is_classified_and_stored(client, session, credential, workspace, classifier) -> None:
    response = await client.post("/upview/feedback", json=BODY, headers={"x-api-key": API_KEY})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["category"] == "Bug"
    assert body["remaining"] == settings.RATE_LIMIT_MAX_REQUESTS
    assert response.headers["X-RateLimit-Limit"] == str(settings.RATE_LIMIT_MAX_REQUESTS)
    assert response.headers["X-RateLimit-Remaining"] == str(body["remaining"])
    assert response.headers["X-RateLimit-Reset"] == str(body["reset"])
    assert classifier.texts == [BODY["text"]]

    stored = (await session.execute(select(Feedback))).scalar_one()
    assert stored.workspace_id == workspace.id
    assert stored.user_id == USER_ID
    assert stored.category == "Bug"
    assert stored.game_id == "g-1"
    assert stored.player_name == "Roblox"

    key = await session.get(Credential, API_KEY)
    assert as_utc(key.last_used_at) != T0


async def test_over_limit_requests_get_429_with_retry_metadata(client, credential, monkeypatch) -> None:
    monkeypatch.setattr(settings, "RATE_LIMIT_MAX_REQUESTS", 2)
    headers = {"x-api-key": API_KEY}

    statuses = [
        (await client.post("/upview/feedback", json=BODY, headers=headers)).status_code
        for _ in range(2)
    ]
    rejected = await client.post("/upview/feedback", json=BODY, headers=headers)

    assert statuses == [200, 200]
    assert rejected.status_code == 429
    body = rejected.json()
    assert body["error"] == "Rate limit exceeded"
    assert body["remaining"] == 0
    assert 0 < body["retryAfter"] <= settings.RATE_LIMIT_WINDOW_SECONDS
    assert rejected.headers["Retry-After"] == str(body["retryAfter"])
    assert rejected.headers["X-RateLimit-Remaining"] == "0"
    assert rejected.headers["X-RateLimit-Reset"] == str(body["reset"])


@pytest.mark.parametrize("payload", [{}, {"text": ""}, {"text": "x" * 5001}])
async def test_invalid_body_is_400(client, credential, payload) -> None:
    response = await client.post("/upview/feedback", json=payload, headers={"x-api-key": API_KEY})

    assert response.status_code == 400
    assert response.json()["error"].startswith("text")


async def test_store_failure_is_500(client, credential, monkeypatch) -> None:
    async def broken_commit(self):
        raise OperationalError("INSERT INTO feedback", {}, Exception("disk full"))

    monkeypatch.setattr(AsyncSession, "commit", broken_commit)

    response = await client.post("/upview/feedback", json=BODY, headers={"x-api-key": API_KEY})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to store feedback"}
