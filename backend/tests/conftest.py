"""Pytest configuration and fixtures shared across all test modules.

Every test gets a fresh in-memory SQLite database (aiosqlite + StaticPool
so all sessions share one connection). Upstream integrations are replaced
with in-process fakes through FastAPI dependency overrides.
"""

import datetime
import json
import os

# CRITICAL: Set these before any imports that might load settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["TOGETHER_API_KEY"] = ""
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"

from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from upview.auth.identity import Principal
from upview.core.clients import (
    get_feedback_classifier,
    get_identity_provider,
    get_roblox_client,
    get_stripe_gateway,
)
from upview.core.database import Base, get_db_session
from upview.core.errors import UpstreamError
from upview.main import app
from upview.models.credential import Credential
from upview.models.workspace import Workspace
from upview.services.billing import StripeGateway, SubscriptionSnapshot

USER_ID = "user-1"
USER_TOKEN = "user-token"
OTHER_USER_ID = "user-2"
OTHER_TOKEN = "other-token"
API_KEY = "upv_0a1b_2c3d_4e5f_6789"
AVATAR_URL = "https://tr.rbxcdn.com/headshot-48x48.png"
T0 = datetime.datetime(2026, 10, 18, 12, 0, tzinfo=datetime.timezone.utc)


# ── Fakes ───────────────────────────────────────────────────
class FakeIdentity:
    def __init__(self) -> None:
        self.tokens = {
            USER_TOKEN: Principal(id=USER_ID, email="owner@example.com"),
            OTHER_TOKEN: Principal(id=OTHER_USER_ID, email="other@example.com"),
        }

    async def verify(self, token: str) -> Principal | None:
        return self.tokens.get(token)


class FakeRoblox:
    """Stands in for RobloxClient: headshot lookup and OAuth."""

    def __init__(self) -> None:
        self.payload: dict[str, Any] = {"data": [{"imageUrl": AVATAR_URL}]}
        self.calls: list[str] = []
        self.error: Exception | None = None

    async def fetch_headshots(self, username: str) -> dict[str, Any]:
        self.calls.append(username)
        if self.error is not None:
            raise self.error
        return self.payload

    async def exchange_code(self, code: str, redirect_uri: str) -> dict[str, Any]:
        if code == "bad":
            raise UpstreamError("Failed to exchange code for token")
        return {"access_token": "rbx-access", "refresh_token": "rbx-refresh"}

    async def fetch_userinfo(self, access_token: str) -> dict[str, Any]:
        return {"sub": "156", "preferred_username": "Builderman"}


class FakeClassifier:
    def __init__(self, category: str = "Bug") -> None:
        self.category = category
        self.texts: list[str] = []

    async def classify(self, text: str) -> str:
        self.texts.append(text)
        return self.category


class FakeStripeGateway(StripeGateway):
    """Skips signature checks and Stripe network calls."""

    def __init__(self) -> None:
        super().__init__(api_key="sk_test", webhook_secret="whsec_test", price_id="price_1")
        self.snapshot = SubscriptionSnapshot(status="trialing", plan_id="price_1", trial_end=None)
        self.checkouts: list[str] = []

    def verify_event(self, payload: bytes, signature: str) -> dict[str, Any]:
        return json.loads(payload)

    async def retrieve_subscription(self, subscription_id: str) -> SubscriptionSnapshot:
        return self.snapshot

    async def create_checkout_session(self, user_id: str, email: str | None) -> str:
        self.checkouts.append(user_id)
        return "https://checkout.stripe.com/c/pay/cs_test_123"


# ── Database ────────────────────────────────────────────────
@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def workspace(session_factory) -> Workspace:
    async with session_factory() as s:
        ws = Workspace(owner_id=USER_ID, name="Obby Studio", created_at=T0)
        s.add(ws)
        await s.commit()
        return ws


@pytest_asyncio.fixture
async def credential(session_factory, workspace) -> Credential:
    async with session_factory() as s:
        cred = Credential(
            key=API_KEY,
            principal_id=USER_ID,
            workspace_id=workspace.id,
            created_at=T0,
            last_used_at=T0,
        )
        s.add(cred)
        await s.commit()
        return cred


# ── App client ──────────────────────────────────────────────
@pytest.fixture
def identity() -> FakeIdentity:
    return FakeIdentity()


@pytest.fixture
def roblox() -> FakeRoblox:
    return FakeRoblox()


@pytest.fixture
def classifier() -> FakeClassifier:
    return FakeClassifier()


@pytest.fixture
def stripe_gateway() -> FakeStripeGateway:
    return FakeStripeGateway()


@pytest_asyncio.fixture
async def client(session_factory, identity, roblox, classifier, stripe_gateway):
    async def _session():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_db_session] = _session
    app.dependency_overrides[get_identity_provider] = lambda: identity
    app.dependency_overrides[get_roblox_client] = lambda: roblox
    app.dependency_overrides[get_feedback_classifier] = lambda: classifier
    app.dependency_overrides[get_stripe_gateway] = lambda: stripe_gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {USER_TOKEN}"}
