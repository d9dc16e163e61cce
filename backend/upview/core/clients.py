"""
Shared outbound clients, created once per process in the app lifespan.

One httpx.AsyncClient backs every upstream integration (identity provider,
Roblox, Together AI) so connections are pooled. Routers reach the clients
through the dependency getters below, which tests override.
"""

import httpx
from fastapi import FastAPI, Request

from upview.auth.identity import IdentityProvider
from upview.core.config import settings
from upview.services.billing import StripeGateway
from upview.services.feedback_classifier import FeedbackClassifier
from upview.services.roblox_client import RobloxClient


def open_clients(app: FastAPI) -> None:
    http = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)
    app.state.http = http
    app.state.identity = IdentityProvider(http, settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
    app.state.roblox = RobloxClient(http)
    app.state.classifier = FeedbackClassifier(http)
    app.state.stripe = StripeGateway()


async def close_clients(app: FastAPI) -> None:
    await app.state.http.aclose()


# ── Dependencies ────────────────────────────────────────────
def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity


def get_roblox_client(request: Request) -> RobloxClient:
    return request.app.state.roblox


def get_feedback_classifier(request: Request) -> FeedbackClassifier:
    return request.app.state.classifier


def get_stripe_gateway(request: Request) -> StripeGateway:
    return request.app.state.stripe
