"""Tests for Stripe checkout and webhook handling."""

import hashlib
import hmac
import json
import time

import pytest
from sqlalchemy import func, select

from conftest import USER_ID, USER_TOKEN
from upview.core.errors import InvalidInputError
from upview.models.subscription import Subscription
from upview.services.billing import StripeGateway, SubscriptionSnapshot

SECRET = "whsec_test"


def _checkout_event(user_id: str | None = USER_ID) -> dict:
    metadata = {"userId": user_id} if user_id else {}
    return {
        "id": "evt_1",
        "object": "event",
        "type": "checkout.session.completed",
        "data": {"object": {
            "id": "cs_1",
            "object": "checkout.session",
            "customer": "cus_1",
            "subscription": "sub_1",
            "metadata": metadata,
        }},
    }


def _sign(payload: bytes, secret: str = SECRET, timestamp: int | None = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.".encode() + payload
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


async def _subscription_count(session) -> int:
    return await session.scalar(select(func.count()).select_from(Subscription))


# ── Signature verification ──────────────────────────────────
def test_verify_event_accepts_a_valid_signature() -> None:
    gateway = StripeGateway(api_key="sk_test", webhook_secret=SECRET, price_id="price_1")
    payload = json.dumps(_checkout_event()).encode()

    event = gateway.verify_event(payload, _sign(payload))

    assert event["type"] == "checkout.session.completed"
    assert event["data"]["object"]["metadata"]["userId"] == USER_ID


@pytest.mark.parametrize("signature", [
    "t=1,v1=deadbeef",
    "garbage",
])
def test_verify_event_rejects_bad_signatures(signature: str) -> None:
    gateway = StripeGateway(api_key="sk_test", webhook_secret=SECRET, price_id="price_1")
    payload = json.dumps(_checkout_event()).encode()

    with pytest.raises(InvalidInputError, match="Invalid signature"):
        gateway.verify_event(payload, signature)


def test_verify_event_rejects_a_foreign_secret() -> None:
    gateway = StripeGateway(api_key="sk_test", webhook_secret=SECRET, price_id="price_1")
    payload = json.dumps(_checkout_event()).encode()

    with pytest.raises(InvalidInputError):
        gateway.verify_event(payload, _sign(payload, secret="whsec_other"))


# ── Checkout ────────────────────────────────────────────────
async def test_checkout_requires_a_bearer_token(client) -> None:
    response = await client.post(
        "/stripe/create-checkout",
        headers={"Cookie": f"sb-access-token={USER_TOKEN}"},
    )

    assert response.status_code == 401


async def test_checkout_returns_the_session_url(client, auth_headers, stripe_gateway) -> None:
    response = await client.post("/stripe/create-checkout", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"url": "https://checkout.stripe.com/c/pay/cs_test_123"}
    assert stripe_gateway.checkouts == [USER_ID]


async def test_checkout_refused_while_subscribed(client, auth_headers, stripe_gateway) -> None:
    await client.post("/stripe/webhook", json=_checkout_event(), headers={"stripe-signature": "t=1,v1=x"})

    response = await client.post("/stripe/create-checkout", headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Active subscription exists"}
    assert stripe_gateway.checkouts == []


# ── Webhook ─────────────────────────────────────────────────
async def test_webhook_without_signature_is_400(client) -> None:
    response = await client.post("/stripe/webhook", json=_checkout_event())

    assert response.status_code == 400
    assert response.json() == {"error": "No signature provided"}


async def test_checkout_completed_is_idempotent(client, session) -> None:
    headers = {"stripe-signature": "t=1,v1=x"}
    for _ in range(2):
        response = await client.post("/stripe/webhook", json=_checkout_event(), headers=headers)
        assert response.status_code == 200
        assert response.json() == {"received": True}

    assert await _subscription_count(session) == 1
    stored = await session.get(Subscription, USER_ID)
    assert stored.status == "trialing"
    assert stored.stripe_subscription_id == "sub_1"
    assert stored.stripe_customer_id == "cus_1"
    assert stored.plan_id == "price_1"


async def test_checkout_without_user_is_400(client, session) -> None:
    response = await client.post(
        "/stripe/webhook", json=_checkout_event(user_id=None), headers={"stripe-signature": "t=1,v1=x"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "No userId in session metadata"}
    assert await _subscription_count(session) == 0


async def test_subscription_update_changes_status(client, session, stripe_gateway) -> None:
    headers = {"stripe-signature": "t=1,v1=x"}
    await client.post("/stripe/webhook", json=_checkout_event(), headers=headers)

    update = {
        "type": "customer.subscription.updated",
        "data": {"object": {"id": "sub_1", "status": "past_due", "trial_end": 1_800_000_000}},
    }
    response = await client.post("/stripe/webhook", json=update, headers=headers)

    assert response.status_code == 200
    session.expire_all()
    stored = await session.get(Subscription, USER_ID)
    assert stored.status == "past_due"
    assert stored.trial_end is not None


async def test_unknown_events_are_acknowledged(client, session) -> None:
    response = await client.post(
        "/stripe/webhook",
        json={"type": "invoice.paid", "data": {"object": {}}},
        headers={"stripe-signature": "t=1,v1=x"},
    )

    assert response.status_code == 200
    assert await _subscription_count(session) == 0


def test_snapshot_is_immutable() -> None:
    snapshot = SubscriptionSnapshot(status="active", plan_id=None, trial_end=None)
    with pytest.raises(AttributeError):
        snapshot.status = "canceled"
