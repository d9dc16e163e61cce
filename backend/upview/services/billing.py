"""
Stripe billing — checkout sessions and subscription lifecycle webhooks.

The Stripe SDK is synchronous; every network call runs through
asyncio.to_thread so the event loop is never blocked.

Webhook events are consumed as plain dicts (json-decoded after the
signature check). Subscription rows are upserted on user_id, so a
redelivered checkout.session.completed leaves one row, not two.
"""

from __future__ import annotations

import asyncio
import datetime
import json
import logging
from dataclasses import dataclass
from typing import Any

import stripe
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from upview.core.config import settings
from upview.core.database import upsert, utcnow
from upview.core.errors import InternalError, InvalidInputError
from upview.models.subscription import Subscription

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = ("trialing", "active")

EVENT_CHECKOUT_COMPLETED = "checkout.session.completed"
EVENT_SUBSCRIPTION_UPDATED = "customer.subscription.updated"
EVENT_SUBSCRIPTION_DELETED = "customer.subscription.deleted"


@dataclass(frozen=True, slots=True)
class SubscriptionSnapshot:
    """The fields of a Stripe subscription this service stores."""

    status: str
    plan_id: str | None
    trial_end: datetime.datetime | None


def _from_epoch(value: int | None) -> datetime.datetime | None:
    if value is None:
        return None
    return datetime.datetime.fromtimestamp(value, tz=datetime.timezone.utc)


class StripeGateway:
    """All outbound Stripe traffic goes through this object."""

    def __init__(
        self,
        *,
        api_key: str = settings.STRIPE_SECRET_KEY,
        webhook_secret: str = settings.STRIPE_WEBHOOK_SECRET,
        price_id: str = settings.STRIPE_PRICE_ID,
        trial_days: int = settings.STRIPE_TRIAL_DAYS,
    ) -> None:
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._price_id = price_id
        self._trial_days = trial_days

    def verify_event(self, payload: bytes, signature: str) -> dict[str, Any]:
        """
        Check the Stripe-Signature header and decode the event.

        Raises InvalidInputError if the signature or payload is invalid.
        """
        try:
            stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as exc:
            logger.warning("Webhook signature verification failed: %s", exc)
            raise InvalidInputError("Invalid signature") from exc

        return json.loads(payload)

    async def retrieve_subscription(self, subscription_id: str) -> SubscriptionSnapshot:
        sub = await asyncio.to_thread(
            stripe.Subscription.retrieve, subscription_id, api_key=self._api_key,
        )
        items = sub["items"]["data"]
        return SubscriptionSnapshot(
            status=sub["status"],
            plan_id=items[0]["price"]["id"] if items else None,
            trial_end=_from_epoch(sub["trial_end"]),
        )

    async def create_checkout_session(self, user_id: str, email: str | None) -> str:
        """Create a subscription-mode checkout session and return its URL."""
        session = await asyncio.to_thread(
            stripe.checkout.Session.create,
            api_key=self._api_key,
            mode="subscription",
            payment_method_types=["card"],
            line_items=[{"price": self._price_id, "quantity": 1}],
            subscription_data={"trial_period_days": self._trial_days},
            success_url=(
                f"{settings.SITE_URL}/onboarding?step=workspace"
                "&session_id={CHECKOUT_SESSION_ID}"
            ),
            cancel_url=f"{settings.SITE_URL}/onboarding?step=payment",
            customer_email=email,
            metadata={"userId": user_id},
            billing_address_collection="required",
            allow_promotion_codes=True,
        )
        return session["url"]


# ── Store operations ────────────────────────────────────────
async def has_active_subscription(session: AsyncSession, user_id: str) -> bool:
    stmt = select(Subscription.status).where(
        Subscription.user_id == user_id,
        Subscription.status.in_(ACTIVE_STATUSES),
    )
    result = await session.execute(stmt)
    return result.first() is not None


async def record_checkout_completed(
    session: AsyncSession,
    gateway: StripeGateway,
    checkout: dict[str, Any],
) -> None:
    user_id = (checkout.get("metadata") or {}).get("userId")
    if not user_id:
        logger.error("No userId in checkout session metadata")
        raise InvalidInputError("No userId in session metadata")

    subscription_id = checkout.get("subscription")
    logger.info("Processing checkout completion for user %s", user_id)
    snapshot = await gateway.retrieve_subscription(subscription_id)

    now = utcnow()
    stmt = upsert(session, Subscription).values(
        user_id=user_id,
        stripe_customer_id=checkout.get("customer"),
        stripe_subscription_id=subscription_id,
        status=snapshot.status,
        plan_id=snapshot.plan_id,
        trial_end=snapshot.trial_end,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id"],
        set_={
            "stripe_customer_id": stmt.excluded.stripe_customer_id,
            "stripe_subscription_id": stmt.excluded.stripe_subscription_id,
            "status": stmt.excluded.status,
            "plan_id": stmt.excluded.plan_id,
            "trial_end": stmt.excluded.trial_end,
            "updated_at": stmt.excluded.updated_at,
        },
    )

    try:
        await session.execute(stmt)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Error upserting subscription for user %s", user_id)
        raise InternalError("Failed to create subscription record") from exc


async def record_subscription_change(
    session: AsyncSession,
    subscription: dict[str, Any],
) -> None:
    logger.info("Processing subscription update: %s", subscription.get("id"))
    try:
        await session.execute(
            update(Subscription)
            .where(Subscription.stripe_subscription_id == subscription.get("id"))
            .values(
                status=subscription.get("status"),
                trial_end=_from_epoch(subscription.get("trial_end")),
                updated_at=utcnow(),
            )
        )
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Error updating subscription %s", subscription.get("id"))
        raise InternalError("Failed to update subscription record") from exc


async def handle_event(
    session: AsyncSession,
    gateway: StripeGateway,
    event: dict[str, Any],
) -> None:
    """Apply one verified webhook event. Unknown event types are ignored."""
    event_type = event.get("type")
    obj = event.get("data", {}).get("object", {})
    logger.info("Processing webhook event: %s", event_type)

    if event_type == EVENT_CHECKOUT_COMPLETED:
        await record_checkout_completed(session, gateway, obj)
    elif event_type in (EVENT_SUBSCRIPTION_UPDATED, EVENT_SUBSCRIPTION_DELETED):
        await record_subscription_change(session, obj)
