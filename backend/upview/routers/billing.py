"""
Billing router — Stripe checkout and subscription webhooks.

POST /stripe/create-checkout — bearer-authenticated; 400 if the user is
                               already trialing/active, else {url}
POST /stripe/webhook         — signature-verified lifecycle events
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from upview.auth.dependencies import get_bearer_principal
from upview.auth.identity import Principal
from upview.core.clients import get_stripe_gateway
from upview.core.database import get_db_session
from upview.core.errors import InvalidInputError
from upview.services.billing import StripeGateway, handle_event, has_active_subscription

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Billing"])

DbSession = Annotated[AsyncSession, Depends(get_db_session)]
BearerUser = Annotated[Principal, Depends(get_bearer_principal)]
Stripe = Annotated[StripeGateway, Depends(get_stripe_gateway)]


@router.post("/create-checkout", summary="Start a subscription checkout")
async def create_checkout(
    session: DbSession,
    principal: BearerUser,
    gateway: Stripe,
) -> dict[str, str]:
    if await has_active_subscription(session, principal.id):
        raise InvalidInputError("Active subscription exists")

    url = await gateway.create_checkout_session(principal.id, principal.email)
    logger.info("Checkout session created for %s", principal.id)
    return {"url": url}


@router.post("/webhook", summary="Stripe webhook receiver")
async def stripe_webhook(
    request: Request,
    session: DbSession,
    gateway: Stripe,
    stripe_signature: str | None = Header(default=None, alias="stripe-signature"),
) -> dict[str, bool]:
    if not stripe_signature:
        logger.error("Webhook received without signature")
        raise InvalidInputError("No signature provided")

    payload = await request.body()
    event = gateway.verify_event(payload, stripe_signature)
    await handle_event(session, gateway, event)

    return {"received": True}
