"""
Subscription model — Stripe subscription state mirrored per principal.

Written only by the Stripe webhook: created (upserted) on checkout
completion, then status/trial_end tracked through lifecycle events.
Upsert on user_id keeps redelivered events idempotent.
"""

import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from upview.core.database import Base


class Subscription(Base):
    __tablename__ = "subscriptions"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    stripe_customer_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    stripe_subscription_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, unique=True,
    )
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    plan_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    trial_end: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Subscription user={self.user_id!r} status={self.status!r}>"
