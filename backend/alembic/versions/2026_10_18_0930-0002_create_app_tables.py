"""create players, user_profiles, feedback and subscriptions

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name, sa.DateTime(timezone=True),
        nullable=False, server_default=sa.func.now(),
    )


def upgrade() -> None:
    op.create_table(
        "players",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.Text(), nullable=True),
        _timestamp("created_at"),
    )

    op.create_table(
        "user_profiles",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("roblox_id", sa.String(64), nullable=True),
        sa.Column("roblox_username", sa.Text(), nullable=True),
        sa.Column("roblox_access_token", sa.Text(), nullable=True),
        sa.Column("roblox_refresh_token", sa.Text(), nullable=True),
        _timestamp("updated_at"),
    )

    op.create_table(
        "feedback",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column(
            "workspace_id", sa.Uuid(),
            sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("game_id", sa.String(64), nullable=True),
        sa.Column("player_id", sa.String(64), nullable=True),
        sa.Column("player_name", sa.Text(), nullable=True),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("category", sa.String(20), nullable=False),
        _timestamp("created_at"),
    )
    op.create_index("ix_feedback_workspace_id", "feedback", ["workspace_id"])

    op.create_table(
        "subscriptions",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("stripe_customer_id", sa.String(255), nullable=True),
        sa.Column("stripe_subscription_id", sa.String(255), nullable=True, unique=True),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("plan_id", sa.String(255), nullable=True),
        sa.Column("trial_end", sa.DateTime(timezone=True), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )


def downgrade() -> None:
    op.drop_table("subscriptions")
    op.drop_index("ix_feedback_workspace_id", table_name="feedback")
    op.drop_table("feedback")
    op.drop_table("user_profiles")
    op.drop_table("players")
