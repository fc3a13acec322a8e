"""Create subscription table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "003"
down_revision: str | None = "002"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "subscription",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("subscriber_id", sa.Integer(), nullable=False),
        sa.Column("channel_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["subscriber_id"], ["user.id"]),
        sa.ForeignKeyConstraint(["channel_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("subscriber_id", "channel_id", name="uq_subscription_pair"),
    )
    op.create_index(op.f("ix_subscription_subscriber_id"), "subscription", ["subscriber_id"], unique=False)
    op.create_index(op.f("ix_subscription_channel_id"), "subscription", ["channel_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_subscription_channel_id"), table_name="subscription")
    op.drop_index(op.f("ix_subscription_subscriber_id"), table_name="subscription")
    op.drop_table("subscription")
