"""Price reaction table and pending notification tracking

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 18:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Add event_price_reaction and auto_events_pending.notified_at."""

    # 1. event_price_reaction: pair price at T0, T+5m and T+15m per approved event
    op.create_table(
        "event_price_reaction",
        sa.Column("id", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("event_id", sa.BigInteger(), nullable=False),
        sa.Column("coin_name", sa.String(length=50), nullable=True),
        sa.Column("pair", sa.String(length=50), nullable=False),
        sa.Column("exchange", sa.String(length=50), nullable=True),
        sa.Column("t0_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("t0_price", sa.Numeric(), nullable=True),
        sa.Column("t0_percent", sa.Numeric(), nullable=True),
        sa.Column("t_plus_5_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("t_plus_5_price", sa.Numeric(), nullable=True),
        sa.Column("t_plus_5_percent", sa.Numeric(), nullable=True),
        sa.Column("t_plus_15_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("t_plus_15_price", sa.Numeric(), nullable=True),
        sa.Column("t_plus_15_percent", sa.Numeric(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("event_id", name="uq_price_reaction_event"),
    )

    # 2. auto_events_pending.notified_at: moderator notification watermark
    op.add_column(
        "auto_events_pending",
        sa.Column("notified_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "idx_pending_unnotified",
        "auto_events_pending",
        ["id"],
        postgresql_where=sa.text("notified_at IS NULL"),
    )


def downgrade() -> None:
    """Drop price reactions and notification tracking."""
    op.drop_index("idx_pending_unnotified", table_name="auto_events_pending")
    op.drop_column("auto_events_pending", "notified_at")
    op.drop_table("event_price_reaction")
