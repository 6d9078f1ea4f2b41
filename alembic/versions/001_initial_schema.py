"""Initial PostgreSQL schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _event_columns() -> list[sa.Column]:
    """Columns shared by approved events and pending auto-drafts."""
    return [
        sa.Column("id", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("timezone", sa.String(length=50), nullable=True),
        sa.Column("type", sa.String(length=100), nullable=True),
        sa.Column("event_type_slug", sa.String(length=100), nullable=True),
        sa.Column("link", sa.Text(), nullable=True),
        sa.Column("coin_name", sa.String(length=50), nullable=True),
        sa.Column("coin_quantity", sa.Numeric(), nullable=True),
        sa.Column("coins", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("coin_price_link", sa.Text(), nullable=True),
        sa.Column("source", sa.String(length=50), nullable=True),
        sa.Column("source_key", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def upgrade() -> None:
    """Create schema for the crypto events calendar."""

    # 1. events_approved: moderated calendar events
    op.create_table(
        "events_approved",
        *_event_columns(),
        sa.Column("coin_address", sa.Text(), nullable=True),
        sa.Column("coin_chain", sa.String(length=50), nullable=True),
        sa.Column("coin_circulating_supply", sa.Numeric(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_events_approved_match",
        "events_approved",
        ["event_type_slug", "coin_name", "start_at"],
    )
    op.create_index("idx_events_approved_start", "events_approved", ["start_at"])

    # 2. auto_events_pending: scraped drafts awaiting moderation
    op.create_table(
        "auto_events_pending",
        *_event_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_pending_source_key",
        "auto_events_pending",
        ["source", "source_key"],
        unique=True,
        postgresql_where=sa.text("source_key IS NOT NULL"),
    )
    op.create_index("idx_pending_start", "auto_events_pending", ["start_at"])

    # 3. event_edits_pending: field-level suggestions against approved events
    op.create_table(
        "event_edits_pending",
        sa.Column("id", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("event_id", sa.BigInteger(), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("submitter_email", sa.String(length=200), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_edits_event", "event_edits_pending", ["event_id"])

    # 4. tg_scrape_state: per-channel watermark
    op.create_table(
        "tg_scrape_state",
        sa.Column("channel", sa.String(length=100), nullable=False),
        sa.Column("last_msg_id", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("channel"),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("tg_scrape_state")
    op.drop_index("idx_edits_event", table_name="event_edits_pending")
    op.drop_table("event_edits_pending")
    op.drop_index("idx_pending_start", table_name="auto_events_pending")
    op.drop_index("idx_pending_source_key", table_name="auto_events_pending")
    op.drop_table("auto_events_pending")
    op.drop_index("idx_events_approved_start", table_name="events_approved")
    op.drop_index("idx_events_approved_match", table_name="events_approved")
    op.drop_table("events_approved")
