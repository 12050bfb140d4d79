"""create events, batches, tickets and invitation card tables

Revision ID: 3b7e1c9d2a40
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b7e1c9d2a40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "events",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("location", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("organizer_name", sa.String(length=255), nullable=True),
        sa.Column("organizer_logo_url", sa.Text(), nullable=True),
        sa.Column(
            "sponsor_logos",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
    )

    op.create_table(
        "batches",
        sa.Column("batch_code", sa.String(length=255), primary_key=True),
        sa.Column(
            "event_id", sa.String(length=64), sa.ForeignKey("events.id"), nullable=False
        ),
        sa.Column("num_tickets", sa.Integer(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
    )

    op.create_table(
        "tickets",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column(
            "event_id", sa.String(length=64), sa.ForeignKey("events.id"), nullable=False
        ),
        sa.Column(
            "batch_code",
            sa.String(length=255),
            sa.ForeignKey("batches.batch_code"),
            nullable=True,
        ),
        sa.Column("purchase_channel", sa.String(length=32), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("buyer_name", sa.String(length=255), nullable=True),
        sa.Column("buyer_phone", sa.String(length=64), nullable=True),
        sa.Column("confirmation_code", sa.String(length=64), nullable=True),
    )
    op.create_index("ix_tickets_batch_code", "tickets", ["batch_code"])

    op.create_table(
        "invitation_card_batches",
        sa.Column("batch_code", sa.String(length=255), primary_key=True),
        sa.Column(
            "event_id", sa.String(length=64), sa.ForeignKey("events.id"), nullable=False
        ),
        sa.Column("num_cards", sa.Integer(), nullable=False),
        sa.Column("card_type", sa.String(length=64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
    )

    op.create_table(
        "invitation_cards",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column(
            "event_id", sa.String(length=64), sa.ForeignKey("events.id"), nullable=False
        ),
        sa.Column(
            "batch_code",
            sa.String(length=255),
            sa.ForeignKey("invitation_card_batches.batch_code"),
            nullable=True,
        ),
        sa.Column(
            "purchase_channel",
            sa.String(length=32),
            nullable=False,
            server_default="physical_batch",
        ),
        sa.Column("card_type", sa.String(length=64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("buyer_name", sa.String(length=255), nullable=True),
        sa.Column("buyer_phone", sa.String(length=64), nullable=True),
        sa.Column("confirmation_code", sa.String(length=64), nullable=True),
    )
    op.create_index(
        "ix_invitation_cards_batch_code", "invitation_cards", ["batch_code"]
    )


def downgrade() -> None:
    op.drop_index("ix_invitation_cards_batch_code", table_name="invitation_cards")
    op.drop_table("invitation_cards")
    op.drop_table("invitation_card_batches")
    op.drop_index("ix_tickets_batch_code", table_name="tickets")
    op.drop_table("tickets")
    op.drop_table("batches")
    op.drop_table("events")
