"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in boxoffice/models/.
Repos convert between rows and domain dataclasses.

Tickets and invitation cards live in separate tables (each with its own
batch table) but share a column layout; the repos pick the pair by kind.
"""

from __future__ import annotations

import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from boxoffice.db.engine import Base


class EventRow(Base):
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    date: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    location: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    organizer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    organizer_logo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    # [{"name": "...", "url": "..."}]
    sponsor_logos: Mapped[list[dict]] = mapped_column(
        JSONB, nullable=False, default=list
    )


# --- Tickets ---


class BatchRow(Base):
    __tablename__ = "batches"

    batch_code: Mapped[str] = mapped_column(String(255), primary_key=True)
    event_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("events.id"), nullable=False
    )
    num_tickets: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class TicketRow(Base):
    __tablename__ = "tickets"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    event_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("events.id"), nullable=False
    )
    batch_code: Mapped[str | None] = mapped_column(
        String(255), ForeignKey("batches.batch_code"), nullable=True
    )
    purchase_channel: Mapped[str] = mapped_column(
        String(32), nullable=False
    )  # physical_batch|online
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    buyer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    buyer_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    confirmation_code: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (Index("ix_tickets_batch_code", "batch_code"),)


# --- Invitation cards ---


class InvitationCardBatchRow(Base):
    __tablename__ = "invitation_card_batches"

    batch_code: Mapped[str] = mapped_column(String(255), primary_key=True)
    event_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("events.id"), nullable=False
    )
    num_cards: Mapped[int] = mapped_column(Integer, nullable=False)
    card_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class InvitationCardRow(Base):
    __tablename__ = "invitation_cards"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    event_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("events.id"), nullable=False
    )
    batch_code: Mapped[str | None] = mapped_column(
        String(255),
        ForeignKey("invitation_card_batches.batch_code"),
        nullable=True,
    )
    purchase_channel: Mapped[str] = mapped_column(
        String(32), nullable=False, default="physical_batch"
    )
    card_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    buyer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    buyer_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    confirmation_code: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (Index("ix_invitation_cards_batch_code", "batch_code"),)
