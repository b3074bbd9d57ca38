"""Database models for the monthly draw cycle."""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import ID_TYPE, Base

if TYPE_CHECKING:
    from .charity import Charity
    from .participant import Participant

MONEY = Numeric(12, 2)
ZERO = Decimal("0")


class DrawStatus(str, enum.Enum):
    """Lifecycle state of a monthly draw."""

    OPEN = "open"
    PROCESSING = "processing"
    PUBLISHED = "published"

    def can_transition_to(self, target: "DrawStatus") -> bool:
        return target in DRAW_TRANSITIONS[self]


DRAW_TRANSITIONS: dict[DrawStatus, frozenset[DrawStatus]] = {
    DrawStatus.OPEN: frozenset({DrawStatus.PROCESSING}),
    # processing -> open only when an in-flight commit is abandoned.
    DrawStatus.PROCESSING: frozenset({DrawStatus.PUBLISHED, DrawStatus.OPEN}),
    # published -> open is the reset compensating transition.
    DrawStatus.PUBLISHED: frozenset({DrawStatus.OPEN}),
}
"""Reviewed transition table. Anything not listed here is rejected."""


class Draw(Base):
    """One monthly draw cycle, identified by its ``month_year`` label."""

    __tablename__ = "draws"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    month_year: Mapped[str] = mapped_column(String(32), nullable=False)
    """Calendar month label such as ``"February 2026"``. Unique per cycle."""

    status: Mapped[DrawStatus] = mapped_column(
        Enum(
            DrawStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
            validate_strings=True,
        ),
        nullable=False,
        default=DrawStatus.OPEN,
    )
    """Current lifecycle state."""

    score_range_min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    score_range_max: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Range the winning numbers were drawn from."""

    winning_numbers: Mapped[list[int]] = mapped_column(
        JSON, nullable=False, default=list
    )
    """The five committed winning numbers; empty until published."""

    participants_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    prize_pool: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    """``participants_count * base_amount_per_sub`` at commit time."""

    tier1_pool: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    tier2_pool: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    tier3_pool: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    tier1_winners: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tier2_winners: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tier3_winners: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tier2_overflow: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    """Amount above the jackpot cap diverted into the 4-match pool."""

    jackpot_cap_reached: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    jackpot_carryover_in: Mapped[Optional[Decimal]] = mapped_column(
        MONEY, nullable=True
    )
    """Jackpot balance before this draw was committed. Used by reset."""

    jackpot_rollover_out: Mapped[Optional[Decimal]] = mapped_column(
        MONEY, nullable=True
    )
    """Jackpot balance after this draw was committed."""

    drawn_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    published_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    entries: Mapped[list["DrawEntry"]] = relationship(
        back_populates="draw",
        cascade="all, delete-orphan",
        order_by="DrawEntry.id",
    )
    """Winner records written when the draw was committed."""

    __table_args__ = (
        UniqueConstraint("month_year", name="uq_draws_month_year"),
        Index("ix_draws_status", "status"),
    )

    def __init__(
        self,
        *,
        month_year: str,
        status: DrawStatus = DrawStatus.OPEN,
        created_at: Optional[datetime] = None,
    ) -> None:
        self.month_year = month_year
        self.status = status
        self.winning_numbers = []
        if created_at is not None:
            self.created_at = created_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Draw(id={id}, month_year={month}, status={status})>".format(
            id=self.id,
            month=self.month_year,
            status=self.status.value if self.status else None,
        )

    @property
    def is_published(self) -> bool:
        return self.status == DrawStatus.PUBLISHED

    def clear_results(self) -> None:
        """Blank every committed result column."""

        self.score_range_min = None
        self.score_range_max = None
        self.winning_numbers = []
        self.participants_count = 0
        self.prize_pool = ZERO
        self.tier1_pool = ZERO
        self.tier2_pool = ZERO
        self.tier3_pool = ZERO
        self.tier1_winners = 0
        self.tier2_winners = 0
        self.tier3_winners = 0
        self.tier2_overflow = ZERO
        self.jackpot_cap_reached = False
        self.jackpot_carryover_in = None
        self.jackpot_rollover_out = None
        self.drawn_at = None
        self.published_at = None

    @classmethod
    def get_by_month_year(cls, session: Session, month_year: str) -> Optional["Draw"]:
        """Return the draw for ``month_year`` if it exists."""

        return session.scalar(select(cls).where(cls.month_year == month_year))


class DrawEntry(Base):
    """Winner record for a participant who matched three or more numbers."""

    __tablename__ = "draw_entries"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    draw_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("draws.id", ondelete="CASCADE"), nullable=False, index=True
    )
    participant_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE,
        ForeignKey("participants.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    scores: Mapped[list[int]] = mapped_column(JSON, nullable=False)
    """Snapshot of the five scores the participant entered with."""

    matches: Mapped[int] = mapped_column(Integer, nullable=False)
    tier: Mapped[int] = mapped_column(Integer, nullable=False)
    """1 for five matches, 2 for four, 3 for three."""

    gross_prize: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    charity_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    net_payout: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    charity_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("charities.id", ondelete="SET NULL"), nullable=True
    )
    verification_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    draw: Mapped["Draw"] = relationship(back_populates="entries")
    participant: Mapped[Optional["Participant"]] = relationship(back_populates="entries")
    charity: Mapped[Optional["Charity"]] = relationship("Charity")

    __table_args__ = (
        UniqueConstraint("draw_id", "participant_id", name="uq_draw_entry_participant"),
        Index("ix_draw_entries_tier", "tier"),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<DrawEntry(id={self.id}, draw_id={self.draw_id}, "
            f"participant_id={self.participant_id}, matches={self.matches}, "
            f"tier={self.tier}, gross_prize={self.gross_prize})>"
        )


class Donation(Base):
    """Charity donation generated from the donation share of a prize."""

    __tablename__ = "donations"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    charity_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("charities.id", ondelete="SET NULL"), nullable=True
    )
    participant_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("participants.id", ondelete="SET NULL"), nullable=True
    )
    draw_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("draws.id", ondelete="CASCADE"), nullable=True, index=True
    )
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False, default="prize_split")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )


__all__ = [
    "DRAW_TRANSITIONS",
    "Donation",
    "Draw",
    "DrawEntry",
    "DrawStatus",
]
