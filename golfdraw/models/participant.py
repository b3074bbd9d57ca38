"""Participants, their recorded golf scores and their draw subscriptions."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship, validates

from .base import ID_TYPE, Base

if TYPE_CHECKING:
    from .charity import Charity
    from .draw import Draw, DrawEntry

SCORES_PER_ENTRY = 5
"""Number of recorded scores a participant needs to enter a draw."""

STABLEFORD_MIN = 1
STABLEFORD_MAX = 45

ENTRY_SUBSCRIPTION_STATUSES = ("active", "trialing")
"""Subscription statuses that qualify a participant for the current cycle."""


class Participant(Base):
    """A subscriber taking part in the monthly draws."""

    def __init__(
        self,
        *,
        full_name: Optional[str] = None,
        email: Optional[str] = None,
        status: str = "active",
        role: str = "player",
        charity_id: Optional[int] = None,
        donation_percentage: Optional[Decimal] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ) -> None:
        """Create a new :class:`Participant` record.

        Parameters
        ----------
        full_name : str, optional
            Display name used in winner exports.
        email : str, optional
            Contact email; normalized to lower case.
        status : str, default: "active"
            ``"active"`` or ``"suspended"``. Suspended participants never
            enter a draw.
        role : str, default: "player"
            ``"player"`` or ``"admin"``. Admin accounts are excluded from draws.
        charity_id : int, optional
            Charity receiving the donation share of any winnings.
        donation_percentage : Decimal, optional
            Share of gross winnings donated to the charity. Defaults to 10%.
        created_at : datetime, optional
            Explicit creation timestamp.
        updated_at : datetime, optional
            Explicit last update timestamp.
        """

        self.full_name = full_name
        self.email = email
        self.status = status
        self.role = role
        self.charity_id = charity_id
        if donation_percentage is not None:
            self.donation_percentage = donation_percentage
        if created_at is not None:
            self.created_at = created_at
        if updated_at is not None:
            self.updated_at = updated_at

    __tablename__ = "participants"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="player")
    charity_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("charities.id", ondelete="SET NULL"), nullable=True
    )
    donation_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("10")
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

    # relationships
    scores: Mapped[list["Score"]] = relationship(
        back_populates="participant",
        cascade="all, delete-orphan",
        order_by=lambda: [Score.created_at.desc(), Score.id.desc()],
    )
    subscriptions: Mapped[list["Subscription"]] = relationship(
        back_populates="participant", cascade="all, delete-orphan"
    )
    charity: Mapped[Optional["Charity"]] = relationship("Charity")
    entries: Mapped[list["DrawEntry"]] = relationship(back_populates="participant")

    __table_args__ = (
        CheckConstraint("status IN ('active','suspended')", name="status_enum"),
        CheckConstraint("role IN ('player','admin')", name="role_enum"),
        CheckConstraint(
            "donation_percentage >= 0 AND donation_percentage <= 100",
            name="donation_percentage_range",
        ),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<Participant(id={self.id}, full_name='{self.full_name}', "
            f"status='{self.status}', role='{self.role}')>"
        )

    @validates("email")
    def _normalize_email(self, _key: str, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        normalized = value.strip().lower()
        return normalized or None

    @classmethod
    def get_by_email(cls, session: Session, email: str) -> Optional["Participant"]:
        """Retrieve a participant by email address."""

        return session.scalar(select(cls).where(cls.email == email.strip().lower()))

    @property
    def latest_scores(self) -> list[int]:
        """Return the participant's scores, newest first, capped at five."""
        return [s.score for s in self.scores[:SCORES_PER_ENTRY]]

    @property
    def is_suspended(self) -> bool:
        return self.status == "suspended"


class Score(Base):
    """A single Stableford score recorded by a participant."""

    __tablename__ = "scores"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    participant_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("participants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    played_on: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    participant: Mapped["Participant"] = relationship(back_populates="scores")

    __table_args__ = (Index("ix_scores_participant_created", "participant_id", "created_at"),)

    def __init__(
        self,
        *,
        score: int,
        participant: Optional["Participant"] = None,
        participant_id: Optional[int] = None,
        played_on: Optional[date] = None,
        created_at: Optional[datetime] = None,
    ) -> None:
        if participant is not None:
            self.participant = participant
        if participant_id is not None:
            self.participant_id = participant_id
        self.score = score
        self.played_on = played_on
        if created_at is not None:
            self.created_at = created_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<Score(id={self.id}, participant_id={self.participant_id}, score={self.score})>"


class Subscription(Base):
    """A participant's paid entitlement to enter draws.

    Annual plans enter every cycle while active. Monthly plans cover a single
    cycle: once a draw consumes the entitlement the subscription is tied to
    that draw through ``assigned_draw_id`` and stops qualifying.
    The status and entry count it had before that are kept in the
    ``consumed_*`` columns until the draw is reset.
    """

    __tablename__ = "subscriptions"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    participant_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("participants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    plan: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    assigned_draw_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("draws.id", ondelete="SET NULL"), nullable=True, index=True
    )
    draws_remaining: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    # state before a draw consumed this entry; reset puts it back
    consumed_from_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    consumed_draws_remaining: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    current_period_end: Mapped[Optional[datetime]] = mapped_column(
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

    participant: Mapped["Participant"] = relationship(back_populates="subscriptions")
    assigned_draw: Mapped[Optional["Draw"]] = relationship("Draw")

    __table_args__ = (
        CheckConstraint("plan IN ('monthly','annual')", name="plan_enum"),
        CheckConstraint(
            "status IN ('active','trialing','past_due','cancelled','expired')",
            name="status_enum",
        ),
    )

    def __init__(
        self,
        *,
        plan: str,
        participant: Optional["Participant"] = None,
        participant_id: Optional[int] = None,
        status: str = "active",
        assigned_draw_id: Optional[int] = None,
        draws_remaining: Optional[int] = None,
        current_period_end: Optional[datetime] = None,
    ) -> None:
        if participant is not None:
            self.participant = participant
        if participant_id is not None:
            self.participant_id = participant_id
        self.plan = plan
        self.status = status
        self.assigned_draw_id = assigned_draw_id
        if draws_remaining is None:
            draws_remaining = 1 if plan == "monthly" else 12
        self.draws_remaining = draws_remaining
        self.current_period_end = current_period_end

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<Subscription(id={self.id}, participant_id={self.participant_id}, "
            f"plan='{self.plan}', status='{self.status}', "
            f"assigned_draw_id={self.assigned_draw_id})>"
        )

    @property
    def is_monthly(self) -> bool:
        return self.plan == "monthly"

    def qualifies_for(self, draw_id: Optional[int]) -> bool:
        """Return ``True`` when this subscription enters the draw ``draw_id``.

        Monthly plans only qualify while unassigned or when assigned to this
        exact draw, which keeps a single monthly payment from entering two
        cycles.
        """
        if self.status not in ENTRY_SUBSCRIPTION_STATUSES:
            return False
        if not self.is_monthly:
            return True
        return self.assigned_draw_id is None or self.assigned_draw_id == draw_id


__all__ = [
    "ENTRY_SUBSCRIPTION_STATUSES",
    "Participant",
    "SCORES_PER_ENTRY",
    "STABLEFORD_MAX",
    "STABLEFORD_MIN",
    "Score",
    "Subscription",
]
