from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from .base import ID_TYPE, Base


class JackpotTracker(Base):
    """Single-row record of the jackpot carried between draws.

    Every UPDATE is versioned: SQLAlchemy adds ``WHERE version = :read`` and
    raises :class:`sqlalchemy.orm.exc.StaleDataError` when another writer got
    there first.
    """

    __tablename__ = "jackpot_tracker"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    last_draw_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("draws.id", ondelete="SET NULL"), nullable=True
    )
    """Draw that last moved the jackpot."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<JackpotTracker(amount={self.amount}, version={self.version}, "
            f"last_draw_id={self.last_draw_id})>"
        )

    @classmethod
    def balance(cls, session: Session) -> Decimal:
        """Current jackpot amount; zero before the tracker row exists."""

        amount = session.scalar(select(cls.amount).order_by(cls.id).limit(1))
        return Decimal(amount) if amount is not None else Decimal("0")

    @classmethod
    def current(cls, session: Session) -> "JackpotTracker":
        """Return the tracker row, creating an empty one on first use."""

        tracker = session.scalar(select(cls).order_by(cls.id).limit(1))
        if tracker is None:
            tracker = cls(amount=Decimal("0"))
            session.add(tracker)
            session.flush()
        return tracker
