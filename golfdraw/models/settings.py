from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Numeric, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from .base import ID_TYPE, Base

DEFAULT_BASE_AMOUNT = Decimal("5.00")
DEFAULT_TIER1_PERCENT = Decimal("40")
DEFAULT_TIER2_PERCENT = Decimal("35")
DEFAULT_TIER3_PERCENT = Decimal("25")
DEFAULT_JACKPOT_CAP = Decimal("250000.00")


def check_tier_percentages(
    tier1: Decimal, tier2: Decimal, tier3: Decimal
) -> Optional[str]:
    """Return an error message when the tier split is unusable, else ``None``."""

    for label, value in (("tier1", tier1), ("tier2", tier2), ("tier3", tier3)):
        if value < 0:
            return f"{label}_percent must not be negative"
    total = tier1 + tier2 + tier3
    if total != Decimal("100"):
        return f"tier percentages must sum to 100, got {total}"
    return None


class DrawSettings(Base):
    """Operator configuration for prize pool allocation."""

    __tablename__ = "draw_settings"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    base_amount_per_sub: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=DEFAULT_BASE_AMOUNT
    )
    """Prize pool contribution of each eligible participant."""

    tier1_percent: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=DEFAULT_TIER1_PERCENT
    )
    tier2_percent: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=DEFAULT_TIER2_PERCENT
    )
    tier3_percent: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=DEFAULT_TIER3_PERCENT
    )
    jackpot_cap: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=DEFAULT_JACKPOT_CAP
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint(
            "ABS(tier1_percent + tier2_percent + tier3_percent - 100) < 0.001",
            name="tier_percent_sum",
        ),
        CheckConstraint("base_amount_per_sub >= 0", name="base_amount_non_negative"),
        CheckConstraint("jackpot_cap >= 0", name="jackpot_cap_non_negative"),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<DrawSettings(base={self.base_amount_per_sub}, "
            f"tiers={self.tier1_percent}/{self.tier2_percent}/{self.tier3_percent}, "
            f"cap={self.jackpot_cap})>"
        )

    @classmethod
    def get(cls, session: Session) -> Optional["DrawSettings"]:
        """Return the stored settings row without creating one."""

        return session.scalar(select(cls).order_by(cls.id).limit(1))

    @classmethod
    def current(cls, session: Session) -> "DrawSettings":
        """Return the settings row, inserting the defaults on first use."""

        settings = cls.get(session)
        if settings is None:
            settings = cls(
                base_amount_per_sub=DEFAULT_BASE_AMOUNT,
                tier1_percent=DEFAULT_TIER1_PERCENT,
                tier2_percent=DEFAULT_TIER2_PERCENT,
                tier3_percent=DEFAULT_TIER3_PERCENT,
                jackpot_cap=DEFAULT_JACKPOT_CAP,
            )
            session.add(settings)
            session.flush()
        return settings


__all__ = [
    "DEFAULT_BASE_AMOUNT",
    "DEFAULT_JACKPOT_CAP",
    "DEFAULT_TIER1_PERCENT",
    "DEFAULT_TIER2_PERCENT",
    "DEFAULT_TIER3_PERCENT",
    "DrawSettings",
    "check_tier_percentages",
]
