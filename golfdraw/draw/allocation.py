"""Tiered prize pool allocation with jackpot carryover, cap and overflow."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Union

from ..models.settings import (
    DEFAULT_BASE_AMOUNT,
    DEFAULT_JACKPOT_CAP,
    DEFAULT_TIER1_PERCENT,
    DEFAULT_TIER2_PERCENT,
    DEFAULT_TIER3_PERCENT,
    check_tier_percentages,
)
from .errors import InvalidSettingsError
from .matching import TierCounts

if TYPE_CHECKING:
    from ..models.settings import DrawSettings

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

Number = Union[Decimal, int, str]


def to_cents(value: Number) -> Decimal:
    """Quantize ``value`` to cents, rounding half up."""

    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _cents_down(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_DOWN)


@dataclass(frozen=True)
class AllocationSettings:
    """Snapshot of the settings the allocator needs.

    Attributes
    ----------
    base_amount_per_sub : Decimal
        Contribution of each eligible participant to the prize pool.
    tier1_percent, tier2_percent, tier3_percent : Decimal
        Share of the prize pool for 5, 4 and 3 matches. Must sum to 100.
    jackpot_cap : Decimal
        Maximum size of the 5-match pool including the carried jackpot.
    """

    base_amount_per_sub: Decimal
    tier1_percent: Decimal
    tier2_percent: Decimal
    tier3_percent: Decimal
    jackpot_cap: Decimal

    @classmethod
    def defaults(cls) -> "AllocationSettings":
        return cls(
            base_amount_per_sub=DEFAULT_BASE_AMOUNT,
            tier1_percent=DEFAULT_TIER1_PERCENT,
            tier2_percent=DEFAULT_TIER2_PERCENT,
            tier3_percent=DEFAULT_TIER3_PERCENT,
            jackpot_cap=DEFAULT_JACKPOT_CAP,
        )

    @classmethod
    def from_model(cls, settings: "DrawSettings") -> "AllocationSettings":
        return cls(
            base_amount_per_sub=Decimal(settings.base_amount_per_sub),
            tier1_percent=Decimal(settings.tier1_percent),
            tier2_percent=Decimal(settings.tier2_percent),
            tier3_percent=Decimal(settings.tier3_percent),
            jackpot_cap=Decimal(settings.jackpot_cap),
        )


@dataclass(frozen=True)
class TierAllocation:
    """Pool and payout for one prize tier.

    ``base`` is the tier's share of the fresh prize pool. ``pool`` is what
    is actually paid out, including carried jackpot or overflow.
    """

    base: Decimal
    pool: Decimal
    count: int
    payout: Decimal


@dataclass(frozen=True)
class PrizeAllocation:
    participants: int
    prize_pool: Decimal
    jackpot_carryover: Decimal
    tier1: TierAllocation
    tier2: TierAllocation
    tier3: TierAllocation
    tier2_overflow: Decimal
    jackpot_rollover: Decimal
    """Jackpot balance after the draw: the capped 5-match pool when nobody
    matched five numbers, otherwise zero."""
    cap_reached: bool


def _payout(pool: Decimal, count: int) -> Decimal:
    # shares are truncated so count * payout never exceeds the pool
    if count <= 0:
        return ZERO
    return _cents_down(pool / count)


def _split_tiers(
    prize_pool: Decimal, settings: AllocationSettings
) -> tuple[Decimal, Decimal, Decimal]:
    """Return the three tier bases, which always add up to ``prize_pool``.

    Each base is truncated to cents and the leftover cents go to the tier
    with the largest percentage (the lowest tier number on a tie).
    """

    percents = (settings.tier1_percent, settings.tier2_percent, settings.tier3_percent)
    bases = [_cents_down(prize_pool * pct / HUNDRED) for pct in percents]
    largest = max(range(3), key=lambda i: (percents[i], -i))
    bases[largest] += prize_pool - sum(bases)
    return bases[0], bases[1], bases[2]


def allocate_prize_pool(
    participant_count: int,
    settings: AllocationSettings,
    jackpot_carryover: Number,
    tier_counts: TierCounts,
) -> PrizeAllocation:
    """Split the month's prize pool across the three winning tiers.

    Parameters
    ----------
    participant_count : int
        Number of eligible participants.
    settings : AllocationSettings
        Base contribution, tier percentages and jackpot cap.
    jackpot_carryover : Decimal
        Jackpot carried in from earlier draws.
    tier_counts : TierCounts
        Number of winners in each tier.

    Returns
    -------
    PrizeAllocation
        Pools, equal-split payouts truncated to cents and the jackpot balance
        to carry forward.

    Notes
    -----
    The carried jackpot joins the 5-match pool, which is capped at
    ``jackpot_cap``. Anything above the cap moves into the 4-match pool.
    Only the 5-match pool rolls over; 4 and 3-match pools are always paid
    out or dropped.
    """

    if participant_count < 0:
        raise ValueError("participant_count must not be negative")
    carryover = to_cents(jackpot_carryover)
    if carryover < 0:
        raise ValueError("jackpot_carryover must not be negative")

    prize_pool = to_cents(settings.base_amount_per_sub * participant_count)
    tier1_base, tier2_base, tier3_base = _split_tiers(prize_pool, settings)

    cap = to_cents(settings.jackpot_cap)
    tier1_uncapped = tier1_base + carryover
    tier1_pool = min(tier1_uncapped, cap)
    overflow = max(ZERO, tier1_uncapped - cap)
    cap_reached = tier1_uncapped > cap
    if cap_reached:
        tier1_base = max(ZERO, cap - carryover)

    tier2_pool = tier2_base + overflow
    tier3_pool = tier3_base

    rollover = tier1_pool if tier_counts.tier1 == 0 else ZERO

    return PrizeAllocation(
        participants=participant_count,
        prize_pool=prize_pool,
        jackpot_carryover=carryover,
        tier1=TierAllocation(
            base=tier1_base,
            pool=tier1_pool,
            count=tier_counts.tier1,
            payout=_payout(tier1_pool, tier_counts.tier1),
        ),
        tier2=TierAllocation(
            base=tier2_base,
            pool=tier2_pool,
            count=tier_counts.tier2,
            payout=_payout(tier2_pool, tier_counts.tier2),
        ),
        tier3=TierAllocation(
            base=tier3_base,
            pool=tier3_pool,
            count=tier_counts.tier3,
            payout=_payout(tier3_pool, tier_counts.tier3),
        ),
        tier2_overflow=overflow,
        jackpot_rollover=rollover,
        cap_reached=cap_reached,
    )


def split_charity_share(
    gross: Number, donation_percentage: Number
) -> tuple[Decimal, Decimal]:
    """Return ``(charity_amount, net_payout)`` for a gross prize.

    The charity amount is rounded to cents and the net payout is whatever is
    left, so the two always add up to ``gross``.
    """

    pct = Decimal(donation_percentage)
    if pct < 0 or pct > HUNDRED:
        raise ValueError("donation_percentage must be between 0 and 100")
    gross_cents = to_cents(gross)
    charity = to_cents(gross_cents * pct / HUNDRED)
    return charity, gross_cents - charity


def validate_settings(settings: AllocationSettings) -> None:
    """Raise :class:`InvalidSettingsError` when ``settings`` cannot be stored."""

    problem = check_tier_percentages(
        settings.tier1_percent, settings.tier2_percent, settings.tier3_percent
    )
    if problem is not None:
        raise InvalidSettingsError(problem)
    if settings.base_amount_per_sub < 0:
        raise InvalidSettingsError("base_amount_per_sub must not be negative")
    if settings.jackpot_cap < 0:
        raise InvalidSettingsError("jackpot_cap must not be negative")


__all__ = [
    "AllocationSettings",
    "PrizeAllocation",
    "TierAllocation",
    "allocate_prize_pool",
    "split_charity_share",
    "to_cents",
    "validate_settings",
]
