"""State transitions and persistence for monthly draws.

Every function takes the caller's session and flushes; committing the outer
transaction is left to the caller.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..models.activity import log_activity
from ..models.draw import Donation, Draw, DrawEntry, DrawStatus
from ..models.jackpot import JackpotTracker
from ..models.participant import Subscription
from .allocation import split_charity_share
from .errors import (
    ConcurrentUpdateError,
    DrawAlreadyPublishedError,
    DrawInProgressError,
    DrawNotFoundError,
    DrawNotPublishedError,
    DrawResetConflictError,
    InvalidMonthYearError,
    InvalidTransitionError,
)
from .schedule import next_month_year, normalize_month_year

if TYPE_CHECKING:
    from .eligibility import EligibleParticipant
    from .engine import AnalysisResult

logger = logging.getLogger(__name__)


def transition(draw: Draw, target: DrawStatus) -> None:
    """Move ``draw`` to ``target`` or raise :class:`InvalidTransitionError`."""

    current = DrawStatus(draw.status)
    if not current.can_transition_to(target):
        raise InvalidTransitionError(current.value, target.value)
    draw.status = target


def get_draw(session: Session, draw_id: int) -> Draw:
    draw = session.get(Draw, draw_id)
    if draw is None:
        raise DrawNotFoundError(f"Draw {draw_id} does not exist")
    return draw


def create_if_absent(session: Session, month_year: str) -> tuple[Draw, bool]:
    """Return the draw for ``month_year``, creating an open one if needed.

    The label is stored in its canonical spelling, so ``"february 2026"`` and
    ``"February 2026"`` resolve to the same draw.

    Returns
    -------
    tuple[Draw, bool]
        The draw and whether this call created it. A concurrent creator that
        wins the unique ``month_year`` constraint is treated as "already
        exists".

    Raises
    ------
    InvalidMonthYearError
        If ``month_year`` does not name a calendar month.
    """

    month_year = normalize_month_year(month_year)
    existing = Draw.get_by_month_year(session, month_year)
    if existing is not None:
        return existing, False

    draw = Draw(month_year=month_year)
    try:
        with session.begin_nested():
            session.add(draw)
            session.flush()
    except IntegrityError:
        existing = Draw.get_by_month_year(session, month_year)
        if existing is None:
            raise
        return existing, False

    log_activity(
        session,
        "draw_created",
        f"Draw created for {month_year}",
        resource_type="draw",
        resource_id=draw.id,
    )
    logger.info("Created draw %s for %s", draw.id, month_year)
    return draw, True


def resolve_current_draw(session: Session) -> Optional[Draw]:
    """Pick the draw an operator should be looking at.

    A draw stuck in ``processing`` wins, then the oldest ``open`` draw, then
    the most recently created draw.
    """

    for status in (DrawStatus.PROCESSING, DrawStatus.OPEN):
        draw = session.scalar(
            select(Draw)
            .where(Draw.status == status)
            .order_by(Draw.created_at.asc(), Draw.id.asc())
            .limit(1)
        )
        if draw is not None:
            return draw
    return session.scalar(
        select(Draw).order_by(Draw.created_at.desc(), Draw.id.desc()).limit(1)
    )


def claim_for_commit(session: Session, draw_id: int) -> Draw:
    """Atomically move a draw from ``open`` to ``processing``.

    The UPDATE only matches while the row is still ``open``, so of two
    concurrent publishers exactly one gets a row back.

    Raises
    ------
    DrawNotFoundError
        If the draw does not exist.
    DrawAlreadyPublishedError
        If the draw was published already.
    DrawInProgressError
        If another commit holds the draw in ``processing``.
    """

    result = session.execute(
        update(Draw)
        .where(Draw.id == draw_id, Draw.status == DrawStatus.OPEN)
        .values(status=DrawStatus.PROCESSING, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        status = session.scalar(select(Draw.status).where(Draw.id == draw_id))
        if status is None:
            raise DrawNotFoundError(f"Draw {draw_id} does not exist")
        if status == DrawStatus.PUBLISHED:
            raise DrawAlreadyPublishedError(f"Draw {draw_id} is already published")
        raise DrawInProgressError(f"Draw {draw_id} is being processed")

    draw = get_draw(session, draw_id)
    session.refresh(draw, ["status"])
    return draw


def _move_jackpot(
    session: Session,
    tracker: JackpotTracker,
    amount: Decimal,
    draw_id: Optional[int],
) -> None:
    tracker.amount = amount
    tracker.last_draw_id = draw_id
    try:
        session.flush()
    except StaleDataError as exc:
        raise ConcurrentUpdateError(
            "Jackpot changed while the draw was being settled; re-read and retry"
        ) from exc


def _previous_jackpot_mover(session: Session, draw: Draw) -> Optional[int]:
    return session.scalar(
        select(Draw.id)
        .where(Draw.status == DrawStatus.PUBLISHED, Draw.id != draw.id)
        .order_by(Draw.published_at.desc(), Draw.id.desc())
        .limit(1)
    )


def _consume_monthly_subscriptions(
    session: Session, draw: Draw, subscription_ids: Iterable[int]
) -> list[int]:
    """Spend the entry of each monthly subscription and remember its prior state."""

    ids = list(subscription_ids)
    if not ids:
        return []
    subscriptions = session.scalars(
        select(Subscription).where(Subscription.id.in_(ids))
    ).all()
    for subscription in subscriptions:
        subscription.consumed_from_status = subscription.status
        subscription.consumed_draws_remaining = subscription.draws_remaining
        subscription.assigned_draw_id = draw.id
        subscription.draws_remaining = 0
        subscription.status = "expired"
    return sorted(s.id for s in subscriptions)


def _restore_monthly_subscriptions(session: Session, draw: Draw) -> list[int]:
    subscriptions = session.scalars(
        select(Subscription).where(
            Subscription.assigned_draw_id == draw.id,
            Subscription.consumed_from_status.is_not(None),
        )
    ).all()
    for subscription in subscriptions:
        subscription.status = subscription.consumed_from_status
        subscription.draws_remaining = subscription.consumed_draws_remaining
        subscription.consumed_from_status = None
        subscription.consumed_draws_remaining = None
    return sorted(s.id for s in subscriptions)


def commit(
    session: Session,
    draw: Draw,
    analysis: "AnalysisResult",
    participants: Iterable["EligibleParticipant"],
    *,
    now: Optional[datetime] = None,
) -> Draw:
    """Persist a settled analysis and publish ``draw``.

    ``draw`` must already be claimed through :func:`claim_for_commit`. Callers
    run this inside ``session.begin_nested()`` so a failure at any step
    leaves nothing behind.
    """

    now = now or datetime.now(timezone.utc)
    by_id = {p.participant_id: p for p in participants}
    tracker = JackpotTracker.current(session)
    if Decimal(tracker.amount) != analysis.current_jackpot:
        raise ConcurrentUpdateError(
            "Jackpot changed since the analysis was prepared; simulate again"
        )

    draw.score_range_min, draw.score_range_max = analysis.score_range
    draw.winning_numbers = list(analysis.winning_numbers)
    draw.participants_count = analysis.participants
    draw.prize_pool = analysis.prize_pool
    draw.tier1_pool = analysis.tier1.pool
    draw.tier2_pool = analysis.tier2.pool
    draw.tier3_pool = analysis.tier3.pool
    draw.tier1_winners = analysis.tier1.count
    draw.tier2_winners = analysis.tier2.count
    draw.tier3_winners = analysis.tier3.count
    draw.tier2_overflow = analysis.tier2_overflow
    draw.jackpot_cap_reached = analysis.cap_reached
    draw.jackpot_carryover_in = analysis.current_jackpot
    draw.jackpot_rollover_out = analysis.jackpot_rollover
    draw.drawn_at = now

    payouts = {1: analysis.tier1.payout, 2: analysis.tier2.payout, 3: analysis.tier3.payout}
    for evaluation in analysis.entries:
        participant = by_id[evaluation.participant_id]
        gross = payouts[evaluation.tier]
        charity_amount, net = split_charity_share(
            gross, participant.donation_percentage
        )
        session.add(
            DrawEntry(
                draw_id=draw.id,
                participant_id=evaluation.participant_id,
                scores=list(evaluation.scores),
                matches=evaluation.matches,
                tier=evaluation.tier,
                gross_prize=gross,
                charity_amount=charity_amount,
                net_payout=net,
                charity_id=participant.charity_id,
                verification_status="pending",
            )
        )
        if charity_amount > 0:
            session.add(
                Donation(
                    charity_id=participant.charity_id,
                    participant_id=evaluation.participant_id,
                    draw_id=draw.id,
                    amount=charity_amount,
                    source="prize_split",
                    status="pending",
                )
            )

    consumed = _consume_monthly_subscriptions(
        session,
        draw,
        (sid for p in by_id.values() for sid in p.monthly_subscription_ids),
    )
    _move_jackpot(session, tracker, analysis.jackpot_rollover, draw.id)

    transition(draw, DrawStatus.PUBLISHED)
    draw.published_at = now
    log_activity(
        session,
        "draw_published",
        (
            f"Draw {draw.month_year} published: {analysis.tier1.count} tier1, "
            f"{analysis.tier2.count} tier2, {analysis.tier3.count} tier3 winners"
        ),
        resource_type="draw",
        resource_id=draw.id,
        extra={
            "winning_numbers": list(analysis.winning_numbers),
            "jackpot_before": str(analysis.current_jackpot),
            "jackpot_after": str(analysis.jackpot_rollover),
            "monthly_consumed": consumed,
        },
    )
    session.flush()
    logger.info(
        "Published draw %s (%s) with numbers %s",
        draw.id,
        draw.month_year,
        draw.winning_numbers,
    )
    return draw


def reset(session: Session, draw: Draw) -> Draw:
    """Revert a published draw to ``open``.

    Winner records and donations are deleted, the jackpot is restored to the
    balance the draw started with, and monthly subscriptions consumed by the
    draw are returned to the status and entry count they had before it.

    Raises
    ------
    DrawNotPublishedError
        If ``draw`` is not published.
    DrawResetConflictError
        If a later draw has moved the jackpot since this one was published.
    """

    if DrawStatus(draw.status) != DrawStatus.PUBLISHED:
        raise DrawNotPublishedError(
            f"Draw {draw.id} is {DrawStatus(draw.status).value}; only published draws can be reset"
        )

    tracker = JackpotTracker.current(session)
    if tracker.last_draw_id is not None and tracker.last_draw_id != draw.id:
        raise DrawResetConflictError(
            f"Jackpot was last moved by draw {tracker.last_draw_id}; "
            f"resetting draw {draw.id} would overwrite it"
        )

    restore = Decimal(draw.jackpot_carryover_in or 0)

    for model in (DrawEntry, Donation):
        for row in session.scalars(select(model).where(model.draw_id == draw.id)):
            session.delete(row)
    session.flush()
    session.expire(draw, ["entries"])

    restored = _restore_monthly_subscriptions(session, draw)

    _move_jackpot(session, tracker, restore, _previous_jackpot_mover(session, draw))

    month_year = draw.month_year
    draw.clear_results()
    transition(draw, DrawStatus.OPEN)
    log_activity(
        session,
        "draw_reset",
        f"Draw {draw.id} ({month_year}) has been reset to open status",
        resource_type="draw",
        resource_id=draw.id,
        extra={
            "jackpot_restored": str(restore),
            "monthly_restored": restored,
        },
    )
    session.flush()
    logger.info("Reset draw %s; jackpot restored to %s", draw.id, restore)
    return draw


def abort(session: Session, draw: Draw) -> Draw:
    """Release a draw left in ``processing`` back to ``open``.

    Raises
    ------
    InvalidTransitionError
        If ``draw`` is not in ``processing``.
    """

    if DrawStatus(draw.status) != DrawStatus.PROCESSING:
        raise InvalidTransitionError(DrawStatus(draw.status).value, DrawStatus.OPEN.value)
    transition(draw, DrawStatus.OPEN)
    log_activity(
        session,
        "draw_released",
        f"Draw {draw.id} ({draw.month_year}) released from processing",
        resource_type="draw",
        resource_id=draw.id,
    )
    session.flush()
    logger.warning("Draw %s released from processing", draw.id)
    return draw


def ensure_next_cycle(session: Session, draw: Draw) -> Optional[Draw]:
    """Create the open draw for the month after ``draw``.

    Failures are logged and reported as ``None``; they never undo the
    publish that triggered them.
    """

    label = next_month_year(draw.month_year)
    try:
        with session.begin_nested():
            next_draw, created = create_if_absent(session, label)
    except (SQLAlchemyError, InvalidMonthYearError) as exc:
        logger.warning("Could not create next draw %s: %s", label, exc)
        return None
    if not created:
        logger.debug("Next draw %s already exists", label)
    return next_draw


__all__ = [
    "abort",
    "claim_for_commit",
    "commit",
    "create_if_absent",
    "ensure_next_cycle",
    "get_draw",
    "reset",
    "resolve_current_draw",
    "transition",
]
