import csv
import logging
import random
from datetime import date, datetime
from decimal import Decimal
from typing import IO, Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from .db.utils import dt_iso
from .draw import lifecycle
from .draw.allocation import AllocationSettings, validate_settings
from .draw.engine import AnalysisResult, DrawEngine, DrawOutcome
from .draw.errors import DrawNotPublishedError
from .draw.numbers import DEFAULT_RANGE_MAX, DEFAULT_RANGE_MIN
from .draw.schedule import Clock, can_submit_scores, current_month_year
from .models import Draw, DrawEntry, DrawSettings, DrawStatus, Participant, Score
from .models.activity import log_activity
from .models.participant import SCORES_PER_ENTRY, STABLEFORD_MAX, STABLEFORD_MIN

logger = logging.getLogger(__name__)

WINNER_EXPORT_FIELDS = (
    "draw_id",
    "month_year",
    "participant_id",
    "full_name",
    "email",
    "tier",
    "matches",
    "scores",
    "gross_prize",
    "charity_amount",
    "net_payout",
    "charity",
    "verification_status",
)


def record_score(
    session: Session,
    participant: Participant,
    score: int,
    played_on: Optional[date] = None,
    *,
    now: Optional[datetime] = None,
    enforce_cutoff: bool = False,
) -> Score:
    """Record a Stableford score and keep only the latest five.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session used for persistence.
    participant : Participant
        Persisted participant the score belongs to.
    score : int
        Stableford points, between 1 and 45.
    played_on : Optional[date], default: None
        Date of the round.
    now : Optional[datetime], default: None
        Current time used for the submission cutoff.
    enforce_cutoff : bool, default: False
        Reject the score when submissions are locked ahead of the next draw.

    Returns
    -------
    Score
        The newly stored score. Older scores beyond the latest five are
        deleted.

    Raises
    ------
    ValueError
        If the participant is not persisted, the score is out of range or
        submissions are locked.
    """

    if participant.id is None:
        raise ValueError("Participant must be persisted before recording scores")
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValueError("Score must be an integer")
    if not STABLEFORD_MIN <= score <= STABLEFORD_MAX:
        raise ValueError(
            f"Score must be between {STABLEFORD_MIN} and {STABLEFORD_MAX}, got {score}"
        )
    if enforce_cutoff and not can_submit_scores(now):
        raise ValueError("Score submissions are locked until the draw has run")

    new_score = Score(participant_id=participant.id, score=score, played_on=played_on)
    if now is not None:
        new_score.created_at = now
    session.add(new_score)
    session.flush()

    # rolling window: newest first, drop anything past the fifth
    stale = session.scalars(
        select(Score)
        .where(Score.participant_id == participant.id)
        .order_by(Score.created_at.desc(), Score.id.desc())
        .offset(SCORES_PER_ENTRY)
    ).all()
    for old in stale:
        session.delete(old)
    session.flush()
    session.expire(participant, ["scores"])
    return new_score


def get_draw_settings(session: Session) -> DrawSettings:
    """Return the current draw settings, creating the defaults if missing."""

    return DrawSettings.current(session)


def update_draw_settings(
    session: Session,
    *,
    base_amount_per_sub: Optional[Decimal] = None,
    tier1_percent: Optional[Decimal] = None,
    tier2_percent: Optional[Decimal] = None,
    tier3_percent: Optional[Decimal] = None,
    jackpot_cap: Optional[Decimal] = None,
) -> DrawSettings:
    """Validate and store new draw settings.

    Omitted values keep their current setting. The merged values are
    validated before anything is written, so a rejected update leaves the
    stored settings untouched.

    Raises
    ------
    InvalidSettingsError
        If tier percentages do not sum to 100 or an amount is negative.
    """

    settings = DrawSettings.current(session)
    candidate = AllocationSettings(
        base_amount_per_sub=Decimal(
            base_amount_per_sub
            if base_amount_per_sub is not None
            else settings.base_amount_per_sub
        ),
        tier1_percent=Decimal(
            tier1_percent if tier1_percent is not None else settings.tier1_percent
        ),
        tier2_percent=Decimal(
            tier2_percent if tier2_percent is not None else settings.tier2_percent
        ),
        tier3_percent=Decimal(
            tier3_percent if tier3_percent is not None else settings.tier3_percent
        ),
        jackpot_cap=Decimal(
            jackpot_cap if jackpot_cap is not None else settings.jackpot_cap
        ),
    )
    validate_settings(candidate)

    settings.base_amount_per_sub = candidate.base_amount_per_sub
    settings.tier1_percent = candidate.tier1_percent
    settings.tier2_percent = candidate.tier2_percent
    settings.tier3_percent = candidate.tier3_percent
    settings.jackpot_cap = candidate.jackpot_cap
    session.flush()

    log_activity(
        session,
        "settings_updated",
        "Draw settings updated",
        resource_type="draw_settings",
        resource_id=settings.id,
        extra={
            "base_amount_per_sub": str(candidate.base_amount_per_sub),
            "tier1_percent": str(candidate.tier1_percent),
            "tier2_percent": str(candidate.tier2_percent),
            "tier3_percent": str(candidate.tier3_percent),
            "jackpot_cap": str(candidate.jackpot_cap),
        },
    )
    logger.info("Draw settings updated: %s", candidate)
    return settings


def current_draw(session: Session) -> Optional[Draw]:
    """Return the draw operators should act on, if any exists."""

    return lifecycle.resolve_current_draw(session)


def create_draw_if_absent(
    session: Session,
    month_year: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> Draw:
    """Return the draw for ``month_year``, creating it when missing.

    ``month_year`` defaults to the current calendar month in the draw
    timezone.
    """

    label = month_year or current_month_year(now)
    draw, _created = lifecycle.create_if_absent(session, label)
    return draw


def simulate_draw(
    session: Session,
    range_min: int = DEFAULT_RANGE_MIN,
    range_max: int = DEFAULT_RANGE_MAX,
    draw_id: Optional[int] = None,
    *,
    clock: Optional[Clock] = None,
    rng: Optional[random.Random] = None,
) -> AnalysisResult:
    """Run a non-committing simulation. Thin wrapper over :meth:`DrawEngine.simulate`."""

    engine = DrawEngine(session, clock=clock, rng=rng)
    return engine.simulate(range_min, range_max, draw_id)


def publish_draw(
    session: Session,
    draw_id: int,
    range_min: int = DEFAULT_RANGE_MIN,
    range_max: int = DEFAULT_RANGE_MAX,
    *,
    reviewed: Optional[AnalysisResult] = None,
    clock: Optional[Clock] = None,
    rng: Optional[random.Random] = None,
) -> DrawOutcome:
    """Commit and publish ``draw_id``. See :meth:`DrawEngine.publish`."""

    engine = DrawEngine(session, clock=clock, rng=rng)
    return engine.publish(draw_id, range_min, range_max, reviewed=reviewed)


def reset_draw(session: Session, draw_id: int) -> DrawOutcome:
    """Revert a published draw to ``open``. See :meth:`DrawEngine.reset`."""

    return DrawEngine(session).reset(draw_id)


def release_stuck_draw(session: Session, draw_id: int) -> Draw:
    """Return a draw stuck in ``processing`` to ``open`` so it can be published.

    Use this after a publish ended with ``state_unknown`` and the draw is
    still ``processing`` once the database is back.

    Raises
    ------
    DrawNotFoundError
        If the draw does not exist.
    InvalidTransitionError
        If the draw is not in ``processing``.
    """

    draw = lifecycle.get_draw(session, draw_id)
    return lifecycle.abort(session, draw)


def export_draw_winners(session: Session, draw_id: int) -> list[dict[str, Any]]:
    """Return one row per winner of ``draw_id``, highest tier first.

    Raises
    ------
    DrawNotFoundError
        If the draw does not exist.
    DrawNotPublishedError
        If the draw has not been published yet.
    """

    draw = lifecycle.get_draw(session, draw_id)
    if draw.status != DrawStatus.PUBLISHED:
        raise DrawNotPublishedError(
            f"Draw {draw_id} is {draw.status.value}; winners are only final once published"
        )

    entries = session.scalars(
        select(DrawEntry)
        .where(DrawEntry.draw_id == draw_id)
        .options(selectinload(DrawEntry.participant), selectinload(DrawEntry.charity))
        .order_by(DrawEntry.tier.asc(), DrawEntry.id.asc())
    ).all()

    rows = []
    for entry in entries:
        participant = entry.participant
        rows.append(
            {
                "draw_id": draw.id,
                "month_year": draw.month_year,
                "participant_id": entry.participant_id,
                "full_name": participant.full_name if participant else None,
                "email": participant.email if participant else None,
                "tier": entry.tier,
                "matches": entry.matches,
                "scores": " ".join(str(s) for s in entry.scores),
                "gross_prize": entry.gross_prize,
                "charity_amount": entry.charity_amount,
                "net_payout": entry.net_payout,
                "charity": entry.charity.name if entry.charity else None,
                "verification_status": entry.verification_status,
            }
        )
    return rows


def write_winners_csv(rows: list[dict[str, Any]], fp: IO[str]) -> int:
    """Write winner rows from :func:`export_draw_winners` as CSV.

    Returns the number of data rows written.
    """

    writer = csv.DictWriter(fp, fieldnames=WINNER_EXPORT_FIELDS, extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return len(rows)


def jackpot_history(session: Session) -> list[dict[str, Any]]:
    """Published draws in publication order with the jackpot before and after."""

    draws = session.scalars(
        select(Draw)
        .where(Draw.status == DrawStatus.PUBLISHED)
        .order_by(Draw.published_at.asc(), Draw.id.asc())
    ).all()
    return [
        {
            "draw_id": d.id,
            "month_year": d.month_year,
            "jackpot_before": d.jackpot_carryover_in,
            "jackpot_after": d.jackpot_rollover_out,
            "tier1_pool": d.tier1_pool,
            "tier1_winners": d.tier1_winners,
            "cap_reached": d.jackpot_cap_reached,
            "published_at": dt_iso(d.published_at),
        }
        for d in draws
    ]


__all__ = [
    "WINNER_EXPORT_FIELDS",
    "create_draw_if_absent",
    "current_draw",
    "export_draw_winners",
    "get_draw_settings",
    "jackpot_history",
    "publish_draw",
    "record_score",
    "release_stuck_draw",
    "reset_draw",
    "simulate_draw",
    "update_draw_settings",
    "write_winners_csv",
]
