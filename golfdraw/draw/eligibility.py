"""Resolve which participants enter a draw."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..models.participant import SCORES_PER_ENTRY, Participant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EligibleParticipant:
    """Read-only snapshot of a participant entering a draw.

    Attributes
    ----------
    participant_id : int
        Primary key of the participant.
    scores : tuple[int, ...]
        The five recorded scores, newest first.
    charity_id : Optional[int]
        Charity that receives the donation share of any prize.
    donation_percentage : Decimal
        Share of gross winnings donated.
    monthly_subscription_ids : tuple[int, ...]
        Monthly subscriptions consumed when the draw is committed.
    """

    participant_id: int
    full_name: Optional[str]
    email: Optional[str]
    scores: tuple[int, ...]
    charity_id: Optional[int]
    donation_percentage: Decimal
    monthly_subscription_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class EligibilityResult:
    """Outcome of an eligibility lookup.

    ``fetch_failed`` separates "the database could not be read" from
    "nobody qualifies this month"; both leave ``participants`` empty.
    """

    participants: list[EligibleParticipant] = field(default_factory=list)
    fetch_failed: bool = False
    error: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.participants)


def _snapshot(
    participant: Participant, draw_id: Optional[int]
) -> Optional[EligibleParticipant]:
    if participant.is_suspended or participant.role == "admin":
        return None
    if len(participant.scores) != SCORES_PER_ENTRY:
        return None
    qualifying = [s for s in participant.subscriptions if s.qualifies_for(draw_id)]
    if not qualifying:
        return None
    return EligibleParticipant(
        participant_id=participant.id,
        full_name=participant.full_name,
        email=participant.email,
        scores=tuple(participant.latest_scores),
        charity_id=participant.charity_id,
        donation_percentage=Decimal(participant.donation_percentage),
        monthly_subscription_ids=tuple(s.id for s in qualifying if s.is_monthly),
    )


def resolve_eligible_participants(
    session: Session, draw_id: Optional[int] = None
) -> EligibilityResult:
    """Return every participant who qualifies for ``draw_id``.

    A participant qualifies when they are active, not an admin, have exactly
    five recorded scores and hold an active or trialing subscription. Monthly
    subscriptions only count while unassigned or assigned to ``draw_id``.

    Parameters
    ----------
    session : Session
        Session used for the read. Nothing is written.
    draw_id : Optional[int], default: None
        Draw being resolved. ``None`` resolves for an unsaved cycle, where only
        unassigned monthly plans count.

    Returns
    -------
    EligibilityResult
        Participants ordered by id. On a database error the result is empty
        and flagged with ``fetch_failed``.
    """

    stmt = (
        select(Participant)
        .where(Participant.status == "active", Participant.role != "admin")
        .options(
            selectinload(Participant.scores),
            selectinload(Participant.subscriptions),
        )
        .order_by(Participant.id)
    )
    try:
        participants = session.scalars(stmt).all()
    except SQLAlchemyError as exc:
        logger.error("Failed to load participants for draw %s: %s", draw_id, exc)
        return EligibilityResult(fetch_failed=True, error=str(exc))

    eligible = []
    for participant in participants:
        snapshot = _snapshot(participant, draw_id)
        if snapshot is not None:
            eligible.append(snapshot)

    logger.info(
        "Resolved %d eligible participants for draw %s", len(eligible), draw_id
    )
    return EligibilityResult(participants=eligible)


__all__ = [
    "EligibilityResult",
    "EligibleParticipant",
    "resolve_eligible_participants",
]
