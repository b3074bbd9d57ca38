"""Settlement engine tying eligibility, numbers, matching and allocation together."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from ..models.draw import Draw
from ..models.jackpot import JackpotTracker
from ..models.settings import DrawSettings
from . import lifecycle
from .allocation import AllocationSettings, TierAllocation, allocate_prize_pool
from .eligibility import EligibilityResult, resolve_eligible_participants
from .errors import (
    DataUnavailableError,
    DrawError,
    FutureCycleError,
    InvalidMonthYearError,
    ReviewMismatchError,
)
from .matching import EntryEvaluation, count_tiers, evaluate_entries
from .numbers import (
    DEFAULT_RANGE_MAX,
    DEFAULT_RANGE_MIN,
    generate_winning_numbers,
    score_popularity,
    validate_range,
    validate_winning_numbers,
)
from .schedule import Clock, is_future_cycle, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisResult:
    """Everything an operator reviews before committing a draw.

    Attributes
    ----------
    draw_id : Optional[int]
        Draw the analysis was prepared for. ``None`` when no draw exists yet.
    score_range : tuple[int, int]
        Inclusive range the winning numbers were drawn from.
    winning_numbers : tuple[int, ...]
        Five distinct winning numbers in ascending order.
    least_popular, most_popular : tuple[int, ...]
        Rarest three and commonest two submitted scores within the range.
    participants : int
        Number of eligible participants.
    prize_pool : Decimal
        Fresh prize pool before the carried jackpot.
    current_jackpot : Decimal
        Jackpot carried into this draw.
    tier1, tier2, tier3 : TierAllocation
        Pool, winner count and per-winner payout of each tier.
    tier2_overflow : Decimal
        Part of the 5-match pool above the cap moved into the 4-match pool.
    jackpot_rollover : Decimal
        Jackpot balance after this draw.
    cap_reached : bool
        Whether the 5-match pool hit the jackpot cap.
    entries : tuple[EntryEvaluation, ...]
        Participants with three or more matches.
    """

    draw_id: Optional[int]
    score_range: tuple[int, int]
    winning_numbers: tuple[int, ...]
    least_popular: tuple[int, ...]
    most_popular: tuple[int, ...]
    participants: int
    prize_pool: Decimal
    current_jackpot: Decimal
    tier1: TierAllocation
    tier2: TierAllocation
    tier3: TierAllocation
    tier2_overflow: Decimal
    jackpot_rollover: Decimal
    cap_reached: bool
    entries: tuple[EntryEvaluation, ...] = field(default_factory=tuple)

    @property
    def winners(self) -> int:
        return self.tier1.count + self.tier2.count + self.tier3.count


@dataclass
class DrawOutcome:
    """Result of a publish or reset request.

    ``state_unknown`` is set when the database stopped answering mid-way;
    the operator must re-read the draw status before retrying.
    """

    success: bool
    draw: Optional[Draw] = None
    analysis: Optional[AnalysisResult] = None
    next_draw: Optional[Draw] = None
    error: Optional[Exception] = None
    state_unknown: bool = False

    @property
    def message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None


class DrawEngine:
    """Engine that simulates, publishes and resets monthly draws."""

    def __init__(
        self,
        session: Session,
        *,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        """Create a draw engine bound to a SQLAlchemy session.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session used for lookups and persistence.
        clock : Optional[Callable[[], datetime]], default: None
            Source of the current time. Defaults to UTC wall-clock time.
        rng : Optional[random.Random], default: None
            Random source for winning numbers. Defaults to
            :class:`random.SystemRandom`.
        """

        self._session = session
        self._clock = clock or utc_now
        self._rng = rng

    def _now(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now

    def _reject_future(self, draw: Optional[Draw]) -> None:
        if draw is None:
            return
        try:
            future = is_future_cycle(draw.month_year, self._now())
        except ValueError as exc:
            raise InvalidMonthYearError(
                f"Draw {draw.id} has an unreadable month label: {exc}"
            ) from exc
        if future:
            raise FutureCycleError(
                f"Draw {draw.month_year} belongs to a month that has not started"
            )

    def _eligible(self, draw_id: Optional[int]) -> EligibilityResult:
        eligibility = resolve_eligible_participants(self._session, draw_id)
        if eligibility.fetch_failed:
            raise DataUnavailableError(
                f"Participant data could not be loaded: {eligibility.error}"
            )
        return eligibility

    def analyse(
        self,
        draw_id: Optional[int],
        score_range: tuple[int, int],
        winning_numbers: Sequence[int],
        eligibility: EligibilityResult,
    ) -> AnalysisResult:
        """Evaluate ``winning_numbers`` against the eligible participants.

        Reads settings and the jackpot but writes nothing, so it can be run
        any number of times.
        """

        stored = DrawSettings.get(self._session)
        settings = (
            AllocationSettings.from_model(stored)
            if stored is not None
            else AllocationSettings.defaults()
        )
        jackpot = JackpotTracker.balance(self._session)

        entries = [(p.participant_id, p.scores) for p in eligibility.participants]
        evaluations = evaluate_entries(entries, winning_numbers)
        allocation = allocate_prize_pool(
            eligibility.count, settings, jackpot, count_tiers(evaluations)
        )
        popularity = score_popularity(
            (s for p in eligibility.participants for s in p.scores), *score_range
        )
        return AnalysisResult(
            draw_id=draw_id,
            score_range=score_range,
            winning_numbers=tuple(sorted(winning_numbers)),
            least_popular=tuple(popularity.least_popular),
            most_popular=tuple(popularity.most_popular),
            participants=allocation.participants,
            prize_pool=allocation.prize_pool,
            current_jackpot=allocation.jackpot_carryover,
            tier1=allocation.tier1,
            tier2=allocation.tier2,
            tier3=allocation.tier3,
            tier2_overflow=allocation.tier2_overflow,
            jackpot_rollover=allocation.jackpot_rollover,
            cap_reached=allocation.cap_reached,
            entries=tuple(e for e in evaluations if e.is_winner),
        )

    def simulate(
        self,
        range_min: int = DEFAULT_RANGE_MIN,
        range_max: int = DEFAULT_RANGE_MAX,
        draw_id: Optional[int] = None,
    ) -> AnalysisResult:
        """Draw candidate numbers and show what publishing them would pay.

        Nothing is persisted. When ``draw_id`` is omitted the current draw is
        used.

        Raises
        ------
        InvalidRangeError
            If the range cannot hold five distinct numbers.
        FutureCycleError
            If the draw belongs to a month that has not started.
        InvalidMonthYearError
            If the stored draw label cannot be read as a month.
        DataUnavailableError
            If participants could not be loaded. Safe to retry.
        """

        validate_range(range_min, range_max)
        if draw_id is None:
            draw = lifecycle.resolve_current_draw(self._session)
        else:
            draw = lifecycle.get_draw(self._session, draw_id)
        self._reject_future(draw)
        target_id = draw.id if draw is not None else None

        eligibility = self._eligible(target_id)
        numbers = generate_winning_numbers(range_min, range_max, rng=self._rng)
        analysis = self.analyse(target_id, (range_min, range_max), numbers, eligibility)
        logger.info(
            "Simulated draw %s: numbers=%s participants=%d winners=%d",
            target_id,
            list(analysis.winning_numbers),
            analysis.participants,
            analysis.winners,
        )
        return analysis

    def publish(
        self,
        draw_id: int,
        range_min: int = DEFAULT_RANGE_MIN,
        range_max: int = DEFAULT_RANGE_MAX,
        *,
        reviewed: Optional[AnalysisResult] = None,
    ) -> DrawOutcome:
        """Commit a draw and publish it.

        Parameters
        ----------
        draw_id : int
            Draw to publish. Must be ``open``.
        range_min, range_max : int
            Score range of the winning numbers.
        reviewed : Optional[AnalysisResult], default: None
            Analysis the operator approved. Its winning numbers are committed
            verbatim; fresh numbers are only drawn when this is omitted.

        Returns
        -------
        DrawOutcome
            ``success`` is ``False`` with ``error`` set for any draw-level
            failure, in which case nothing was written. ``state_unknown`` is
            set when the database timed out or dropped the connection.

        Notes
        -----
        The whole commit runs in one SAVEPOINT: the open to processing claim,
        result columns, winner and donation rows, monthly subscription
        consumption, the versioned jackpot update and the final publish. The
        next month's draw is created afterwards and its failure only logs.
        """

        session = self._session
        draw: Optional[Draw] = None
        analysis: Optional[AnalysisResult] = None
        try:
            validate_range(range_min, range_max)
            if reviewed is not None and (
                reviewed.draw_id != draw_id
                or tuple(reviewed.score_range) != (range_min, range_max)
            ):
                raise ReviewMismatchError(
                    "Reviewed analysis was prepared for draw "
                    f"{reviewed.draw_id} range {reviewed.score_range}, not draw "
                    f"{draw_id} range {(range_min, range_max)}"
                )
            reviewed_numbers = (
                validate_winning_numbers(reviewed.winning_numbers, range_min, range_max)
                if reviewed is not None
                else None
            )
            draw = lifecycle.get_draw(session, draw_id)
            self._reject_future(draw)

            now = self._now()
            with session.begin_nested():
                draw = lifecycle.claim_for_commit(session, draw_id)
                eligibility = self._eligible(draw.id)
                if reviewed_numbers is not None:
                    numbers = reviewed_numbers
                else:
                    numbers = generate_winning_numbers(
                        range_min, range_max, rng=self._rng
                    )
                analysis = self.analyse(
                    draw.id, (range_min, range_max), numbers, eligibility
                )
                lifecycle.commit(
                    session, draw, analysis, eligibility.participants, now=now
                )
        except DrawError as exc:
            logger.warning("Publishing draw %s failed: %s", draw_id, exc)
            if draw is not None:
                session.refresh(draw)
            return DrawOutcome(success=False, draw=draw, error=exc)
        except (OperationalError, PoolTimeoutError) as exc:
            logger.error("Database unavailable while publishing draw %s: %s", draw_id, exc)
            return DrawOutcome(
                success=False, draw=draw, error=exc, state_unknown=True
            )

        next_draw = lifecycle.ensure_next_cycle(session, draw)
        return DrawOutcome(
            success=True, draw=draw, analysis=analysis, next_draw=next_draw
        )

    def reset(self, draw_id: int) -> DrawOutcome:
        """Revert a published draw to ``open`` in a single SAVEPOINT."""

        session = self._session
        draw: Optional[Draw] = None
        try:
            draw = lifecycle.get_draw(session, draw_id)
            with session.begin_nested():
                lifecycle.reset(session, draw)
        except DrawError as exc:
            logger.warning("Resetting draw %s failed: %s", draw_id, exc)
            if draw is not None:
                session.refresh(draw)
            return DrawOutcome(success=False, draw=draw, error=exc)
        except (OperationalError, PoolTimeoutError) as exc:
            logger.error("Database unavailable while resetting draw %s: %s", draw_id, exc)
            return DrawOutcome(
                success=False, draw=draw, error=exc, state_unknown=True
            )
        return DrawOutcome(success=True, draw=draw)


__all__ = ["AnalysisResult", "DrawEngine", "DrawOutcome"]
