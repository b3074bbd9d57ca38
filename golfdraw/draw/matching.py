"""Match counting between participant scores and the winning numbers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

MATCH_TIERS = {5: 1, 4: 2, 3: 3}
"""Match count to prize tier."""


@dataclass(frozen=True)
class EntryEvaluation:
    """One participant's result against a set of winning numbers."""

    participant_id: int
    scores: tuple[int, ...]
    matches: int
    tier: Optional[int]

    @property
    def is_winner(self) -> bool:
        return self.tier is not None


@dataclass(frozen=True)
class TierCounts:
    tier1: int = 0
    tier2: int = 0
    tier3: int = 0


def count_matches(scores: Iterable[int], winning_numbers: Iterable[int]) -> int:
    """Number of distinct scores that appear among the winning numbers.

    A score repeated in the entry counts once.
    """

    return len(set(scores) & set(winning_numbers))


def tier_for_matches(matches: int) -> Optional[int]:
    return MATCH_TIERS.get(matches)


def evaluate_entries(
    entries: Iterable[tuple[int, Sequence[int]]],
    winning_numbers: Sequence[int],
) -> list[EntryEvaluation]:
    """Evaluate ``(participant_id, scores)`` pairs against ``winning_numbers``.

    Pure and re-runnable: the same inputs always give the same result.
    """

    winning = frozenset(winning_numbers)
    evaluations = []
    for participant_id, scores in entries:
        matches = count_matches(scores, winning)
        evaluations.append(
            EntryEvaluation(
                participant_id=participant_id,
                scores=tuple(scores),
                matches=matches,
                tier=tier_for_matches(matches),
            )
        )
    return evaluations


def count_tiers(evaluations: Iterable[EntryEvaluation]) -> TierCounts:
    counts = {1: 0, 2: 0, 3: 0}
    for evaluation in evaluations:
        if evaluation.tier is not None:
            counts[evaluation.tier] += 1
    return TierCounts(tier1=counts[1], tier2=counts[2], tier3=counts[3])


__all__ = [
    "EntryEvaluation",
    "MATCH_TIERS",
    "TierCounts",
    "count_matches",
    "count_tiers",
    "evaluate_entries",
    "tier_for_matches",
]
