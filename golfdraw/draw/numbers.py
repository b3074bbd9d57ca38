"""Winning number generation and submitted-score popularity."""

from __future__ import annotations

import random
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .errors import InvalidRangeError, InvalidWinningNumbersError

NUMBERS_PER_DRAW = 5
DEFAULT_RANGE_MIN = 1
DEFAULT_RANGE_MAX = 45

SCORE_RANGE_PRESETS: dict[str, tuple[int, int]] = {
    "Full Range (1-45)": (1, 45),
    "5-45": (5, 45),
    "10-45": (10, 45),
    "15-45": (15, 45),
    "18-45": (18, 45),
}
"""Operator shortcuts for common score ranges."""

_system_random = random.SystemRandom()


def validate_range(range_min: int, range_max: int) -> None:
    """Raise :class:`InvalidRangeError` unless five numbers fit in the range."""

    if isinstance(range_min, bool) or isinstance(range_max, bool):
        raise InvalidRangeError("Score range bounds must be integers")
    if not isinstance(range_min, int) or not isinstance(range_max, int):
        raise InvalidRangeError("Score range bounds must be integers")
    size = range_max - range_min + 1
    if size < NUMBERS_PER_DRAW:
        raise InvalidRangeError(
            f"Score range {range_min}-{range_max} holds {max(size, 0)} values; "
            f"at least {NUMBERS_PER_DRAW} are required"
        )


def validate_winning_numbers(
    numbers: Iterable[int], range_min: int, range_max: int
) -> list[int]:
    """Return ``numbers`` sorted, or raise if they are not a valid draw.

    A valid draw is five distinct integers inside ``[range_min, range_max]``.

    Raises
    ------
    InvalidWinningNumbersError
        If the count, type, uniqueness or range of the numbers is wrong.
    """

    values = list(numbers)
    if any(isinstance(n, bool) or not isinstance(n, int) for n in values):
        raise InvalidWinningNumbersError(f"Winning numbers must be integers: {values}")
    if len(values) != NUMBERS_PER_DRAW or len(set(values)) != NUMBERS_PER_DRAW:
        raise InvalidWinningNumbersError(
            f"Expected {NUMBERS_PER_DRAW} distinct winning numbers, got {values}"
        )
    outside = [n for n in values if not range_min <= n <= range_max]
    if outside:
        raise InvalidWinningNumbersError(
            f"Winning numbers {outside} fall outside {range_min}-{range_max}"
        )
    return sorted(values)


def generate_winning_numbers(
    range_min: int = DEFAULT_RANGE_MIN,
    range_max: int = DEFAULT_RANGE_MAX,
    *,
    rng: Optional[random.Random] = None,
) -> list[int]:
    """Draw five distinct winning numbers from ``[range_min, range_max]``.

    Parameters
    ----------
    range_min : int, default: 1
        Lowest number that can be drawn (inclusive).
    range_max : int, default: 45
        Highest number that can be drawn (inclusive).
    rng : random.Random, optional
        Source of randomness. Defaults to :class:`random.SystemRandom`; tests
        pass a seeded ``random.Random``.

    Returns
    -------
    list[int]
        Five unique numbers in ascending order. Every value in the range is
        equally likely.

    Raises
    ------
    InvalidRangeError
        If the range holds fewer than five values.
    """

    validate_range(range_min, range_max)
    source = rng if rng is not None else _system_random
    return sorted(source.sample(range(range_min, range_max + 1), NUMBERS_PER_DRAW))


@dataclass(frozen=True)
class ScorePopularity:
    """Submitted-score frequency summary shown next to a simulation.

    Attributes
    ----------
    least_popular : list[int]
        Up to three in-range scores submitted least often.
    most_popular : list[int]
        Up to two in-range scores submitted most often.
    frequency : dict[int, int]
        Count of every in-range score that was submitted.
    """

    least_popular: list[int] = field(default_factory=list)
    most_popular: list[int] = field(default_factory=list)
    frequency: dict[int, int] = field(default_factory=dict)


def score_popularity(
    scores: Iterable[int], range_min: int, range_max: int
) -> ScorePopularity:
    """Summarize which submitted scores are rarest and most common.

    Scores outside the range are ignored. Ties are broken by score value so
    the result is stable for a given input.
    """

    counts = Counter(s for s in scores if range_min <= s <= range_max)
    if not counts:
        return ScorePopularity()

    ascending = sorted(counts.items(), key=lambda item: (item[1], item[0]))
    descending = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return ScorePopularity(
        least_popular=[score for score, _ in ascending[:3]],
        most_popular=[score for score, _ in descending[:2]],
        frequency=dict(sorted(counts.items())),
    )


__all__ = [
    "DEFAULT_RANGE_MAX",
    "DEFAULT_RANGE_MIN",
    "NUMBERS_PER_DRAW",
    "SCORE_RANGE_PRESETS",
    "ScorePopularity",
    "generate_winning_numbers",
    "score_popularity",
    "validate_range",
    "validate_winning_numbers",
]
