"""Monthly draw settlement: eligibility, numbers, matching, allocation and lifecycle."""

from .allocation import (
    AllocationSettings,
    PrizeAllocation,
    TierAllocation,
    allocate_prize_pool,
    split_charity_share,
)
from .eligibility import (
    EligibilityResult,
    EligibleParticipant,
    resolve_eligible_participants,
)
from .engine import AnalysisResult, DrawEngine, DrawOutcome
from .errors import (
    ConcurrentUpdateError,
    DataUnavailableError,
    DrawAlreadyPublishedError,
    DrawConfigurationError,
    DrawError,
    DrawInProgressError,
    DrawNotFoundError,
    DrawNotPublishedError,
    DrawResetConflictError,
    FutureCycleError,
    InvalidMonthYearError,
    InvalidRangeError,
    InvalidSettingsError,
    InvalidTransitionError,
    InvalidWinningNumbersError,
    ReviewMismatchError,
)
from .matching import EntryEvaluation, TierCounts, count_matches, evaluate_entries
from .numbers import SCORE_RANGE_PRESETS, ScorePopularity, generate_winning_numbers, score_popularity

__all__ = [
    "AllocationSettings",
    "AnalysisResult",
    "ConcurrentUpdateError",
    "DataUnavailableError",
    "DrawAlreadyPublishedError",
    "DrawConfigurationError",
    "DrawEngine",
    "DrawError",
    "DrawInProgressError",
    "DrawNotFoundError",
    "DrawNotPublishedError",
    "DrawOutcome",
    "DrawResetConflictError",
    "EligibilityResult",
    "EligibleParticipant",
    "EntryEvaluation",
    "FutureCycleError",
    "InvalidRangeError",
    "InvalidMonthYearError",
    "InvalidSettingsError",
    "InvalidTransitionError",
    "InvalidWinningNumbersError",
    "PrizeAllocation",
    "ReviewMismatchError",
    "SCORE_RANGE_PRESETS",
    "ScorePopularity",
    "TierAllocation",
    "TierCounts",
    "allocate_prize_pool",
    "count_matches",
    "evaluate_entries",
    "generate_winning_numbers",
    "resolve_eligible_participants",
    "score_popularity",
    "split_charity_share",
]
