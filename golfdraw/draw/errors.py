"""Exceptions raised by the draw settlement engine."""

from __future__ import annotations


class DrawError(Exception):
    """Base class for every draw settlement failure."""


class DrawConfigurationError(DrawError, ValueError):
    """Operator supplied configuration that cannot be used."""


class InvalidRangeError(DrawConfigurationError):
    """The score range cannot yield five distinct winning numbers."""


class InvalidSettingsError(DrawConfigurationError):
    """Draw settings failed validation and were not stored."""


class InvalidMonthYearError(DrawConfigurationError):
    """A draw label is not a month name followed by a year."""


class InvalidWinningNumbersError(DrawConfigurationError):
    """Winning numbers are not five distinct values inside the score range."""


class DrawNotFoundError(DrawError, LookupError):
    pass


class InvalidTransitionError(DrawError):
    """A draw status change is not in the transition table."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move draw from {current!r} to {target!r}")
        self.current = current
        self.target = target


class DrawAlreadyPublishedError(DrawError):
    """The draw was already published; publishing again is a no-op error."""


class DrawInProgressError(DrawError):
    """Another operator is committing this draw right now."""


class DrawNotPublishedError(DrawError):
    """Reset was requested for a draw that has not been published."""


class DrawResetConflictError(DrawError):
    """A later draw moved the jackpot, so restoring this one would clobber it."""


class FutureCycleError(DrawError, ValueError):
    """The draw belongs to a month that has not started yet."""


class DataUnavailableError(DrawError):
    """Participant data could not be read. Retrying may succeed."""


class ConcurrentUpdateError(DrawError):
    """A versioned record changed underneath the current transaction."""


class ReviewMismatchError(DrawError, ValueError):
    """The reviewed analysis does not describe the draw being published."""


__all__ = [
    "ConcurrentUpdateError",
    "DataUnavailableError",
    "DrawAlreadyPublishedError",
    "DrawConfigurationError",
    "DrawError",
    "DrawInProgressError",
    "DrawNotFoundError",
    "DrawNotPublishedError",
    "DrawResetConflictError",
    "FutureCycleError",
    "InvalidRangeError",
    "InvalidMonthYearError",
    "InvalidSettingsError",
    "InvalidTransitionError",
    "InvalidWinningNumbersError",
    "ReviewMismatchError",
]
