"""Monthly draw calendar.

Draws run on the 9th of each month at 20:00 New York time. Each cycle is
identified by a ``month_year`` label such as ``"February 2026"``. Score
submissions lock 24 hours before the draw.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from .errors import InvalidMonthYearError

DRAW_DAY_OF_MONTH = 9
DRAW_HOUR = 20
DRAW_MINUTE = 0
DRAW_TIMEZONE = ZoneInfo("America/New_York")
SCORE_CUTOFF = timedelta(hours=24)

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _local(now: Optional[datetime]) -> datetime:
    now = now if now is not None else utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(DRAW_TIMEZONE)


def format_month_year(year: int, month: int) -> str:
    return f"{MONTH_NAMES[month - 1]} {year}"


def parse_month_year(label: str) -> tuple[int, int]:
    """Return ``(year, month)`` for a label like ``"February 2026"``.

    Raises
    ------
    ValueError
        If the label is not a month name followed by a year.
    """

    parts = label.strip().split()
    if len(parts) != 2:
        raise ValueError(f"Invalid month_year label: {label!r}")
    name, year = parts
    try:
        month = MONTH_NAMES.index(name.capitalize()) + 1
        parsed_year = int(year)
    except ValueError:
        raise ValueError(f"Invalid month_year label: {label!r}") from None
    if not 1 <= parsed_year <= 9999:
        raise ValueError(f"Invalid month_year label: {label!r}")
    return parsed_year, month


def normalize_month_year(label: str) -> str:
    """Return the canonical spelling of ``label``, e.g. ``"February 2026"``.

    Raises
    ------
    InvalidMonthYearError
        If ``label`` does not name a calendar month.
    """

    try:
        return format_month_year(*parse_month_year(label))
    except ValueError as exc:
        raise InvalidMonthYearError(str(exc)) from None


def current_month_year(now: Optional[datetime] = None) -> str:
    local = _local(now)
    return format_month_year(local.year, local.month)


def next_month_year(label: str) -> str:
    """Label of the cycle that follows ``label``."""

    year, month = parse_month_year(label)
    if month == 12:
        return format_month_year(year + 1, 1)
    return format_month_year(year, month + 1)


def draw_date_for_month(year: int, month: int) -> datetime:
    """Timezone-aware draw time for the given calendar month."""

    return datetime(
        year, month, DRAW_DAY_OF_MONTH, DRAW_HOUR, DRAW_MINUTE, tzinfo=DRAW_TIMEZONE
    )


def next_draw_date(now: Optional[datetime] = None) -> datetime:
    """Return this month's draw time, or next month's once it has passed."""

    local = _local(now)
    candidate = draw_date_for_month(local.year, local.month)
    if local > candidate:
        if local.month == 12:
            candidate = draw_date_for_month(local.year + 1, 1)
        else:
            candidate = draw_date_for_month(local.year, local.month + 1)
    return candidate


def can_submit_scores(now: Optional[datetime] = None) -> bool:
    """``True`` until 24 hours before the next draw."""

    local = _local(now)
    return local < next_draw_date(local) - SCORE_CUTOFF


def is_future_cycle(label: str, now: Optional[datetime] = None) -> bool:
    """Whether ``label`` names a month that has not started yet."""

    year, month = parse_month_year(label)
    local = _local(now)
    return date(year, month, 1) > date(local.year, local.month, 1)


def format_draw_date(when: datetime) -> str:
    """Render a draw time as ``"9th February 2026, 8:00 PM EST"``."""

    local = when.astimezone(DRAW_TIMEZONE)
    day = local.day
    if 10 <= day % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    hour = local.hour % 12 or 12
    meridiem = "PM" if local.hour >= 12 else "AM"
    return (
        f"{day}{suffix} {MONTH_NAMES[local.month - 1]} {local.year}, "
        f"{hour}:{local.minute:02d} {meridiem} {local.tzname()}"
    )


__all__ = [
    "Clock",
    "DRAW_DAY_OF_MONTH",
    "DRAW_TIMEZONE",
    "can_submit_scores",
    "current_month_year",
    "draw_date_for_month",
    "format_draw_date",
    "format_month_year",
    "is_future_cycle",
    "next_draw_date",
    "next_month_year",
    "normalize_month_year",
    "parse_month_year",
    "utc_now",
]
