from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .charity import Charity  # noqa: F401
from .participant import Participant, Score, Subscription  # noqa: F401
from .draw import Donation, Draw, DrawEntry, DrawStatus  # noqa: F401
from .jackpot import JackpotTracker  # noqa: F401
from .settings import DrawSettings  # noqa: F401
from .activity import ActivityLog  # noqa: F401

__all__ = [
    "Base",
    "Charity",
    "Participant",
    "Score",
    "Subscription",
    "Draw",
    "DrawEntry",
    "DrawStatus",
    "Donation",
    "JackpotTracker",
    "DrawSettings",
    "ActivityLog",
]
