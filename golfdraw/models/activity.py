from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, Session, mapped_column

from .base import ID_TYPE, Base

ACTIVITY_ACTIONS = (
    "draw_created",
    "draw_published",
    "draw_reset",
    "draw_released",
    "settings_updated",
)


class ActivityLog(Base):
    """Append-only record of operator-visible draw and settings actions."""

    __tablename__ = "activity_log"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resource_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    resource_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    extra: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (Index("ix_activity_log_action", "action"),)

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<ActivityLog(id={self.id}, action='{self.action}')>"


def log_activity(
    session: Session,
    action: str,
    description: Optional[str] = None,
    *,
    resource_type: Optional[str] = None,
    resource_id: Optional[int] = None,
    extra: Optional[dict[str, Any]] = None,
) -> ActivityLog:
    """Append an :class:`ActivityLog` row to ``session`` and flush it."""

    if action not in ACTIVITY_ACTIONS:
        raise ValueError(f"Unknown activity action: {action!r}")
    entry = ActivityLog(
        action=action,
        description=description,
        resource_type=resource_type,
        resource_id=resource_id,
        extra=extra,
    )
    session.add(entry)
    session.flush()
    return entry


__all__ = ["ACTIVITY_ACTIONS", "ActivityLog", "log_activity"]
