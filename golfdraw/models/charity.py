from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, Text, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from .base import ID_TYPE, Base


class Charity(Base):
    """A charity participants can direct the donation share of their winnings to."""

    __tablename__ = "charities"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<Charity(id={self.id}, name='{self.name}')>"

    @classmethod
    def get_by_name(cls, session: Session, name: str) -> Optional["Charity"]:
        """Retrieve a charity by its display name."""

        return session.scalar(select(cls).where(cls.name == name))
