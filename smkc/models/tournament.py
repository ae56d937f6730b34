"""Tournament model."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from smkc.models.base import Base


class Tournament(Base):
    """Tournament holding qualification standings and finals brackets for each mode."""

    __tablename__ = "tournaments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    status: Mapped[str] = mapped_column(String(32), default="open")  # open, in_progress, completed
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    qualifications = relationship(
        "Qualification", back_populates="tournament", cascade="all, delete-orphan"
    )
    finals_matches = relationship(
        "FinalsMatch", back_populates="tournament", cascade="all, delete-orphan"
    )
