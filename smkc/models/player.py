"""Player model."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from smkc.models.base import Base


class Player(Base):
    """Competitor. Identified by a short string id (e.g. "p1") so ids survive re-imports."""

    __tablename__ = "players"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    nickname: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    qualifications = relationship(
        "Qualification", back_populates="player", cascade="all, delete-orphan"
    )
