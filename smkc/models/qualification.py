"""Qualification standings - one row per player per mode."""
from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from smkc.models.base import Base


class Qualification(Base):
    """Qualification result used to seed a finals bracket."""

    __tablename__ = "qualifications"
    __table_args__ = (UniqueConstraint("tournament_id", "mode", "player_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tournament_id: Mapped[int] = mapped_column(ForeignKey("tournaments.id"), nullable=False, index=True)
    mode: Mapped[str] = mapped_column(String(8), nullable=False)  # bm, mr, gp
    player_id: Mapped[str] = mapped_column(ForeignKey("players.id"), nullable=False)
    score: Mapped[int] = mapped_column(Integer, default=0)
    points: Mapped[int] = mapped_column(Integer, default=0)
    win_rounds: Mapped[int] = mapped_column(Integer, default=0)

    tournament: Mapped["Tournament"] = relationship("Tournament", back_populates="qualifications")
    player: Mapped["Player"] = relationship("Player", back_populates="qualifications")
