"""Finals match model - one row per bracket slot."""
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from smkc.models.base import Base


class FinalsMatch(Base):
    """Single match in a double-elimination finals bracket."""

    __tablename__ = "finals_matches"
    __table_args__ = (UniqueConstraint("tournament_id", "mode", "stage", "match_number"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tournament_id: Mapped[int] = mapped_column(ForeignKey("tournaments.id"), nullable=False, index=True)
    mode: Mapped[str] = mapped_column(String(8), nullable=False)  # bm, mr, gp
    stage: Mapped[str] = mapped_column(String(16), nullable=False, default="finals")
    match_number: Mapped[int] = mapped_column(Integer, nullable=False)
    round: Mapped[str] = mapped_column(String(32), nullable=False)
    player1_id: Mapped[Optional[str]] = mapped_column(ForeignKey("players.id"), nullable=True)
    player2_id: Mapped[Optional[str]] = mapped_column(ForeignKey("players.id"), nullable=True)
    # Lineage of the slot that placed each player: winners | losers
    player1_origin: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    player2_origin: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    score1: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    score2: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    rounds: Mapped[Optional[list[dict[str, Any]]]] = mapped_column(JSON, nullable=True)  # MR course results

    tournament = relationship("Tournament", back_populates="finals_matches")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tournament_id": self.tournament_id,
            "mode": self.mode,
            "stage": self.stage,
            "match_number": self.match_number,
            "round": self.round,
            "player1_id": self.player1_id,
            "player2_id": self.player2_id,
            "player1_origin": self.player1_origin,
            "player2_origin": self.player2_origin,
            "score1": self.score1,
            "score2": self.score2,
            "completed": self.completed,
            "rounds": self.rounds,
        }
