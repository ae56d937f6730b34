"""Best-of-5 result interpretation."""
from __future__ import annotations

from typing import NamedTuple, Optional, Tuple

from smkc.services.errors import NoWinner

WINS_REQUIRED = 3


class MatchOutcome(NamedTuple):
    winner_side: int  # 1 or 2
    loser_side: int


def interpret(score1: int, score2: int) -> MatchOutcome:
    """Decide which side won a best-of-5 (first to 3). Raises NoWinner when neither side has 3.

    No upper bound is enforced. When both sides are at 3 or more and level, side 1 is taken
    as the winner.
    """
    if score1 >= WINS_REQUIRED and score1 >= score2:
        return MatchOutcome(1, 2)
    if score2 >= WINS_REQUIRED and score2 > score1:
        return MatchOutcome(2, 1)
    raise NoWinner()


def resolve_players(match, outcome: MatchOutcome) -> Tuple[Optional[str], Optional[str]]:
    """Return (winner_id, loser_id) using the match's stored player slots."""
    players = {1: match.player1_id, 2: match.player2_id}
    return players[outcome.winner_side], players[outcome.loser_side]
