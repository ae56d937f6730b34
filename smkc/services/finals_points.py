"""Finals placement points.

A player's finals position comes from the round they were knocked out in.
Players knocked out in the same round share a position range (both Losers
Round 3 losers are 5th-6th) and the same points. 1st and 2nd are only known
once the Grand Final, or its Reset, has decided the champion.
"""
from __future__ import annotations

from typing import Dict, List, NamedTuple, Tuple

from smkc.services.advancement import compute_outcome
from smkc.services.bracket_topology import GRAND_FINAL, GRAND_FINAL_RESET
from smkc.services.match_result import interpret, resolve_players

# Index 0 = 1st place. Positions in the same range share points.
FINALS_POINTS: Tuple[int, ...] = (
    2000, 1600, 1300, 1000,
    750, 750,
    550, 550,
    400, 400, 400, 400,
    300, 300, 300, 300,
    150, 150, 150, 150,
    100, 100, 100, 100,
)

POSITION_RANGES: Tuple[Tuple[int, int], ...] = (
    (1, 1), (2, 2), (3, 3), (4, 4),
    (5, 6), (7, 8), (9, 12), (13, 16), (17, 20), (21, 24),
)

# Position awarded to the loser of a match in each losers round
ELIMINATION_POSITIONS: Dict[str, int] = {
    "losers_final": 3,
    "losers_sf": 4,
    "losers_r3": 5,
    "losers_r2": 7,
    "losers_r1": 9,
}


class Placement(NamedTuple):
    player_id: str
    position: int
    points: int
    label: str


def finals_points(position: int) -> int:
    """Points for a 1-based finals position; 0 outside the table."""
    if 1 <= position <= len(FINALS_POINTS):
        return FINALS_POINTS[position - 1]
    return 0


def position_range(position: int) -> Tuple[int, int]:
    """The (start, end) positions sharing points with `position`."""
    for start, end in POSITION_RANGES:
        if start <= position <= end:
            return start, end
    return position, position


def format_ordinal(position: int) -> str:
    if 11 <= position % 100 <= 13:
        return f"{position}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(position % 10, "th")
    return f"{position}{suffix}"


def format_position_range(position: int) -> str:
    start, end = position_range(position)
    if start == end:
        return format_ordinal(start)
    return f"{format_ordinal(start)}-{format_ordinal(end)}"


def compute_placements(matches: Dict[int, object]) -> List[Placement]:
    """Positions and points for every player whose finish is already decided.

    Players still alive in the bracket are left out.
    """
    positions: Dict[str, int] = {}
    for m in matches.values():
        position = ELIMINATION_POSITIONS.get(m.round)
        if position is None or not m.completed:
            continue
        _, loser_id = resolve_players(m, interpret(m.score1, m.score2))
        if loser_id is not None:
            positions[loser_id] = position

    outcome = compute_outcome(matches)
    if outcome.is_complete:
        reset = matches.get(GRAND_FINAL_RESET)
        decider = reset if reset is not None and reset.completed else matches[GRAND_FINAL]
        _, runner_up = resolve_players(decider, interpret(decider.score1, decider.score2))
        positions[outcome.champion_id] = 1
        if runner_up is not None:
            positions[runner_up] = 2

    return [
        Placement(pid, pos, finals_points(pos), format_position_range(pos))
        for pid, pos in sorted(positions.items(), key=lambda item: (item[1], item[0]))
    ]
