"""Fixed double-elimination topology for 8-player finals.

Matches 1-7 form the winners bracket, 8-15 the losers bracket, 16 is the
Grand Final and 18 the Grand Final Reset. Number 17 is unused.

Winners: QF(4) -> SF(2) -> Final(1)
Losers:  R1(2) -> R2(2) -> R3(2) -> SF(1) -> Final(1)
Grand Final(1) + Reset(1)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from smkc.services.errors import UnsupportedBracketSize

BRACKET_SIZE = 8

GRAND_FINAL = 16
GRAND_FINAL_RESET = 18

WINNERS = "winners"
LOSERS = "losers"
GRAND_FINAL_BRACKET = "grand_final"

# Seed pairs for the four quarter finals. Seeds 1 and 2 sit in opposite halves
# so they cannot meet before the Winners Final.
SEED_PAIRS = [(1, 8), (4, 5), (2, 7), (3, 6)]

ROUND_NAMES: Dict[str, str] = {
    "winners_qf": "Winners Quarter Final",
    "winners_sf": "Winners Semi Final",
    "winners_final": "Winners Final",
    "losers_r1": "Losers Round 1",
    "losers_r2": "Losers Round 2",
    "losers_r3": "Losers Round 3",
    "losers_sf": "Losers Semi Final",
    "losers_final": "Losers Final",
    "grand_final": "Grand Final",
    "grand_final_reset": "Grand Final Reset",
}


@dataclass(frozen=True)
class BracketSlot:
    match_number: int
    round: str
    bracket: str
    player1_seed: Optional[int] = None
    player2_seed: Optional[int] = None
    winner_goes_to: Optional[int] = None
    loser_goes_to: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "match_number": self.match_number,
            "round": self.round,
            "bracket": self.bracket,
            "player1_seed": self.player1_seed,
            "player2_seed": self.player2_seed,
            "winner_goes_to": self.winner_goes_to,
            "loser_goes_to": self.loser_goes_to,
        }


def generate_bracket_structure(entrant_count: int = BRACKET_SIZE) -> List[BracketSlot]:
    """Return the 17 bracket slots for an 8-player double elimination, ordered by match number."""
    if entrant_count != BRACKET_SIZE:
        raise UnsupportedBracketSize(entrant_count)

    slots: List[BracketSlot] = []

    # Winners QF: 1&2 feed SF 5, 3&4 feed SF 6. Losers drop to 9 (QF 1, 4) and 10 (QF 2, 3).
    qf_losers = [9, 10, 10, 9]
    for i, (high, low) in enumerate(SEED_PAIRS):
        slots.append(BracketSlot(
            match_number=i + 1,
            round="winners_qf",
            bracket=WINNERS,
            player1_seed=high,
            player2_seed=low,
            winner_goes_to=5 + i // 2,
            loser_goes_to=qf_losers[i],
        ))

    for i in range(2):
        slots.append(BracketSlot(
            match_number=5 + i,
            round="winners_sf",
            bracket=WINNERS,
            winner_goes_to=7,
            loser_goes_to=13 + i,
        ))

    slots.append(BracketSlot(
        match_number=7, round="winners_final", bracket=WINNERS, winner_goes_to=GRAND_FINAL, loser_goes_to=15,
    ))

    # Losers bracket: losing here is a second loss, so no loser pointers.
    losers = [
        (8, "losers_r1", 11),
        (9, "losers_r1", 12),
        (10, "losers_r2", 11),
        (11, "losers_r2", 12),
        (12, "losers_r3", 14),
        (13, "losers_r3", 14),
        (14, "losers_sf", 15),
        (15, "losers_final", GRAND_FINAL),
    ]
    for number, round_name, target in losers:
        slots.append(BracketSlot(match_number=number, round=round_name, bracket=LOSERS, winner_goes_to=target))

    # Grand Final points at the reset, which is only populated when the losers-bracket player wins.
    slots.append(BracketSlot(
        match_number=GRAND_FINAL, round="grand_final", bracket=GRAND_FINAL_BRACKET, winner_goes_to=GRAND_FINAL_RESET,
    ))
    slots.append(BracketSlot(
        match_number=GRAND_FINAL_RESET, round="grand_final_reset", bracket=GRAND_FINAL_BRACKET,
    ))
    return slots


def slot_by_number(structure: List[BracketSlot]) -> Dict[int, BracketSlot]:
    return {s.match_number: s for s in structure}


def bracket_for_round(round_name: str) -> str:
    """Map a round id (e.g. "losers_r2") to its bracket lineage."""
    if round_name.startswith("winners_"):
        return WINNERS
    if round_name.startswith("losers_"):
        return LOSERS
    return GRAND_FINAL_BRACKET


def feeders_by_number(structure: List[BracketSlot]) -> Dict[int, List[int]]:
    """Map each match number to the matches that send a winner or loser into it."""
    feeders: Dict[int, List[int]] = {s.match_number: [] for s in structure}
    for s in structure:
        for target in (s.winner_goes_to, s.loser_goes_to):
            if target in feeders:
                feeders[target].append(s.match_number)
    return feeders
