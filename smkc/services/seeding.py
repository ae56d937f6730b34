"""Seed assignment from ranked qualification standings."""
from __future__ import annotations

from typing import Any, Dict, List, Sequence, Tuple

from smkc.services.bracket_topology import BRACKET_SIZE, BracketSlot
from smkc.services.errors import InsufficientEntrants


def rank_qualifications(rows: Sequence[Any], order_by: Sequence[str]) -> List[Any]:
    """Sort standings rows best-first by each attribute in order_by (descending).

    Rows tied on every column keep their input order (sorted() is stable).
    """
    return sorted(rows, key=lambda r: tuple(-(getattr(r, col) or 0) for col in order_by))


def assign_seeds(
    structure: List[BracketSlot], ranked_entrants: Sequence[str]
) -> Dict[int, Tuple[str, str]]:
    """Map each seeded QF match number to (player1_id, player2_id).

    ranked_entrants[0] is seed 1. Only the first BRACKET_SIZE entrants are used.
    """
    if len(ranked_entrants) < BRACKET_SIZE:
        raise InsufficientEntrants(BRACKET_SIZE, len(ranked_entrants))
    placements: Dict[int, Tuple[str, str]] = {}
    for slot in structure:
        if slot.player1_seed is None or slot.player2_seed is None:
            continue
        placements[slot.match_number] = (
            ranked_entrants[slot.player1_seed - 1],
            ranked_entrants[slot.player2_seed - 1],
        )
    return placements


def seeded_entrants(structure: List[BracketSlot], matches: Sequence[Any]) -> List[str]:
    """Read the seed order back out of the quarter final rows (index 0 = seed 1)."""
    by_number = {m.match_number: m for m in matches}
    seeded: Dict[int, str] = {}
    for slot in structure:
        m = by_number.get(slot.match_number)
        if m is None or slot.player1_seed is None or slot.player2_seed is None:
            continue
        seeded[slot.player1_seed] = m.player1_id
        seeded[slot.player2_seed] = m.player2_id
    return [seeded[seed] for seed in sorted(seeded)]
