"""Advancement engine: moves winners and losers through the finals bracket.

Works on in-memory match records (FinalsMatch rows or anything with the same
attributes) keyed by match number. The caller persists whatever comes back in
``touched``.

Players are placed into the first empty slot of the target match, so the order
in which feeder matches complete decides who ends up as player 1. Each placement
records the lineage (winners / losers) of the feeding slot in ``playerN_origin``;
the Grand Final reads that tag to tell the undefeated player from the
losers-bracket challenger.
"""
from __future__ import annotations

import logging
from typing import Dict, List, NamedTuple, Optional

import config
from smkc.services.bracket_topology import (
    GRAND_FINAL,
    GRAND_FINAL_RESET,
    LOSERS,
    WINNERS,
    BracketSlot,
    feeders_by_number,
    generate_bracket_structure,
)
from smkc.services.errors import BracketInvariantError, MatchNotReady
from smkc.services.match_result import interpret, resolve_players

logger = logging.getLogger("smkc.advancement")

FEEDERS = feeders_by_number(generate_bracket_structure())


class AdvancementResult(NamedTuple):
    winner_id: Optional[str]
    loser_id: Optional[str]
    touched: List  # downstream matches modified by this result
    is_complete: bool = False
    champion_id: Optional[str] = None


def assert_invariant(condition: bool, message: str, *args) -> bool:
    """Log a bracket invariant miss; raise only when strict invariants are enabled."""
    if condition:
        return True
    logger.warning(message, *args)
    if config.BRACKET_STRICT_INVARIANTS:
        raise BracketInvariantError(message % args)
    return False


def place_player(
    matches: Dict[int, object],
    target_number: int,
    player_id: str,
    origin: str,
    source_number: int,
):
    """Put player_id into the first empty slot of target match. Returns the target, or None on a miss."""
    target = matches.get(target_number)
    if not assert_invariant(
        target is not None,
        "Match %s: downstream match %s not found, skipping advancement of %s",
        source_number, target_number, player_id,
    ):
        return None
    if target.player1_id is None:
        target.player1_id = player_id
        target.player1_origin = origin
    elif target.player2_id is None:
        target.player2_id = player_id
        target.player2_origin = origin
    else:
        assert_invariant(
            False,
            "Match %s: downstream match %s already full (%s vs %s), skipping advancement of %s",
            source_number, target_number, target.player1_id, target.player2_id, player_id,
        )
        return None
    logger.debug("Match %s: %s -> match %s", source_number, player_id, target_number)
    return target


def can_still_produce(matches: Dict[int, object], number: int) -> bool:
    """True while match `number` may still send a player on to another match."""
    m = matches.get(number)
    if m is None or m.completed:
        return False
    if m.player1_id is not None or m.player2_id is not None:
        return True
    return any(can_still_produce(matches, f) for f in FEEDERS.get(number, ()))


def check_ready(match, slot: BracketSlot, matches: Dict[int, object]) -> None:
    """Raise MatchNotReady unless both players are in, or no feeder can fill the empty slot."""
    if match.player1_id is not None and match.player2_id is not None:
        return
    if match.player1_id is None and match.player2_id is None:
        raise MatchNotReady(slot.match_number)
    pending = [f for f in FEEDERS.get(slot.match_number, ()) if can_still_produce(matches, f)]
    if pending:
        logger.debug("Match %s: waiting on feeder matches %s", slot.match_number, pending)
        raise MatchNotReady(slot.match_number)


def _advance_grand_final(match, winner_side: int, winner_id, loser_id, matches) -> AdvancementResult:
    winner_origin = match.player1_origin if winner_side == 1 else match.player2_origin
    if winner_origin != LOSERS:
        return AdvancementResult(winner_id, loser_id, [], True, winner_id)

    # Losers-bracket challenger beat the undefeated player: both now have one loss.
    reset = matches.get(GRAND_FINAL_RESET)
    if not assert_invariant(
        reset is not None, "Grand Final reset match %s not found", GRAND_FINAL_RESET
    ):
        return AdvancementResult(winner_id, loser_id, [])
    reset.player1_id = winner_id
    reset.player1_origin = LOSERS
    reset.player2_id = loser_id
    reset.player2_origin = WINNERS
    logger.info("Grand Final won by losers-bracket player %s, reset match required", winner_id)
    return AdvancementResult(winner_id, loser_id, [reset])


def advance(match, slot: BracketSlot, matches: Dict[int, object]) -> AdvancementResult:
    """Apply a completed match's result to the rest of the bracket.

    ``match`` must already carry its final score1/score2. A match with an empty
    slot can only be played once every feeder that could still fill it is done.
    """
    check_ready(match, slot, matches)
    outcome = interpret(match.score1, match.score2)
    winner_id, loser_id = resolve_players(match, outcome)
    if winner_id is None:
        raise MatchNotReady(slot.match_number)

    if slot.match_number == GRAND_FINAL:
        return _advance_grand_final(match, outcome.winner_side, winner_id, loser_id, matches)
    if slot.match_number == GRAND_FINAL_RESET:
        return AdvancementResult(winner_id, loser_id, [], True, winner_id)

    touched = []
    if slot.winner_goes_to is not None:
        target = place_player(matches, slot.winner_goes_to, winner_id, slot.bracket, slot.match_number)
        if target is not None:
            touched.append(target)
    if slot.loser_goes_to is not None and loser_id is not None:
        target = place_player(matches, slot.loser_goes_to, loser_id, slot.bracket, slot.match_number)
        if target is not None:
            touched.append(target)
    return AdvancementResult(winner_id, loser_id, touched)


class TournamentOutcome(NamedTuple):
    is_complete: bool
    champion_id: Optional[str] = None


def compute_outcome(matches: Dict[int, object]) -> TournamentOutcome:
    """Derive completion and champion from the Grand Final and Reset matches."""
    reset = matches.get(GRAND_FINAL_RESET)
    if reset is not None and reset.completed:
        winner_id, _ = resolve_players(reset, interpret(reset.score1, reset.score2))
        return TournamentOutcome(True, winner_id)
    final = matches.get(GRAND_FINAL)
    if final is not None and final.completed:
        outcome = interpret(final.score1, final.score2)
        winner_origin = final.player1_origin if outcome.winner_side == 1 else final.player2_origin
        if winner_origin != LOSERS:
            winner_id, _ = resolve_players(final, outcome)
            return TournamentOutcome(True, winner_id)
    return TournamentOutcome(False)
