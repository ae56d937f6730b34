"""Bracket error taxonomy. All are ValueErrors so callers can catch them the usual way."""
from __future__ import annotations


class BracketError(ValueError):
    """Base class for finals bracket failures reported to the caller."""


class UnsupportedBracketSize(BracketError):
    def __init__(self, entrant_count: int):
        self.entrant_count = entrant_count
        super().__init__(f"Currently only 8-player brackets are supported (requested {entrant_count})")


class InvalidEntrantCount(BracketError):
    def __init__(self, required: int, found: int):
        self.required = required
        self.found = found
        super().__init__(f"Bracket needs exactly {required} entrants, got {found}")


class InsufficientEntrants(BracketError):
    def __init__(self, required: int, found: int):
        self.required = required
        self.found = found
        super().__init__(f"Not enough players qualified. Need {required}, found {found}")


class MatchNotFound(BracketError):
    def __init__(self, match_number: int):
        self.match_number = match_number
        super().__init__(f"Finals match {match_number} not found")


class MatchAlreadyCompleted(BracketError):
    def __init__(self, match_number: int):
        self.match_number = match_number
        super().__init__(f"Finals match {match_number} already has a result")


class MatchNotReady(BracketError):
    def __init__(self, match_number: int):
        self.match_number = match_number
        super().__init__(f"Finals match {match_number} is still waiting for a player")


class NoWinner(BracketError):
    def __init__(self):
        super().__init__("Match must have a winner: best of 5, first to 3")


class BracketInvariantError(RuntimeError):
    """Raised in strict mode when advancement cannot find or fill a downstream match."""
