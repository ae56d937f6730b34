"""Finals bracket session: generate, record results and query one tournament's bracket.

All writes for a (tournament, mode, stage) go through a per-key asyncio lock and
a single database transaction, so a regenerate is never half-visible. The lock
only covers one process; a result is claimed with a conditional UPDATE on
`completed`, so two workers submitting the same match cannot both land.
"""
from __future__ import annotations

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from smkc.models import FinalsMatch, Qualification, Tournament
from smkc.services.advancement import TournamentOutcome, advance, compute_outcome
from smkc.services.bracket_topology import (
    BRACKET_SIZE,
    ROUND_NAMES,
    BracketSlot,
    generate_bracket_structure,
    slot_by_number,
)
from smkc.services.errors import (
    InsufficientEntrants,
    InvalidEntrantCount,
    MatchAlreadyCompleted,
    MatchNotFound,
    UnsupportedBracketSize,
)
from smkc.services.finals_config import FinalsConfig
from smkc.services.finals_points import Placement, compute_placements
from smkc.services.seeding import assign_seeds, rank_qualifications

# Entries drop out once no coroutine holds or waits on the lock
_locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()


def _lock_for(key: Tuple[int, str, str]) -> asyncio.Lock:
    lock = _locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _locks[key] = lock
    return lock


class RecordResult(NamedTuple):
    match: FinalsMatch
    winner_id: Optional[str]
    loser_id: Optional[str]
    is_complete: bool
    champion_id: Optional[str]


class BracketView(NamedTuple):
    matches: List[FinalsMatch]
    structure: List[BracketSlot]
    round_names: Dict[str, str]
    outcome: TournamentOutcome
    placements: List[Placement]


class BracketSession:
    """Bracket operations for one tournament, mode and stage."""

    def __init__(
        self,
        session: AsyncSession,
        tournament_id: int,
        finals: FinalsConfig,
        stage: str = "finals",
    ):
        self.session = session
        self.tournament_id = tournament_id
        self.finals = finals
        self.stage = stage
        self.logger = logging.getLogger(finals.logger_name)

    @property
    def key(self) -> Tuple[int, str, str]:
        return (self.tournament_id, self.finals.mode, self.stage)

    def _scope(self):
        return (
            FinalsMatch.tournament_id == self.tournament_id,
            FinalsMatch.mode == self.finals.mode,
            FinalsMatch.stage == self.stage,
        )

    @asynccontextmanager
    async def _transaction(self):
        """Serialize on this bracket's lock and commit (or roll back) everything done inside."""
        async with _lock_for(self.key):
            try:
                yield
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                raise

    async def _load_matches(self) -> List[FinalsMatch]:
        result = await self.session.execute(
            select(FinalsMatch).where(*self._scope()).order_by(FinalsMatch.match_number)
        )
        return list(result.scalars().all())

    async def _set_tournament_status(self, status: str) -> None:
        t = await self.session.get(Tournament, self.tournament_id)
        if t:
            t.status = status

    async def generate(self, entrants: Sequence[str]) -> List[FinalsMatch]:
        """Replace this bracket with 17 fresh matches seeded from entrants (index 0 = seed 1)."""
        if len(entrants) != BRACKET_SIZE:
            raise InvalidEntrantCount(BRACKET_SIZE, len(entrants))
        structure = generate_bracket_structure(len(entrants))
        seeds = assign_seeds(structure, entrants)

        matches: List[FinalsMatch] = []
        async with self._transaction():
            await self.session.execute(delete(FinalsMatch).where(*self._scope()))
            for slot in structure:
                m = FinalsMatch(
                    tournament_id=self.tournament_id,
                    mode=self.finals.mode,
                    stage=self.stage,
                    match_number=slot.match_number,
                    round=slot.round,
                    completed=False,
                )
                if slot.match_number in seeds:
                    m.player1_id, m.player2_id = seeds[slot.match_number]
                    m.player1_origin = m.player2_origin = slot.bracket
                self.session.add(m)
                matches.append(m)
            await self._set_tournament_status("in_progress")
        self.logger.info(
            "Tournament %s: %s finals bracket generated (%d matches)",
            self.tournament_id, self.finals.mode, len(matches),
        )
        return matches

    async def ranked_entrants(self) -> List[str]:
        """Player ids from this mode's qualification standings, best first."""
        result = await self.session.execute(
            select(Qualification)
            .where(
                Qualification.tournament_id == self.tournament_id,
                Qualification.mode == self.finals.mode,
            )
            .order_by(Qualification.id)
        )
        rows = rank_qualifications(result.scalars().all(), self.finals.qualification_order)
        return [q.player_id for q in rows]

    async def generate_from_standings(self, top_n: int = BRACKET_SIZE) -> List[FinalsMatch]:
        """Seed the bracket with the top_n qualifiers."""
        if top_n != BRACKET_SIZE:
            raise UnsupportedBracketSize(top_n)
        entrants = await self.ranked_entrants()
        if len(entrants) < top_n:
            raise InsufficientEntrants(top_n, len(entrants))
        return await self.generate(entrants[:top_n])

    async def record_result(
        self,
        match_number: int,
        score1: int,
        score2: int,
        rounds: Optional[List[Dict[str, Any]]] = None,
    ) -> RecordResult:
        """Store a terminal score for one match and advance players through the bracket."""
        slots = slot_by_number(generate_bracket_structure(BRACKET_SIZE))
        async with self._transaction():
            by_number = {m.match_number: m for m in await self._load_matches()}
            match = by_number.get(match_number)
            slot = slots.get(match_number)
            if match is None or slot is None:
                raise MatchNotFound(match_number)
            if match.completed:
                raise MatchAlreadyCompleted(match_number)
            # The row may have been completed by another worker since it was read
            claimed = await self.session.execute(
                update(FinalsMatch)
                .where(FinalsMatch.id == match.id, FinalsMatch.completed.is_(False))
                .values(completed=True)
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount == 0:
                raise MatchAlreadyCompleted(match_number)

            match.score1 = score1
            match.score2 = score2
            match.completed = True
            if rounds is not None:
                match.rounds = rounds
            result = advance(match, slot, by_number)
            if result.is_complete:
                await self._set_tournament_status("completed")

        self.logger.info(
            "Tournament %s %s match %s: %s-%s, winner %s",
            self.tournament_id, self.finals.mode, match_number, score1, score2, result.winner_id,
        )
        if result.is_complete:
            self.logger.info(
                "Tournament %s %s finals complete, champion %s",
                self.tournament_id, self.finals.mode, result.champion_id,
            )
        return RecordResult(match, result.winner_id, result.loser_id, result.is_complete, result.champion_id)

    async def query(self) -> BracketView:
        """All matches plus the static topology, round labels and decided placements, for display."""
        matches = await self._load_matches()
        structure = generate_bracket_structure(BRACKET_SIZE) if matches else []
        by_number = {m.match_number: m for m in matches}
        return BracketView(
            matches, structure, ROUND_NAMES, compute_outcome(by_number), compute_placements(by_number)
        )
