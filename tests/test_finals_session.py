"""Tests for BracketSession against the database."""
import asyncio

import pytest
from sqlalchemy import func, select

from bracket_helpers import PLAYERS, seed_of
from smkc.models import FinalsMatch, Player, Qualification, Tournament
from smkc.models.base import async_session_factory
from smkc.services import finals_session
from smkc.services.errors import (
    InsufficientEntrants,
    InvalidEntrantCount,
    MatchAlreadyCompleted,
    MatchNotFound,
    MatchNotReady,
    NoWinner,
    UnsupportedBracketSize,
)
from smkc.services.finals_config import BM_FINALS, GP_FINALS, MR_FINALS
from smkc.services.finals_session import BracketSession


async def _add_standings(session, tournament_id, mode, rows):
    for pid, score, points in rows:
        if not await session.get(Player, pid):
            session.add(Player(id=pid, name=pid.upper()))
        session.add(Qualification(
            tournament_id=tournament_id, mode=mode, player_id=pid, score=score, points=points,
        ))
    await session.commit()


async def _play_to_grand_final(bracket: BracketSession):
    """Winners: lower seed wins 3-0. Losers: player present wins 3-1. Stops before the Grand Final."""
    view = await bracket.query()
    by_number = {m.match_number: m for m in view.matches}
    for number in range(1, 16):
        m = by_number[number]
        if m.player1_id is None and m.player2_id is None:
            continue
        if number <= 7:
            score = (3, 0) if seed_of(m.player1_id) < seed_of(m.player2_id) else (0, 3)
        else:
            score = (3, 1) if m.player1_id is not None else (1, 3)
        await bracket.record_result(number, *score)


async def test_generate_creates_seeded_bracket(db_session, tournament):
    bracket = BracketSession(db_session, tournament.id, BM_FINALS)
    matches = await bracket.generate(PLAYERS)
    assert len(matches) == 17
    view = await bracket.query()
    by_number = {m.match_number: m for m in view.matches}
    assert sorted(by_number) == list(range(1, 17)) + [18]
    assert (by_number[1].player1_id, by_number[1].player2_id) == ("p1", "p8")
    assert (by_number[4].player1_id, by_number[4].player2_id) == ("p3", "p6")
    assert by_number[4].player1_origin == "winners"
    assert all(m.player1_id is None for n, m in by_number.items() if n > 4)
    assert not any(m.completed for m in view.matches)
    assert len(view.structure) == 17
    assert view.round_names["losers_final"] == "Losers Final"
    await db_session.refresh(tournament)
    assert tournament.status == "in_progress"


@pytest.mark.parametrize("count", [7, 9])
async def test_generate_rejects_wrong_entrant_count(db_session, tournament, count):
    bracket = BracketSession(db_session, tournament.id, BM_FINALS)
    entrants = [f"p{i}" for i in range(1, count + 1)]
    with pytest.raises(InvalidEntrantCount):
        await bracket.generate(entrants)
    assert (await bracket.query()).matches == []


async def test_regenerate_replaces_existing_bracket(db_session, tournament):
    bracket = BracketSession(db_session, tournament.id, BM_FINALS)
    await bracket.generate(PLAYERS)
    await bracket.record_result(1, 3, 0)
    await bracket.generate(list(reversed(PLAYERS)))
    count = await db_session.scalar(
        select(func.count()).select_from(FinalsMatch).where(FinalsMatch.tournament_id == tournament.id)
    )
    assert count == 17
    view = await bracket.query()
    first = view.matches[0]
    assert (first.player1_id, first.player2_id) == ("p8", "p1")
    assert not first.completed
    assert first.score1 is None


async def test_modes_are_independent(db_session, tournament):
    await BracketSession(db_session, tournament.id, BM_FINALS).generate(PLAYERS)
    mr = BracketSession(db_session, tournament.id, MR_FINALS)
    assert (await mr.query()).matches == []
    assert (await mr.query()).structure == []
    with pytest.raises(MatchNotFound):
        await mr.record_result(1, 3, 0)


async def test_generate_from_standings_ranks_qualifiers(db_session, tournament):
    rows = [(f"q{i}", 10 - i, 0) for i in range(10)]
    # q9 ties q8 on score but has more points, so it ranks ahead
    rows[9] = ("q9", 2, 5)
    await _add_standings(db_session, tournament.id, "gp", rows)
    bracket = BracketSession(db_session, tournament.id, GP_FINALS)
    assert (await bracket.ranked_entrants())[:3] == ["q0", "q1", "q2"]
    matches = await bracket.generate_from_standings()
    by_number = {m.match_number: m for m in matches}
    assert (by_number[1].player1_id, by_number[1].player2_id) == ("q0", "q7")
    assert (by_number[2].player1_id, by_number[2].player2_id) == ("q3", "q4")


async def test_generate_from_standings_needs_eight(db_session, tournament):
    await _add_standings(db_session, tournament.id, "bm", [(f"s{i}", i, 0) for i in range(5)])
    bracket = BracketSession(db_session, tournament.id, BM_FINALS)
    with pytest.raises(InsufficientEntrants) as exc:
        await bracket.generate_from_standings()
    assert (exc.value.required, exc.value.found) == (8, 5)


async def test_generate_from_standings_rejects_other_sizes(db_session, tournament):
    bracket = BracketSession(db_session, tournament.id, BM_FINALS)
    with pytest.raises(UnsupportedBracketSize):
        await bracket.generate_from_standings(top_n=16)


async def test_record_result_advances_and_persists(db_session, tournament):
    bracket = BracketSession(db_session, tournament.id, BM_FINALS)
    await bracket.generate(PLAYERS)
    result = await bracket.record_result(1, 3, 2)
    assert (result.winner_id, result.loser_id) == ("p1", "p8")
    assert result.match.completed
    assert not result.is_complete

    async with async_session_factory() as other:
        view = await BracketSession(other, tournament.id, BM_FINALS).query()
        by_number = {m.match_number: m for m in view.matches}
        assert (by_number[1].score1, by_number[1].score2) == (3, 2)
        assert by_number[5].player1_id == "p1"
        assert by_number[9].player1_id == "p8"


@pytest.mark.parametrize("number", [17, 99])
async def test_record_result_unknown_match(db_session, tournament, number):
    bracket = BracketSession(db_session, tournament.id, BM_FINALS)
    await bracket.generate(PLAYERS)
    with pytest.raises(MatchNotFound):
        await bracket.record_result(number, 3, 0)


async def test_record_result_no_winner_leaves_bracket_untouched(db_session, tournament):
    bracket = BracketSession(db_session, tournament.id, BM_FINALS)
    await bracket.generate(PLAYERS)
    with pytest.raises(NoWinner):
        await bracket.record_result(1, 2, 1)
    view = await bracket.query()
    first = view.matches[0]
    assert not first.completed
    assert first.score1 is None
    assert view.matches[4].player1_id is None


async def test_record_result_only_once(db_session, tournament):
    bracket = BracketSession(db_session, tournament.id, BM_FINALS)
    await bracket.generate(PLAYERS)
    await bracket.record_result(1, 3, 0)
    with pytest.raises(MatchAlreadyCompleted):
        await bracket.record_result(1, 0, 3)
    view = await bracket.query()
    assert view.matches[4].player1_id == "p1"
    assert view.matches[4].player2_id is None


async def test_concurrent_submissions_for_same_match(db_session, tournament):
    await BracketSession(db_session, tournament.id, BM_FINALS).generate(PLAYERS)

    async def submit(score1, score2):
        async with async_session_factory() as session:
            return await BracketSession(session, tournament.id, BM_FINALS).record_result(1, score1, score2)

    results = await asyncio.gather(submit(3, 0), submit(0, 3), return_exceptions=True)
    errors = [r for r in results if isinstance(r, Exception)]
    assert len(errors) == 1
    assert isinstance(errors[0], MatchAlreadyCompleted)


async def test_end_to_end_top_seed_wins(db_session, tournament):
    bracket = BracketSession(db_session, tournament.id, BM_FINALS)
    await bracket.generate(PLAYERS)
    await _play_to_grand_final(bracket)
    result = await bracket.record_result(16, 3, 0)
    assert result.is_complete
    assert result.champion_id == "p1"

    view = await bracket.query()
    reset = view.matches[-1]
    assert reset.match_number == 18
    assert (reset.player1_id, reset.player2_id) == (None, None)
    assert view.outcome == (True, "p1")
    assert [(p.player_id, p.position) for p in view.placements] == [
        ("p1", 1), ("p2", 2), ("p3", 3), ("p8", 4), ("p5", 5), ("p7", 7), ("p6", 9),
    ]
    assert view.placements[0].points == 2000
    await db_session.refresh(tournament)
    assert tournament.status == "completed"


async def test_end_to_end_with_reset(db_session, tournament):
    bracket = BracketSession(db_session, tournament.id, MR_FINALS)
    await bracket.generate(PLAYERS)
    await _play_to_grand_final(bracket)

    result = await bracket.record_result(16, 1, 3)
    assert result.winner_id == "p2"
    assert not result.is_complete
    view = await bracket.query()
    reset = view.matches[-1]
    assert (reset.player1_id, reset.player2_id) == ("p2", "p1")
    assert view.outcome == (False, None)

    rounds = [{"course": "MC1", "winner": 1}, {"course": "DP1", "winner": 2}]
    result = await bracket.record_result(18, 3, 2, rounds=rounds)
    assert result.is_complete
    assert result.champion_id == "p2"
    assert result.match.rounds == rounds
    t = await db_session.get(Tournament, tournament.id)
    assert t.status == "completed"


async def test_stale_read_cannot_overwrite_recorded_result(db_session, tournament, monkeypatch):
    """A worker that read match 1 before another worker scored it is refused by the database."""
    # Separate workers do not share the in-process lock
    monkeypatch.setattr(finals_session, "_lock_for", lambda key: asyncio.Lock())
    await BracketSession(db_session, tournament.id, BM_FINALS).generate(PLAYERS)

    async with async_session_factory() as stale_session, async_session_factory() as other:
        stale = BracketSession(stale_session, tournament.id, BM_FINALS)
        before = await stale.query()
        assert not before.matches[0].completed
        await BracketSession(other, tournament.id, BM_FINALS).record_result(1, 3, 0)
        with pytest.raises(MatchAlreadyCompleted):
            await stale.record_result(1, 0, 3)

    async with async_session_factory() as fresh:
        view = await BracketSession(fresh, tournament.id, BM_FINALS).query()
        by_number = {m.match_number: m for m in view.matches}
        assert (by_number[1].score1, by_number[1].score2) == (3, 0)
        assert (by_number[5].player1_id, by_number[5].player2_id) == ("p1", None)
        assert (by_number[9].player1_id, by_number[9].player2_id) == ("p8", None)


async def test_grand_final_not_playable_before_losers_final(db_session, tournament):
    bracket = BracketSession(db_session, tournament.id, BM_FINALS)
    await bracket.generate(PLAYERS)
    for number in range(1, 8):
        await bracket.record_result(number, 3, 0)
    with pytest.raises(MatchNotReady):
        await bracket.record_result(16, 3, 0)

    view = await bracket.query()
    gf = view.matches[15]
    assert gf.match_number == 16
    assert not gf.completed
    assert view.outcome == (False, None)
    await db_session.refresh(tournament)
    assert tournament.status == "in_progress"


async def test_lock_registry_drops_idle_locks():
    key = (-1, "bm", "finals")
    lock = finals_session._lock_for(key)
    assert finals_session._lock_for(key) is lock
    del lock
    assert key not in finals_session._locks
