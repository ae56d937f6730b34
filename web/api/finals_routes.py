"""Finals router factory.

One router per mode (BM, MR, GP), all backed by the same BracketSession. The
FinalsConfig decides the GET response shape, the score field names and any
extra fields stored with a result.

GET styles:
  - grouped   (BM): matches split into winners / losers / grand final lists
  - simple    (MR): flat match list
  - paginated (GP): paged match list with meta
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from smkc.models import FinalsMatch, Tournament, User
from smkc.models.base import async_session_factory
from smkc.services.bracket_topology import BRACKET_SIZE, generate_bracket_structure
from smkc.services.errors import (
    BracketError,
    BracketInvariantError,
    MatchAlreadyCompleted,
    MatchNotFound,
)
from smkc.services.finals_config import FINALS_CONFIGS, FinalsConfig
from smkc.services.finals_session import BracketSession
from smkc.services.seeding import seeded_entrants
from web.auth import require_admin_user

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


class GenerateFinalsRequest(BaseModel):
    top_n: int = BRACKET_SIZE


class FinalsScoreUpdate(BaseModel):
    match_number: int
    score1: Optional[int] = None
    score2: Optional[int] = None
    points1: Optional[int] = None
    points2: Optional[int] = None
    rounds: Optional[list[dict[str, Any]]] = None


def _http_error(e: BracketError) -> HTTPException:
    if isinstance(e, MatchNotFound):
        return HTTPException(404, str(e))
    if isinstance(e, MatchAlreadyCompleted):
        return HTTPException(409, str(e))
    return HTTPException(400, str(e))


def _page_params(page: int, limit: int) -> tuple[int, int]:
    return max(1, page), min(MAX_PAGE_SIZE, max(1, limit))


def create_finals_router(finals: FinalsConfig) -> APIRouter:
    """Build GET/POST/PUT finals endpoints for one mode."""
    router = APIRouter(prefix="/api", tags=[f"{finals.mode}-finals"])
    logger = logging.getLogger(finals.logger_name)
    path = f"/tournaments/{{tournament_id}}/{finals.mode}/finals"
    field1, field2 = finals.score_fields

    def match_dict(m: FinalsMatch) -> dict:
        data = m.to_dict()
        data[field1] = data.pop("score1")
        data[field2] = data.pop("score2")
        return data

    async def _get_tournament(session, tournament_id: int) -> Tournament:
        t = await session.get(Tournament, tournament_id)
        if not t:
            raise HTTPException(404, "Tournament not found")
        return t

    @router.get(path)
    async def get_finals(tournament_id: int, page: int = 1, limit: int = DEFAULT_PAGE_SIZE):
        """Finals bracket: matches, topology, round names and decided placements."""
        async with async_session_factory() as session:
            await _get_tournament(session, tournament_id)
            try:
                view = await BracketSession(session, tournament_id, finals).query()
            except Exception:
                logger.exception(finals.get_error_message)
                raise HTTPException(500, finals.get_error_message)
        common = {
            "bracket_structure": [s.to_dict() for s in view.structure],
            "round_names": view.round_names,
            "is_complete": view.outcome.is_complete,
            "champion_id": view.outcome.champion_id,
            "placements": [p._asdict() for p in view.placements],
        }
        matches = [match_dict(m) for m in view.matches]
        if finals.get_style == "paginated":
            page, limit = _page_params(page, limit)
            total = len(matches)
            start = (page - 1) * limit
            return {
                "data": matches[start:start + limit],
                "meta": {
                    "total": total,
                    "page": page,
                    "limit": limit,
                    "total_pages": (total + limit - 1) // limit,
                },
                **common,
            }
        if finals.get_style == "grouped":
            return {
                "matches": matches,
                "winners_matches": [m for m in matches if m["round"].startswith("winners_")],
                "losers_matches": [m for m in matches if m["round"].startswith("losers_")],
                "grand_final_matches": [m for m in matches if m["round"].startswith("grand_final")],
                **common,
            }
        return {"matches": matches, **common}

    @router.post(path)
    async def create_finals(
        tournament_id: int,
        body: Optional[GenerateFinalsRequest] = None,
        user: User = Depends(require_admin_user),
    ):
        """Create the 8-player bracket from qualification standings, replacing any existing one."""
        top_n = body.top_n if body else BRACKET_SIZE
        async with async_session_factory() as session:
            await _get_tournament(session, tournament_id)
            bracket = BracketSession(session, tournament_id, finals)
            try:
                matches = await bracket.generate_from_standings(top_n)
            except BracketError as e:
                raise _http_error(e)
            except Exception:
                logger.exception(finals.post_error_message)
                raise HTTPException(500, finals.post_error_message)
        seeded = [
            {"seed": i + 1, "player_id": pid}
            for i, pid in enumerate(seeded_entrants(generate_bracket_structure(BRACKET_SIZE), matches))
        ]
        return {
            "message": f"{finals.title} finals bracket created",
            "matches": [match_dict(m) for m in matches],
            "seeded_players": seeded,
        }

    @router.put(path)
    async def update_finals_match(
        tournament_id: int,
        body: FinalsScoreUpdate,
        user: User = Depends(require_admin_user),
    ):
        """Record a match score and advance players through the bracket."""
        score1, score2 = getattr(body, field1), getattr(body, field2)
        if score1 is None or score2 is None:
            raise HTTPException(400, f"match_number, {field1}, and {field2} are required")
        rounds = body.rounds if "rounds" in finals.additional_fields else None
        async with async_session_factory() as session:
            await _get_tournament(session, tournament_id)
            try:
                result = await BracketSession(session, tournament_id, finals).record_result(
                    body.match_number, score1, score2, rounds=rounds
                )
            except BracketError as e:
                raise _http_error(e)
            except BracketInvariantError:
                logger.exception("Bracket invariant violated updating match %s", body.match_number)
                raise HTTPException(500, "Failed to update match")
        return {
            "match": match_dict(result.match),
            "winner_id": result.winner_id,
            "loser_id": result.loser_id,
            "is_complete": result.is_complete,
            "champion_id": result.champion_id,
        }

    return router


finals_routers = [create_finals_router(c) for c in FINALS_CONFIGS.values()]
