"""API routes for tournaments, players and qualification standings."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import delete, select

from smkc.models import Player, Qualification, Tournament, User
from smkc.models.base import async_session_factory
from smkc.services.finals_config import FINALS_CONFIGS
from smkc.services.finals_session import BracketSession
from web.auth import require_admin_user

router = APIRouter(prefix="/api", tags=["tournaments"])


# --- Pydantic schemas ---


class TournamentCreate(BaseModel):
    name: str


class PlayerCreate(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    name: str
    nickname: Optional[str] = None


class StandingRow(BaseModel):
    player_id: str
    name: Optional[str] = None  # Used when the player does not exist yet
    score: int = 0
    points: int = 0
    win_rounds: int = 0


class StandingsUpdate(BaseModel):
    standings: list[StandingRow]


def _tournament_dict(t: Tournament) -> dict:
    return {
        "id": t.id,
        "name": t.name,
        "status": t.status,
        "created_at": t.created_at.isoformat() if t.created_at else None,
    }


def _finals_config_or_404(mode: str):
    finals = FINALS_CONFIGS.get(mode)
    if not finals:
        raise HTTPException(404, f"Unknown mode '{mode}'")
    return finals


# --- Tournaments ---


@router.post("/tournaments")
async def create_tournament(body: TournamentCreate):
    async with async_session_factory() as session:
        t = Tournament(name=body.name, status="open")
        session.add(t)
        await session.commit()
        await session.refresh(t)
        return _tournament_dict(t)


@router.get("/tournaments")
async def list_tournaments():
    async with async_session_factory() as session:
        result = await session.execute(select(Tournament).order_by(Tournament.id.desc()))
        return [_tournament_dict(t) for t in result.scalars().all()]


@router.get("/tournaments/{tournament_id}")
async def get_tournament(tournament_id: int):
    async with async_session_factory() as session:
        t = await session.get(Tournament, tournament_id)
        if not t:
            raise HTTPException(404, "Tournament not found")
        return _tournament_dict(t)


# --- Players ---


@router.post("/players")
async def create_player(body: PlayerCreate, user: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        if await session.get(Player, body.id):
            raise HTTPException(400, f"Player '{body.id}' already exists")
        p = Player(id=body.id, name=body.name, nickname=body.nickname)
        session.add(p)
        await session.commit()
        return {"id": p.id, "name": p.name, "nickname": p.nickname}


# --- Qualification standings ---


@router.put("/tournaments/{tournament_id}/{mode}/qualifications")
async def replace_qualifications(
    tournament_id: int, mode: str, body: StandingsUpdate, user: User = Depends(require_admin_user)
):
    """Replace the qualification standings for one mode. Unknown players are created on the fly."""
    _finals_config_or_404(mode)
    async with async_session_factory() as session:
        t = await session.get(Tournament, tournament_id)
        if not t:
            raise HTTPException(404, "Tournament not found")
        player_ids = [row.player_id for row in body.standings]
        if len(set(player_ids)) != len(player_ids):
            raise HTTPException(400, "Each player may appear only once in the standings")
        await session.execute(
            delete(Qualification).where(
                Qualification.tournament_id == tournament_id,
                Qualification.mode == mode,
            )
        )
        for row in body.standings:
            if not await session.get(Player, row.player_id):
                session.add(Player(id=row.player_id, name=row.name or row.player_id))
            session.add(Qualification(
                tournament_id=tournament_id,
                mode=mode,
                player_id=row.player_id,
                score=row.score,
                points=row.points,
                win_rounds=row.win_rounds,
            ))
        await session.commit()
        return {"ok": True, "count": len(body.standings)}


@router.get("/tournaments/{tournament_id}/{mode}/qualifications")
async def list_qualifications(tournament_id: int, mode: str):
    """Standings ranked the way the finals bracket seeds them."""
    finals = _finals_config_or_404(mode)
    async with async_session_factory() as session:
        t = await session.get(Tournament, tournament_id)
        if not t:
            raise HTTPException(404, "Tournament not found")
        ranked = await BracketSession(session, tournament_id, finals).ranked_entrants()
        return [{"seed": i + 1, "player_id": pid} for i, pid in enumerate(ranked)]
