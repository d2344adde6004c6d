"""Team, player and match endpoints, plus the admin writes that feed the table."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from ..deps import Services, get_services, require_admin
from .standings import publish_standings

router = APIRouter()


class TeamIn(BaseModel):
    id: Optional[int] = None
    name: Optional[str] = None
    short_name: Optional[str] = None
    logo_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    points: Optional[int] = Field(None, ge=0)
    matches_played: Optional[int] = Field(None, ge=0)
    goal_diff: Optional[int] = None


class StatLineIn(BaseModel):
    season: str
    goals: int = Field(0, ge=0)
    assists: int = Field(0, ge=0)
    clean_sheets: int = Field(0, ge=0)
    minutes_played: int = Field(0, ge=0)


class PlayerIn(BaseModel):
    id: Optional[int] = None
    name: Optional[str] = None
    team_id: Optional[int] = None
    position: Optional[str] = None
    stats: list[StatLineIn] = []


class MatchResultIn(BaseModel):
    home: int = Field(..., ge=0)
    away: int = Field(..., ge=0)
    status: str = "finished"


@router.get("/teams")
def list_teams(services: Services = Depends(get_services)):
    """All teams, alphabetically."""
    return services.teams.list_all()


@router.get("/players")
def list_players(
    team_id: Optional[int] = Query(None, alias="teamId"),
    services: Services = Depends(get_services),
):
    """
    List players with their per-season stats.

    Args:
        team_id: Optional team filter
    """
    return services.players.list_all(team_id)


@router.get("/matches")
def list_matches(services: Services = Depends(get_services)):
    """Fixtures and results, earliest first."""
    return services.matches.list_all()


@router.post("/admin/teams")
async def upsert_team(
    body: TeamIn,
    services: Services = Depends(get_services),
    _admin: dict = Depends(require_admin),
):
    """Create or update a team. Totals edited here move the live table."""
    try:
        team = await run_in_threadpool(services.teams.upsert, body.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await publish_standings(services)
    return team


@router.post("/admin/players")
def upsert_player(
    body: PlayerIn,
    services: Services = Depends(get_services),
    _admin: dict = Depends(require_admin),
):
    """Create or update a player and their stat lines."""
    try:
        return services.players.upsert(body.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/admin/matches/{match_id}/result")
async def update_match_result(
    match_id: int,
    body: MatchResultIn,
    services: Services = Depends(get_services),
    _admin: dict = Depends(require_admin),
):
    """
    Record a match score.

    Finishing a match updates both teams' totals; the recomputed table is
    pushed to every live standings subscriber.
    """
    try:
        match = await run_in_threadpool(
            services.matches.update_result, match_id, body.home, body.away, body.status
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if match is None:
        raise HTTPException(status_code=404, detail=f"Match {match_id} not found")

    rows = await publish_standings(services)
    return {"status": "ok", "match": match, "standings": [r.to_dict() for r in rows]}
