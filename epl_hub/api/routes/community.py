"""Match threads, season stats and the match tracker."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ...community import HISTORICAL, MATCH_TRACKER, STATS
from ..deps import Services, get_services

router = APIRouter()


class CommentIn(BaseModel):
    threadId: int
    user: str
    message: str


@router.get("/threads")
async def list_threads(services: Services = Depends(get_services)):
    return services.threads.list_threads()


@router.post("/threads/comment")
async def post_comment(body: CommentIn, services: Services = Depends(get_services)):
    thread = services.threads.add_comment(body.threadId, body.user, body.message)
    if thread is None:
        raise HTTPException(status_code=404, detail="thread not found")
    return thread


@router.get("/stats")
def stats(services: Services = Depends(get_services)):
    """Leaderboards; team standings come from the live table."""
    rows = services.table.compute()
    return {
        **STATS,
        "teamStandings": [{"team": r.team_name, "points": r.points} for r in rows],
    }


@router.get("/historical")
async def historical():
    return HISTORICAL


@router.get("/matchtracker")
async def match_tracker():
    return MATCH_TRACKER
