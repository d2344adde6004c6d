"""Registration, login and the signed-in user's profile."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, ConfigDict, Field
from starlette.concurrency import run_in_threadpool

from ...auth import AuthError
from ...community import team_news
from ...config import Config
from ...stores import UserStore
from ..deps import AUTH_COOKIE, Services, current_claims, get_services

router = APIRouter()


class RegisterIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    email: str = ""
    password: str = ""
    favorite_team: Optional[int] = Field(None, alias="favoriteTeam")


class LoginIn(BaseModel):
    email: str
    password: str


class FavoriteTeamIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    team_id: int = Field(..., alias="teamId")


@router.post("/auth/register")
async def register(body: RegisterIn, services: Services = Depends(get_services)):
    favorite_team = body.favorite_team if body.favorite_team and body.favorite_team > 0 else None
    # Checked up front so a bad team never leaves a half-registered account
    if favorite_team is not None and not await run_in_threadpool(services.teams.get, favorite_team):
        raise HTTPException(status_code=400, detail=f"Team {favorite_team} not found")

    try:
        user = await run_in_threadpool(
            services.auth.register, body.name, body.email, body.password, favorite_team
        )
    except AuthError as e:
        raise HTTPException(status_code=400, detail=str(e))

    services.worker.notify(f"New user: {user['name']}")
    return {"user": user}


@router.post("/auth/login")
def login(body: LoginIn, response: Response, services: Services = Depends(get_services)):
    try:
        token, user = services.auth.login(body.email, body.password)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))

    response.set_cookie(
        AUTH_COOKIE,
        token,
        max_age=Config.TOKEN_TTL_HOURS * 3600,
        path="/",
        httponly=True,
    )
    return {"token": token, "user": user}


@router.post("/auth/logout")
def logout(response: Response):
    response.delete_cookie(AUTH_COOKIE, path="/", httponly=True)
    return {"status": "ok"}


@router.get("/profile/me")
def me(claims: dict = Depends(current_claims), services: Services = Depends(get_services)):
    user = services.users.get(claims["uid"])
    if not user:
        raise HTTPException(status_code=404, detail="not found")
    return UserStore.public(user)


@router.post("/profile/favorite")
def set_favorite_team(
    body: FavoriteTeamIn,
    claims: dict = Depends(current_claims),
    services: Services = Depends(get_services),
):
    try:
        updated = services.users.set_favorite_team(claims["uid"], body.team_id)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Team {body.team_id} not found")
    if not updated:
        raise HTTPException(status_code=404, detail="not found")
    return {"status": "ok"}


@router.get("/feed")
def personalized_feed(claims: dict = Depends(current_claims), services: Services = Depends(get_services)):
    """News for the signed-in user's favourite team."""
    user = services.users.get(claims["uid"])
    team = user["favorite_team"] if user else None
    return team_news(team["name"] if team else None)
