"""Shared objects built once at startup and handed to routes as dependencies."""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request

from ..auth import AuthService
from ..broadcast import StandingsBroadcaster
from ..cache import TTLCache
from ..community import ThreadBoard
from ..redis_cache import ExternalCache
from ..security import TokenError, decode_token
from ..stores import MatchStore, PlayerStore, TeamStore, UserStore
from ..table import TableService
from ..worker import NotificationWorker

AUTH_COOKIE = "auth_token"


@dataclass
class Services:
    """Everything a request handler may need, owned by the app's lifespan."""
    teams: TeamStore
    players: PlayerStore
    matches: MatchStore
    users: UserStore
    auth: AuthService
    table_cache: TTLCache
    external_cache: ExternalCache
    table: TableService
    broadcaster: StandingsBroadcaster
    worker: NotificationWorker
    threads: ThreadBoard
    jwt_secret: str


def get_services(request: Request) -> Services:
    return request.app.state.services


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    return request.cookies.get(AUTH_COOKIE) or None


def current_claims(request: Request, services: Services = Depends(get_services)) -> dict:
    """Claims of the caller's token (Authorization header, then the auth cookie)."""
    token = _bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="missing token")
    try:
        return decode_token(services.jwt_secret, token)
    except TokenError:
        raise HTTPException(status_code=401, detail="invalid token")


def require_admin(claims: dict = Depends(current_claims)) -> dict:
    if claims.get("role") != "admin":
        raise HTTPException(status_code=403, detail="admin only")
    return claims
