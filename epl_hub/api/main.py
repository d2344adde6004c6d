"""Main FastAPI application."""

from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from ..auth import AuthService
from ..broadcast import StandingsBroadcaster
from ..cache import TTLCache
from ..community import ThreadBoard
from ..config import Config
from ..database import StoreError, init_db
from ..logging import get_logger
from ..redis_cache import ExternalCache
from ..stores import MatchStore, PlayerStore, TeamStore, UserStore
from ..table import TableService, default_tiers
from ..worker import NotificationWorker
from .deps import Services
from .routes import auth_routes, community, pages, standings, teams

logger = get_logger(__name__)

# Get paths
BASE_DIR = Path(__file__).parent.parent
STATIC_DIR = BASE_DIR / "static"


def build_services(external_cache: Optional[ExternalCache] = None) -> Services:
    """Construct the shared caches, stores and services for one app instance."""
    if external_cache is None:
        external_cache = ExternalCache.from_url(Config.REDIS_URL, timeout=Config.REDIS_TIMEOUT)

    teams_store = TeamStore()
    users = UserStore()
    table_cache = TTLCache()

    return Services(
        teams=teams_store,
        players=PlayerStore(),
        matches=MatchStore(),
        users=users,
        auth=AuthService(users, Config.JWT_SECRET, timedelta(hours=Config.TOKEN_TTL_HOURS)),
        table_cache=table_cache,
        external_cache=external_cache,
        table=TableService(teams_store, default_tiers(external_cache, table_cache), ttl=Config.TABLE_CACHE_TTL),
        broadcaster=StandingsBroadcaster(send_timeout=Config.SUBSCRIBER_SEND_TIMEOUT),
        worker=NotificationWorker(),
        threads=ThreadBoard(),
        jwt_secret=Config.JWT_SECRET,
    )


def create_app(external_cache: Optional[ExternalCache] = None) -> FastAPI:
    """Build the application. Shared state lives for the app's lifespan."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        for problem in Config.validate():
            logger.warning("Config: %s", problem)

        init_db()
        services = build_services(external_cache)
        services.worker.start()
        app.state.services = services
        logger.info("EPL Hub started")
        try:
            yield
        finally:
            await services.broadcaster.close_all()
            await services.worker.stop()
            services.external_cache.close()
            logger.info("EPL Hub stopped")

    app = FastAPI(
        title="EPL Hub",
        description="Football league site - teams, players, fixtures and a live league table",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Mount static files
    if STATIC_DIR.exists():
        app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.error("Store error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    # Include routers
    app.include_router(pages.router, tags=["Pages"])
    app.include_router(standings.router, tags=["Standings"])
    app.include_router(teams.router, prefix="/api", tags=["Teams"])
    app.include_router(auth_routes.router, prefix="/api", tags=["Auth"])
    app.include_router(community.router, prefix="/api", tags=["Community"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        services: Services = app.state.services
        return {
            "status": "ok",
            "external_cache": services.external_cache.ping() if services.external_cache.configured else None,
            "subscribers": services.broadcaster.subscriber_count,
        }

    @app.get("/ping")
    async def ping():
        return {"message": "pong"}

    return app


app = create_app()


def run_server():
    """Run the development server."""
    import uvicorn
    uvicorn.run(
        "epl_hub.api.main:app",
        host=Config.API_HOST,
        port=Config.API_PORT,
        reload=Config.DEBUG,
    )


if __name__ == "__main__":
    run_server()
