"""HTML page routes (server-rendered templates)."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pathlib import Path

from ...database import StoreError
from ...logging import get_logger
from ..deps import Services, get_services

logger = get_logger(__name__)

# Template directory
BASE_DIR = Path(__file__).parent.parent.parent
TEMPLATES_DIR = BASE_DIR / "static" / "templates"
templates = Jinja2Templates(directory=TEMPLATES_DIR) if TEMPLATES_DIR.exists() else None

router = APIRouter()

# path -> (template, page title); access control for these is done client-side
STATIC_PAGES = {
    "/feed": ("index.html", "Feed"),
    "/live": ("live.html", "Live"),
    "/analytics": ("analytics.html", "Analytics"),
    "/community": ("community.html", "Community"),
    "/account": ("account.html", "Account"),
    "/profile": ("profile.html", "Profile"),
}


def _render(request: Request, template: str, context: dict):
    if not templates:
        return RedirectResponse("/docs")
    return templates.TemplateResponse(request, template, context)


@router.get("/", response_class=HTMLResponse)
@router.get("/auth", response_class=HTMLResponse)
async def auth_page(request: Request):
    """Sign in / register."""
    return _render(request, "auth.html", {"title": "Sign in"})


@router.get("/league", response_class=HTMLResponse)
def league_page(request: Request, services: Services = Depends(get_services)):
    """League table, rendered now and kept live over /ws/standings."""
    error = None
    try:
        rows = [r.to_dict() for r in services.table.compute()]
    except StoreError as e:
        logger.error("League page could not load standings: %s", e)
        rows, error = [], "Standings are unavailable right now."
    return _render(request, "league.html", {"title": "League table", "standings": rows, "error": error})


def _static_page(template: str, title: str):
    async def page(request: Request):
        return _render(request, template, {"title": title})
    return page


for _path, (_template, _title) in STATIC_PAGES.items():
    router.add_api_route(
        _path,
        _static_page(_template, _title),
        methods=["GET"],
        response_class=HTMLResponse,
        name=_template.removesuffix(".html") + "_page",
    )
