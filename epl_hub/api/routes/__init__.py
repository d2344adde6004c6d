"""API routes."""

from . import auth_routes, community, pages, standings, teams

__all__ = ["auth_routes", "community", "pages", "standings", "teams"]
