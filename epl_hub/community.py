"""Match threads and the static editorial content behind the stub endpoints."""

import threading
from datetime import datetime, timezone
from typing import Optional


class ThreadBoard:
    """In-memory match discussion threads."""

    def __init__(self, threads: Optional[list[dict]] = None):
        self._lock = threading.Lock()
        self._threads = threads if threads is not None else default_threads()

    def list_threads(self) -> list[dict]:
        with self._lock:
            return [{**t, "comments": list(t["comments"])} for t in self._threads]

    def add_comment(self, thread_id: int, user: str, message: str) -> Optional[dict]:
        """Append a comment. Returns the updated thread, or None if it doesn't exist."""
        with self._lock:
            for thread in self._threads:
                if thread["id"] == thread_id:
                    thread["comments"].append({
                        "user": user,
                        "message": message,
                        "time": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
                    })
                    return {**thread, "comments": list(thread["comments"])}
        return None


def default_threads() -> list[dict]:
    return [
        {
            "id": 1,
            "matchId": 1,
            "title": "Arsenal vs Chelsea Match Thread",
            "comments": [
                {"user": "fan1", "message": "What a goal!", "time": "2026-02-10T18:10:00Z"},
                {"user": "fan2", "message": "VAR check incoming...", "time": "2026-02-10T18:12:00Z"},
            ],
        },
    ]


STATS = {
    "topScorers": [
        {"player": "Erling Haaland", "team": "Manchester City", "goals": 18},
        {"player": "Mohamed Salah", "team": "Liverpool", "goals": 15},
    ],
    "topAssisters": [
        {"player": "Kevin De Bruyne", "team": "Manchester City", "assists": 12},
        {"player": "Martin Ødegaard", "team": "Arsenal", "assists": 10},
    ],
    "cleanSheets": [
        {"player": "Alisson Becker", "team": "Liverpool", "cleanSheets": 11},
        {"player": "Ederson", "team": "Manchester City", "cleanSheets": 10},
    ],
}

HISTORICAL = {
    "seasons": [
        {"season": "2024/25", "winner": "Manchester City"},
        {"season": "2023/24", "winner": "Arsenal"},
    ],
}

MATCH_TRACKER = {
    "matchId": 1,
    "homeTeam": "Arsenal",
    "awayTeam": "Chelsea",
    "score": "2-1",
    "minute": 67,
    "commentary": [
        "67' GOAL! Arsenal take the lead!",
        "65' Substitution: Smith Rowe on for Saka.",
        "60' Yellow card for Chelsea.",
    ],
    "playerStats": [
        {"name": "Bukayo Saka", "goals": 1, "assists": 0, "minutes": 67},
        {"name": "Kai Havertz", "goals": 1, "assists": 0, "minutes": 67},
    ],
}


def team_news(team_name: Optional[str]) -> dict:
    """Headlines for a user's favourite team; generic league news without one."""
    if not team_name:
        return {
            "team": None,
            "news": [
                {"title": "Pick a favourite team to personalise your feed.", "timestamp": None},
            ],
        }
    return {
        "team": team_name,
        "news": [
            {"title": f"{team_name} prepare for the weekend fixture", "timestamp": "2026-02-10T18:00:00Z"},
            {"title": f"Injury update from the {team_name} training ground", "timestamp": "2026-02-10T12:00:00Z"},
        ],
    }
