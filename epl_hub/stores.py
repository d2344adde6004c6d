"""Query helpers over the sqlite store, one class per table family."""

import sqlite3
from contextlib import contextmanager
from typing import Any, Generator, Optional

from .config import MATCH_STATUSES
from .database import StoreError, get_connection
from .logging import get_logger

logger = get_logger(__name__)

TEAM_FIELDS = (
    "name",
    "short_name",
    "logo_url",
    "primary_color",
    "secondary_color",
    "points",
    "matches_played",
    "goal_diff",
)
PLAYER_FIELDS = ("name", "team_id", "position")
STAT_FIELDS = ("goals", "assists", "clean_sheets", "minutes_played")


@contextmanager
def _store_call(action: str) -> Generator[sqlite3.Connection, None, None]:
    """Open a connection and translate sqlite failures into store errors.

    Integrity violations become ValueError so handlers can answer 400.
    """
    try:
        with get_connection() as conn:
            yield conn
    except sqlite3.IntegrityError as e:
        raise ValueError(f"{action}: {e}") from e
    except sqlite3.Error as e:
        logger.error("%s failed: %s", action, e)
        raise StoreError(f"{action} failed: {e}") from e


def match_points(goals_for: int, goals_against: int) -> int:
    """League points earned by one side of a finished match."""
    if goals_for > goals_against:
        return 3
    if goals_for == goals_against:
        return 1
    return 0


class TeamStore:
    """Teams and their running league totals."""

    def list_all(self) -> list[dict]:
        with _store_call("list teams") as conn:
            rows = conn.execute("SELECT * FROM teams ORDER BY name").fetchall()
            return [dict(r) for r in rows]

    def list_by_standing(self) -> list[dict]:
        """All teams ordered by points, then goal difference (both descending)."""
        with _store_call("list teams by standing") as conn:
            rows = conn.execute(
                """
                SELECT id, name, matches_played, points, goal_diff
                FROM teams
                ORDER BY points DESC, goal_diff DESC, id
                """
            ).fetchall()
            return [dict(r) for r in rows]

    def get(self, team_id: int) -> Optional[dict]:
        with _store_call("get team") as conn:
            row = conn.execute("SELECT * FROM teams WHERE id = ?", (team_id,)).fetchone()
            return dict(row) if row else None

    def upsert(self, team: dict[str, Any]) -> dict:
        """Insert a team, or update it in place when ``team['id']`` exists."""
        values = {k: team[k] for k in TEAM_FIELDS if team.get(k) is not None}
        with _store_call("save team") as conn:
            team_id = team.get("id")
            exists = team_id is not None and conn.execute(
                "SELECT 1 FROM teams WHERE id = ?", (team_id,)
            ).fetchone()

            if exists:
                if values:
                    assignments = ", ".join(f"{k} = ?" for k in values)
                    conn.execute(
                        f"UPDATE teams SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                        [*values.values(), team_id],
                    )
            else:
                if "name" not in values:
                    raise ValueError("team name is required")
                if team_id is not None:
                    values["id"] = team_id
                columns = ", ".join(values)
                placeholders = ", ".join("?" for _ in values)
                cursor = conn.execute(
                    f"INSERT INTO teams ({columns}) VALUES ({placeholders})",
                    list(values.values()),
                )
                team_id = cursor.lastrowid

            conn.commit()
            return dict(conn.execute("SELECT * FROM teams WHERE id = ?", (team_id,)).fetchone())


class PlayerStore:
    """Players and their per-season stat lines."""

    def list_all(self, team_id: Optional[int] = None) -> list[dict]:
        with _store_call("list players") as conn:
            query = "SELECT * FROM players"
            params: list[Any] = []
            if team_id:
                query += " WHERE team_id = ?"
                params.append(team_id)
            query += " ORDER BY name"
            players = [dict(r) for r in conn.execute(query, params).fetchall()]

            if not players:
                return []

            ids = [p["id"] for p in players]
            placeholders = ", ".join("?" for _ in ids)
            stats = conn.execute(
                f"SELECT * FROM player_stats WHERE player_id IN ({placeholders}) ORDER BY season",
                ids,
            ).fetchall()

        by_player: dict[int, list[dict]] = {}
        for s in stats:
            by_player.setdefault(s["player_id"], []).append(dict(s))
        for p in players:
            p["stats"] = by_player.get(p["id"], [])
        return players

    def upsert(self, player: dict[str, Any]) -> dict:
        """Save a player and any stat lines given under ``stats``."""
        values = {k: player[k] for k in PLAYER_FIELDS if player.get(k) is not None}
        with _store_call("save player") as conn:
            player_id = player.get("id")
            exists = player_id is not None and conn.execute(
                "SELECT 1 FROM players WHERE id = ?", (player_id,)
            ).fetchone()

            if exists:
                if values:
                    assignments = ", ".join(f"{k} = ?" for k in values)
                    conn.execute(
                        f"UPDATE players SET {assignments} WHERE id = ?",
                        [*values.values(), player_id],
                    )
            else:
                if "name" not in values:
                    raise ValueError("player name is required")
                if player_id is not None:
                    values["id"] = player_id
                columns = ", ".join(values)
                placeholders = ", ".join("?" for _ in values)
                cursor = conn.execute(
                    f"INSERT INTO players ({columns}) VALUES ({placeholders})",
                    list(values.values()),
                )
                player_id = cursor.lastrowid

            for stat in player.get("stats") or []:
                conn.execute(
                    """
                    INSERT INTO player_stats (player_id, season, goals, assists, clean_sheets, minutes_played)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(player_id, season) DO UPDATE SET
                        goals = excluded.goals,
                        assists = excluded.assists,
                        clean_sheets = excluded.clean_sheets,
                        minutes_played = excluded.minutes_played
                    """,
                    (player_id, stat["season"], *(stat.get(k, 0) for k in STAT_FIELDS)),
                )

            conn.commit()
            saved = dict(conn.execute("SELECT * FROM players WHERE id = ?", (player_id,)).fetchone())
            saved["stats"] = [
                dict(r)
                for r in conn.execute(
                    "SELECT * FROM player_stats WHERE player_id = ? ORDER BY season", (player_id,)
                ).fetchall()
            ]
            return saved


class MatchStore:
    """Fixtures and results. Finished results feed the team totals."""

    _SELECT = """
        SELECT
            m.*,
            ht.name as home_team,
            awt.name as away_team
        FROM matches m
        JOIN teams ht ON m.home_team_id = ht.id
        JOIN teams awt ON m.away_team_id = awt.id
    """

    def list_all(self) -> list[dict]:
        with _store_call("list matches") as conn:
            rows = conn.execute(self._SELECT + " ORDER BY m.date, m.id").fetchall()
            return [dict(r) for r in rows]

    def get(self, match_id: int) -> Optional[dict]:
        with _store_call("get match") as conn:
            row = conn.execute(self._SELECT + " WHERE m.id = ?", (match_id,)).fetchone()
            return dict(row) if row else None

    def update_result(self, match_id: int, home: int, away: int, status: str) -> Optional[dict]:
        """
        Record a score and keep the team totals in step with it.

        A previously counted result is reversed before the new one is
        applied, so correcting a score never double counts.

        Returns:
            The updated match, or None if no such match exists
        """
        if status not in MATCH_STATUSES:
            raise ValueError(f"status must be one of {', '.join(MATCH_STATUSES)}")

        with _store_call("update match result") as conn:
            # Hold the write lock from the read on, so concurrent corrections serialize
            conn.execute("BEGIN IMMEDIATE")
            match = conn.execute("SELECT * FROM matches WHERE id = ?", (match_id,)).fetchone()
            if not match:
                conn.rollback()
                return None

            if match["status"] == "finished" and match["home_score"] is not None and match["away_score"] is not None:
                self._apply(conn, match, match["home_score"], match["away_score"], -1)

            conn.execute(
                "UPDATE matches SET home_score = ?, away_score = ?, status = ? WHERE id = ?",
                (home, away, status, match_id),
            )

            if status == "finished":
                self._apply(conn, match, home, away, 1)

            conn.commit()
            return dict(conn.execute(self._SELECT + " WHERE m.id = ?", (match_id,)).fetchone())

    @staticmethod
    def _apply(conn: sqlite3.Connection, match: sqlite3.Row, home: int, away: int, sign: int) -> None:
        sides = (
            (match["home_team_id"], home, away),
            (match["away_team_id"], away, home),
        )
        for team_id, goals_for, goals_against in sides:
            conn.execute(
                """
                UPDATE teams SET
                    matches_played = matches_played + ?,
                    points = points + ?,
                    goal_diff = goal_diff + ?,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (
                    sign,
                    sign * match_points(goals_for, goals_against),
                    sign * (goals_for - goals_against),
                    team_id,
                ),
            )


class UserStore:
    """Accounts. ``password_hash`` never leaves this class via ``public``."""

    def get_by_email(self, email: str) -> Optional[dict]:
        with _store_call("get user") as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
            return dict(row) if row else None

    def get(self, user_id: int) -> Optional[dict]:
        with _store_call("get user") as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            if not row:
                return None
            user = dict(row)
            team = None
            if user["favorite_team_id"]:
                team_row = conn.execute(
                    "SELECT * FROM teams WHERE id = ?", (user["favorite_team_id"],)
                ).fetchone()
                team = dict(team_row) if team_row else None
            user["favorite_team"] = team
            return user

    def create(
        self,
        name: str,
        email: str,
        password_hash: str,
        role: str = "user",
        favorite_team_id: Optional[int] = None,
    ) -> dict:
        with _store_call("create user") as conn:
            cursor = conn.execute(
                """
                INSERT INTO users (name, email, password_hash, role, favorite_team_id)
                VALUES (?, ?, ?, ?, ?)
                """,
                (name, email, password_hash, role, favorite_team_id),
            )
            conn.commit()
            return dict(conn.execute("SELECT * FROM users WHERE id = ?", (cursor.lastrowid,)).fetchone())

    def set_favorite_team(self, user_id: int, team_id: int) -> bool:
        """Returns False when the user does not exist."""
        with _store_call("set favorite team") as conn:
            cursor = conn.execute(
                "UPDATE users SET favorite_team_id = ? WHERE id = ?", (team_id, user_id)
            )
            conn.commit()
            return cursor.rowcount > 0

    @staticmethod
    def public(user: dict) -> dict:
        return {k: v for k, v in user.items() if k != "password_hash"}
