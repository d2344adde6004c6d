"""Database initialization and connection management."""

import sqlite3
import time
from pathlib import Path
from contextlib import contextmanager
from typing import Generator

from .config import Config, TOP_TEAMS
from .logging import get_logger
from .security import hash_password

logger = get_logger(__name__)


class StoreError(Exception):
    """The backing store failed to answer a query or apply a write."""


SCHEMA = """
CREATE TABLE IF NOT EXISTS teams (
    id INTEGER PRIMARY KEY,
    name TEXT UNIQUE NOT NULL,
    short_name TEXT,
    logo_url TEXT,
    primary_color TEXT,
    secondary_color TEXT,
    points INTEGER NOT NULL DEFAULT 0,
    matches_played INTEGER NOT NULL DEFAULT 0,
    goal_diff INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT UNIQUE NOT NULL,
    password_hash TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'user',
    favorite_team_id INTEGER REFERENCES teams(id),
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS players (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    team_id INTEGER REFERENCES teams(id),
    position TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS player_stats (
    id INTEGER PRIMARY KEY,
    player_id INTEGER NOT NULL REFERENCES players(id),
    season TEXT NOT NULL,
    goals INTEGER NOT NULL DEFAULT 0,
    assists INTEGER NOT NULL DEFAULT 0,
    clean_sheets INTEGER NOT NULL DEFAULT 0,
    minutes_played INTEGER NOT NULL DEFAULT 0,
    UNIQUE(player_id, season)
);

-- A result counts towards the table once status is 'finished'
CREATE TABLE IF NOT EXISTS matches (
    id INTEGER PRIMARY KEY,
    home_team_id INTEGER NOT NULL REFERENCES teams(id),
    away_team_id INTEGER NOT NULL REFERENCES teams(id),
    home_score INTEGER,
    away_score INTEGER,
    date INTEGER NOT NULL,  -- Unix seconds
    stadium TEXT,
    status TEXT NOT NULL DEFAULT 'upcoming',  -- upcoming | live | finished
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_teams_standing ON teams(points DESC, goal_diff DESC);
CREATE INDEX IF NOT EXISTS idx_players_team ON players(team_id);
CREATE INDEX IF NOT EXISTS idx_player_stats_player ON player_stats(player_id);
CREATE INDEX IF NOT EXISTS idx_matches_date ON matches(date);
"""


def get_db_path() -> Path:
    """Get the database path, ensuring directory exists."""
    Config.ensure_data_dir()
    return Config.DATABASE_PATH


@contextmanager
def get_connection() -> Generator[sqlite3.Connection, None, None]:
    """Get a database connection with row factory enabled."""
    try:
        conn = sqlite3.connect(get_db_path())
    except sqlite3.Error as e:
        raise StoreError(f"Cannot open database: {e}") from e
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()


def init_db() -> None:
    """Apply the schema and seed teams, the admin account and fixtures."""
    with get_connection() as conn:
        conn.executescript(SCHEMA)
        seed_teams(conn)
        ensure_admin(conn, Config.ADMIN_EMAIL, Config.ADMIN_PASSWORD)
        seed_matches(conn)
        conn.commit()
    logger.info("Database initialized at %s", get_db_path())


def seed_teams(conn: sqlite3.Connection) -> int:
    """Insert the top six when no teams exist. Returns rows inserted."""
    count = conn.execute("SELECT COUNT(*) FROM teams").fetchone()[0]
    if count:
        return 0
    for team in TOP_TEAMS:
        conn.execute(
            """
            INSERT INTO teams (name, short_name, logo_url, primary_color, secondary_color)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                team["name"],
                team["short_name"],
                f"/static/logos/{team['short_name'].lower()}.png",
                team["primary_color"],
                team["secondary_color"],
            ),
        )
    return len(TOP_TEAMS)


def ensure_admin(conn: sqlite3.Connection, email: str, password: str) -> bool:
    """Create the admin account if missing. Returns True when created."""
    email = email.strip().lower()
    row = conn.execute("SELECT id FROM users WHERE email = ?", (email,)).fetchone()
    if row:
        return False
    conn.execute(
        "INSERT INTO users (name, email, password_hash, role) VALUES (?, ?, ?, 'admin')",
        ("Admin", email, hash_password(password)),
    )
    logger.info("Created admin account %s", email)
    return True


def seed_matches(conn: sqlite3.Connection) -> int:
    """Chain upcoming fixtures between consecutive teams, one per day."""
    if conn.execute("SELECT COUNT(*) FROM matches").fetchone()[0]:
        return 0
    teams = conn.execute("SELECT id FROM teams ORDER BY id").fetchall()
    if len(teams) < 2:
        return 0
    now = int(time.time())
    for i in range(len(teams) - 1):
        conn.execute(
            """
            INSERT INTO matches (home_team_id, away_team_id, date, stadium, status)
            VALUES (?, ?, ?, 'Stadium', 'upcoming')
            """,
            (teams[i]["id"], teams[i + 1]["id"], now + (i + 1) * 86400),
        )
    return len(teams) - 1
