"""Configuration management for EPL Hub."""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Get the project root directory (where this config.py lives, go up one level)
PROJECT_ROOT = Path(__file__).parent.parent

DEFAULT_JWT_SECRET = "dev-secret-change"


class Config:
    """Application configuration."""

    # Database - use absolute path relative to project root
    DATABASE_PATH: Path = Path(os.getenv("DATABASE_PATH", str(PROJECT_ROOT / "data" / "epl.db")))

    # API settings
    API_HOST: str = os.getenv("API_HOST", "127.0.0.1")
    API_PORT: int = int(os.getenv("API_PORT", "8080"))
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: str | None = os.getenv("LOG_FILE")

    # Auth
    JWT_SECRET: str = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
    TOKEN_TTL_HOURS: int = int(os.getenv("TOKEN_TTL_HOURS", "24"))
    ADMIN_EMAIL: str = os.getenv("ADMIN_EMAIL", "admin@epl.local")
    ADMIN_PASSWORD: str = os.getenv("ADMIN_PASSWORD", "change-me-admin")

    # External cache. Unset means the in-process cache is the only tier.
    REDIS_URL: str | None = os.getenv("REDIS_URL") or None
    REDIS_TIMEOUT: float = float(os.getenv("REDIS_TIMEOUT", "0.5"))  # Seconds

    # Standings
    TABLE_CACHE_TTL: float = float(os.getenv("TABLE_CACHE_TTL", "30"))  # Seconds
    SUBSCRIBER_SEND_TIMEOUT: float = float(os.getenv("SUBSCRIBER_SEND_TIMEOUT", "5"))  # Seconds

    @classmethod
    def ensure_data_dir(cls) -> None:
        """Create data directory if it doesn't exist."""
        cls.DATABASE_PATH.parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def validate(cls) -> list[str]:
        """Validate configuration. Returns list of errors."""
        errors = []
        if cls.JWT_SECRET == DEFAULT_JWT_SECRET:
            errors.append("JWT_SECRET not set in environment, using the development secret")
        if cls.TABLE_CACHE_TTL <= 0:
            errors.append("TABLE_CACHE_TTL must be positive")
        if cls.SUBSCRIBER_SEND_TIMEOUT <= 0:
            errors.append("SUBSCRIBER_SEND_TIMEOUT must be positive")
        return errors


# Seeded when the teams table is empty
TOP_TEAMS = [
    {"name": "Manchester City", "short_name": "MCI", "primary_color": "#6CABDD", "secondary_color": "#1C2C5B"},
    {"name": "Arsenal", "short_name": "ARS", "primary_color": "#EF0107", "secondary_color": "#9C824A"},
    {"name": "Liverpool", "short_name": "LIV", "primary_color": "#C8102E", "secondary_color": "#00A398"},
    {"name": "Manchester United", "short_name": "MUN", "primary_color": "#DA291C", "secondary_color": "#FBE122"},
    {"name": "Chelsea", "short_name": "CHE", "primary_color": "#034694", "secondary_color": "#DBA111"},
    {"name": "Tottenham", "short_name": "TOT", "primary_color": "#132257", "secondary_color": "#FFFFFF"},
]

MATCH_STATUSES = ("upcoming", "live", "finished")
