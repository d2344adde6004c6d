"""League table computation behind a chain of cache tiers.

Lookup order is the order of ``tiers``: the first tier that answers wins.
On a full miss the table is read from the team store and written back to
every tier. A tier that errors is logged and skipped; only the store can
fail a computation.
"""

from dataclasses import dataclass
from typing import Any, Callable, Protocol, Sequence

from .cache import CacheError, TTLCache
from .redis_cache import ExternalCache
from .logging import get_logger

logger = get_logger(__name__)

TABLE_CACHE_KEY = "league_table"
DEFAULT_TABLE_TTL = 30.0  # Seconds


@dataclass(frozen=True)
class TableRow:
    """One team's line in the standings."""
    team_id: int
    team_name: str
    played: int
    points: int
    goal_difference: int

    @classmethod
    def from_team(cls, team: dict) -> "TableRow":
        return cls(
            team_id=team["id"],
            team_name=team["name"],
            played=team["matches_played"],
            points=team["points"],
            goal_difference=team["goal_diff"],
        )

    @classmethod
    def from_dict(cls, data: dict) -> "TableRow":
        return cls(
            team_id=int(data["team_id"]),
            team_name=str(data["team"]),
            played=int(data["played"]),
            points=int(data["points"]),
            goal_difference=int(data["gd"]),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "team_id": self.team_id,
            "team": self.team_name,
            "played": self.played,
            "points": self.points,
            "gd": self.goal_difference,
        }


Standings = tuple[TableRow, ...]


def standings_to_json(rows: Sequence[TableRow]) -> list[dict]:
    return [row.to_dict() for row in rows]


def standings_from_json(data: Any) -> Standings:
    if not isinstance(data, list):
        raise ValueError(f"expected a list of rows, got {type(data).__name__}")
    return tuple(TableRow.from_dict(item) for item in data)


class TeamSource(Protocol):
    def list_by_standing(self) -> list[dict]: ...


class CacheBackend(Protocol):
    def lookup(self, key: str) -> tuple[bool, Any]: ...

    def set(self, key: str, value: Any, ttl: float) -> None: ...

    def delete(self, key: str) -> bool: ...


def _identity(value: Any) -> Any:
    return value


class CacheTier:
    """One link in the lookup chain: a backend plus its value codec."""

    def __init__(
        self,
        name: str,
        backend: CacheBackend,
        encode: Callable[[Any], Any] = _identity,
        decode: Callable[[Any], Any] = _identity,
    ):
        self.name = name
        self.backend = backend
        self._encode = encode
        self._decode = decode

    def lookup(self, key: str) -> tuple[bool, Any]:
        found, raw = self.backend.lookup(key)
        if not found:
            return False, None
        try:
            return True, self._decode(raw)
        except (KeyError, TypeError, ValueError) as e:
            raise CacheError(f"{self.name}: undecodable entry for {key}: {e}") from e

    def store(self, key: str, value: Any, ttl: float) -> None:
        self.backend.set(key, self._encode(value), ttl)

    def discard(self, key: str) -> None:
        self.backend.delete(key)

    def __repr__(self) -> str:
        return f"CacheTier({self.name!r})"


def default_tiers(external: ExternalCache, local: TTLCache) -> list[CacheTier]:
    """External cache first (shared across instances), then the local one.

    An unconfigured external cache stays in the chain; it always misses.
    """
    return [
        CacheTier("redis", external, encode=standings_to_json, decode=standings_from_json),
        CacheTier("memory", local),
    ]


class TableService:
    """
    Serves the league table, computing it from the team store at most once
    per TTL window.

    Usage:
        service = TableService(TeamStore(), default_tiers(external, TTLCache()))
        rows = service.compute()
    """

    def __init__(self, source: TeamSource, tiers: Sequence[CacheTier], ttl: float = DEFAULT_TABLE_TTL):
        self.source = source
        self.tiers = list(tiers)
        self.ttl = ttl

    def compute(self) -> Standings:
        """
        Return the current standings.

        Raises:
            StoreError: if the table had to be read from the store and that failed
        """
        for tier in self.tiers:
            try:
                found, rows = tier.lookup(TABLE_CACHE_KEY)
            except CacheError as e:
                logger.warning("Table lookup in %s tier failed, falling through: %s", tier.name, e)
                continue
            if found:
                logger.debug("Table cache hit (%s)", tier.name)
                return rows

        logger.debug("Table cache miss, reading teams from the store")
        rows = tuple(TableRow.from_team(team) for team in self.source.list_by_standing())

        for tier in self.tiers:
            try:
                tier.store(TABLE_CACHE_KEY, rows, self.ttl)
            except CacheError as e:
                logger.warning("Could not write table to %s tier: %s", tier.name, e)

        return rows

    def invalidate(self) -> None:
        """Drop the cached table from every tier."""
        for tier in self.tiers:
            try:
                tier.discard(TABLE_CACHE_KEY)
            except CacheError as e:
                logger.warning("Could not invalidate table in %s tier: %s", tier.name, e)

    def refresh(self) -> Standings:
        """Invalidate and recompute; used after writes that move the table."""
        self.invalidate()
        return self.compute()
