import sqlite3
import threading
from contextlib import contextmanager

import pytest

from epl_hub.config import TOP_TEAMS, Config
from epl_hub.database import get_connection, init_db
from epl_hub import stores
from epl_hub.stores import MatchStore, PlayerStore, TeamStore, UserStore, match_points


def team_by_name(name):
    return next(t for t in TeamStore().list_all() if t["name"] == name)


def test_init_db_seeds_teams_admin_and_fixtures(seeded_db):
    teams = TeamStore().list_all()
    assert sorted(t["name"] for t in teams) == sorted(t["name"] for t in TOP_TEAMS)
    assert all(t["points"] == 0 and t["matches_played"] == 0 for t in teams)

    admin = UserStore().get_by_email(Config.ADMIN_EMAIL)
    assert admin["role"] == "admin"

    matches = MatchStore().list_all()
    assert len(matches) == len(TOP_TEAMS) - 1
    assert all(m["status"] == "upcoming" for m in matches)
    assert [m["date"] for m in matches] == sorted(m["date"] for m in matches)


def test_init_db_is_idempotent(seeded_db):
    init_db()
    assert len(TeamStore().list_all()) == len(TOP_TEAMS)
    assert len(MatchStore().list_all()) == len(TOP_TEAMS) - 1
    with get_connection() as conn:
        assert conn.execute("SELECT COUNT(*) FROM users").fetchone()[0] == 1


@pytest.mark.parametrize("goals_for,goals_against,points", [(2, 0, 3), (1, 1, 1), (0, 3, 0)])
def test_match_points(goals_for, goals_against, points):
    assert match_points(goals_for, goals_against) == points


def test_finished_result_updates_both_teams(seeded_db):
    match = MatchStore().list_all()[0]

    updated = MatchStore().update_result(match["id"], 3, 1, "finished")

    assert (updated["home_score"], updated["away_score"], updated["status"]) == (3, 1, "finished")
    home = TeamStore().get(match["home_team_id"])
    away = TeamStore().get(match["away_team_id"])
    assert (home["points"], home["matches_played"], home["goal_diff"]) == (3, 1, 2)
    assert (away["points"], away["matches_played"], away["goal_diff"]) == (0, 1, -2)


def test_correcting_a_result_reverses_the_old_one(seeded_db):
    match = MatchStore().list_all()[0]
    store = MatchStore()
    store.update_result(match["id"], 3, 1, "finished")

    store.update_result(match["id"], 2, 2, "finished")

    home = TeamStore().get(match["home_team_id"])
    away = TeamStore().get(match["away_team_id"])
    assert (home["points"], home["matches_played"], home["goal_diff"]) == (1, 1, 0)
    assert (away["points"], away["matches_played"], away["goal_diff"]) == (1, 1, 0)


def test_live_score_does_not_count(seeded_db):
    match = MatchStore().list_all()[0]
    MatchStore().update_result(match["id"], 1, 0, "live")
    assert TeamStore().get(match["home_team_id"])["points"] == 0


def test_update_result_rejects_unknown_status_and_missing_match(seeded_db):
    with pytest.raises(ValueError):
        MatchStore().update_result(1, 1, 0, "abandoned")
    assert MatchStore().update_result(9999, 1, 0, "finished") is None


def test_list_by_standing_orders_by_points_then_goal_difference(seeded_db):
    teams = TeamStore()
    teams.upsert({"id": team_by_name("Chelsea")["id"], "points": 10, "goal_diff": 4})
    teams.upsert({"id": team_by_name("Arsenal")["id"], "points": 10, "goal_diff": 9})
    teams.upsert({"id": team_by_name("Liverpool")["id"], "points": 7, "goal_diff": 12})

    names = [t["name"] for t in teams.list_by_standing()]
    assert names[:3] == ["Arsenal", "Chelsea", "Liverpool"]


def test_team_upsert_insert_and_update(seeded_db):
    teams = TeamStore()
    created = teams.upsert({"name": "Brighton", "short_name": "BHA"})
    assert created["points"] == 0

    updated = teams.upsert({"id": created["id"], "points": 4})
    assert updated["short_name"] == "BHA"
    assert updated["points"] == 4

    with pytest.raises(ValueError):
        teams.upsert({"short_name": "XXX"})
    with pytest.raises(ValueError):
        teams.upsert({"name": "Arsenal"})


def test_player_upsert_with_stats(seeded_db):
    players = PlayerStore()
    arsenal = team_by_name("Arsenal")
    saved = players.upsert({
        "name": "Bukayo Saka",
        "team_id": arsenal["id"],
        "position": "RW",
        "stats": [{"season": "2025/26", "goals": 9, "assists": 7}],
    })
    players.upsert({"id": saved["id"], "stats": [{"season": "2025/26", "goals": 10, "assists": 7}]})

    listed = players.list_all(team_id=arsenal["id"])
    assert [p["name"] for p in listed] == ["Bukayo Saka"]
    assert len(listed[0]["stats"]) == 1
    assert listed[0]["stats"][0]["goals"] == 10
    assert players.list_all(team_id=team_by_name("Chelsea")["id"]) == []


def test_user_favorite_team(seeded_db):
    users = UserStore()
    user = users.create("Ada", "ada@example.com", "x")
    arsenal = team_by_name("Arsenal")

    assert users.set_favorite_team(user["id"], arsenal["id"]) is True
    assert users.get(user["id"])["favorite_team"]["name"] == "Arsenal"
    assert users.set_favorite_team(9999, arsenal["id"]) is False
    with pytest.raises(ValueError):
        users.set_favorite_team(user["id"], 9999)
    assert "password_hash" not in UserStore.public(users.get(user["id"]))


def test_duplicate_email_is_a_value_error(seeded_db):
    UserStore().create("Ada", "ada@example.com", "x")
    with pytest.raises(ValueError):
        UserStore().create("Ada again", "ada@example.com", "y")


def test_schema_enforces_foreign_keys(seeded_db):
    with get_connection() as conn:
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute(
                "INSERT INTO matches (home_team_id, away_team_id, date) VALUES (9998, 9999, 0)"
            )


class PausingConnection:
    """Lets two writers meet right after reading the match row."""

    def __init__(self, conn, barrier):
        self._conn = conn
        self._barrier = barrier

    def execute(self, sql, *args):
        cursor = self._conn.execute(sql, *args)
        if sql.startswith("SELECT * FROM matches WHERE id"):
            try:
                self._barrier.wait(timeout=0.5)
            except threading.BrokenBarrierError:
                # The other writer holds the lock and can't reach the barrier
                pass
        return cursor

    def __getattr__(self, name):
        return getattr(self._conn, name)


def test_concurrent_results_for_one_match_count_once(seeded_db, monkeypatch):
    barrier = threading.Barrier(2)
    real_connection = stores.get_connection

    @contextmanager
    def pausing_connection():
        with real_connection() as conn:
            yield PausingConnection(conn, barrier)

    monkeypatch.setattr(stores, "get_connection", pausing_connection)
    match = MatchStore().list_all()[0]
    errors = []

    def post_result():
        try:
            MatchStore().update_result(match["id"], 2, 0, "finished")
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=post_result) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    home = TeamStore().get(match["home_team_id"])
    away = TeamStore().get(match["away_team_id"])
    assert (home["points"], home["matches_played"], home["goal_diff"]) == (3, 1, 2)
    assert (away["points"], away["matches_played"], away["goal_diff"]) == (0, 1, -2)


def test_create_user_with_unknown_team_inserts_nothing(seeded_db):
    with pytest.raises(ValueError):
        UserStore().create("Ada", "ada@example.com", "x", favorite_team_id=9999)
    assert UserStore().get_by_email("ada@example.com") is None
