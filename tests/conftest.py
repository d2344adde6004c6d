import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from epl_hub.api.main import create_app
from epl_hub.config import Config
from epl_hub.database import init_db

JWT_SECRET = "test-secret"


@pytest.fixture()
def db_path(tmp_path, monkeypatch):
    # Fresh sqlite file per test; no external cache
    path = tmp_path / "epl.db"
    monkeypatch.setattr(Config, "DATABASE_PATH", path)
    monkeypatch.setattr(Config, "REDIS_URL", None)
    monkeypatch.setattr(Config, "JWT_SECRET", JWT_SECRET)
    return path


@pytest.fixture()
def seeded_db(db_path):
    init_db()
    return db_path


@pytest.fixture()
def app(db_path):
    return create_app()


@pytest.fixture()
def client(app):
    # Entering the client runs the lifespan and keeps one event loop for
    # every request and websocket in the test
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def admin_token(client):
    res = client.post(
        "/api/auth/login",
        json={"email": Config.ADMIN_EMAIL, "password": Config.ADMIN_PASSWORD},
    )
    assert res.status_code == 200
    client.cookies.clear()
    return res.json()["token"]


@pytest.fixture()
def admin_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


class FakeRedis:
    """Just enough of redis.Redis for the cache wrapper."""

    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.fail = False
        self.closed = False

    def _check(self):
        if self.fail:
            raise RedisConnectionError("connection refused")

    def get(self, key):
        self._check()
        return self.data.get(key)

    def set(self, key, value, px=None):
        self._check()
        self.data[key] = value
        self.ttls[key] = px
        return True

    def delete(self, key):
        self._check()
        return 1 if self.data.pop(key, None) is not None else 0

    def ping(self):
        self._check()
        return True

    def close(self):
        self.closed = True


@pytest.fixture()
def fake_redis():
    return FakeRedis()
