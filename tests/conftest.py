"""Shared fixtures: a throwaway database, services bound to it and an HTTP client."""

import pytest
from fastapi.testclient import TestClient

from calc_chain_api.app.core.config import Settings
from calc_chain_api.app.core.db import Database
from calc_chain_api.app.main import create_app
from calc_chain_api.app.services.calculation_service import CalculationService
from calc_chain_api.app.services.user_service import UserService


class RecordingDatabase(Database):
    """Database that records every connection opened and statement executed."""

    def __init__(self, database_url: str) -> None:
        super().__init__(database_url)
        self.connections = 0
        self.statements = []

    def get_connection(self):
        conn = super().get_connection()
        self.connections += 1
        conn.set_trace_callback(self.statements.append)
        return conn

    def reset(self) -> None:
        self.connections = 0
        self.statements.clear()

    @property
    def selects(self):
        return [s for s in self.statements if s.lstrip().upper().startswith("SELECT")]


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=str(tmp_path / "test.db"),
        secret_key="test-secret",
        api_prefix="/api",
    )


@pytest.fixture
def db(settings):
    database = RecordingDatabase(settings.database_url)
    database.init_db()
    database.reset()
    return database


@pytest.fixture
def user_service(db, settings):
    return UserService(db, settings)


@pytest.fixture
def calculation_service(db):
    return CalculationService(db)


@pytest.fixture
def alice(user_service):
    """A registered user; returns ``(token, user)``."""
    return user_service.register("alice", "password1")


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_header(client):
    resp = client.post("/api/auth/register", json={"username": "alice", "password": "password1"})
    assert resp.status_code == 201
    return {"Authorization": f"Bearer {resp.json()['token']}"}
