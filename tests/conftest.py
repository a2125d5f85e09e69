import pytest
from fastapi.testclient import TestClient

from todo_api.main import create_app
from todo_api.settings import Settings


@pytest.fixture
def app():
    # Each test gets its own in-memory database.
    return create_app(Settings(database_path=":memory:"))


@pytest.fixture
def client(app):
    # Entering the client runs the lifespan, which opens the database.
    with TestClient(app) as c:
        yield c


@pytest.fixture
def database(app, client):
    return app.state.database


@pytest.fixture
def audit_rows(database):
    def _rows():
        return database.fetch_all("SELECT action, todo_id, message, details FROM logs ORDER BY id")

    return _rows
