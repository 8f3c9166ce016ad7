"""Test fixtures for server tests."""
import pytest
from fastapi.testclient import TestClient

from trackserver.config import Settings
from trackserver.db import Store
from trackserver.devices import register_device
from trackserver.users import register_user


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a temporary database and upload directory."""
    return Settings(
        database_path=str(tmp_path / "test.db"),
        upload_dir=str(tmp_path / "uploads"),
        jwt_secret="test-secret",
        screenshot_cap=5,
        rate_limit_max_requests=10_000,
        sync_rate_limit_max_requests=10_000,
    )


@pytest.fixture
def store(settings):
    """An open store on a fresh database."""
    store = Store(settings.database_path)
    store.open()
    yield store
    store.close()


@pytest.fixture
def user_id(store):
    return register_user(store, "alice@example.com", "secret-pw").id


@pytest.fixture
def device_id(store, user_id):
    return register_device(store, user_id, "laptop", "desktop").id


@pytest.fixture
def client(settings):
    """Test client; entering it runs the app's startup and shutdown."""
    from trackserver.main import create_app
    with TestClient(create_app(settings)) as client:
        yield client


def _signup(client, email="bob@example.com", password="hunter22"):
    response = client.post("/api/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def signup():
    """Register an account and return its auth headers."""
    return _signup


@pytest.fixture
def auth_headers(client):
    return _signup(client)


@pytest.fixture
def api_device(client, auth_headers):
    """A device registered through the API for the default test user."""
    response = client.post(
        "/api/devices",
        json={"deviceName": "work laptop", "deviceType": "desktop"},
        headers=auth_headers
    )
    assert response.status_code == 201
    return response.json()["device"]["id"]
