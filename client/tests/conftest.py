"""Test fixtures for client tests."""
import httpx
import pytest


@pytest.fixture
def temp_config_dir(tmp_path, monkeypatch):
    """Use temporary config directory."""
    import trackclient.config as config_module
    monkeypatch.setattr(config_module, "CONFIG_DIR", tmp_path)
    monkeypatch.setattr(config_module, "CONFIG_PATH", tmp_path / "config.json")
    return tmp_path


@pytest.fixture
def temp_cache_dir(tmp_path, monkeypatch):
    """Use temporary cache directory."""
    import trackclient.local_cache as cache_module
    cache_dir = tmp_path / "cache"
    monkeypatch.setattr(cache_module, "CACHE_DIR", cache_dir)
    monkeypatch.setattr(cache_module, "PENDING_PUSHES", cache_dir / "pending_pushes.json")
    monkeypatch.setattr(cache_module, "LAST_SERVER_DATA", cache_dir / "last_server_data.json")
    return cache_dir


@pytest.fixture
def configured(temp_config_dir, temp_cache_dir):
    """A logged-in client with a registered device."""
    from trackclient.config import save_config
    config = {
        "server_url": "http://tracker.test",
        "token": "test-token",
        "device_id": "dev-1",
        "device_name": "laptop",
    }
    save_config(config)
    return config


@pytest.fixture
def mock_server(monkeypatch):
    """
    Route client HTTP through a handler function.

    Call with the handler; returns the list of requests it received.
    """
    import trackclient.sync as sync_module

    def install(handler):
        seen = []

        def record(request):
            seen.append(request)
            return handler(request)

        def make_client(server_url, token=None):
            headers = {"Authorization": f"Bearer {token}"} if token else {}
            return httpx.Client(base_url=server_url, headers=headers,
                                transport=httpx.MockTransport(record))

        monkeypatch.setattr(sync_module, "make_client", make_client)
        return seen
    return install


def push_ok(request):
    return httpx.Response(200, json={
        "message": "Sync complete",
        "synced": {"usage_records": 1, "activity_events": 0},
        "server_time": "2024-03-15T12:00:00+00:00",
    })


def unreachable(request):
    raise httpx.ConnectError("connection refused", request=request)


@pytest.fixture
def handlers():
    """Canned server behaviours."""
    return {"push_ok": push_ok, "unreachable": unreachable}
