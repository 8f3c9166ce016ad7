"""Tests for the client's server calls, against a mocked transport."""
import json

import httpx
import pytest


def test_push_success(configured, mock_server, handlers):
    from trackclient.config import load_config
    from trackclient.sync import do_push

    seen = mock_server(handlers["push_ok"])
    result = do_push(configured, {"2024-03-15": {"example.com": {"totalSeconds": 5}}},
                     [{"state": "active", "timestamp": "2024-03-15T09:00:00Z"}])

    assert result.status == "success"
    assert result.records_synced == 1
    [request] = seen
    assert request.url.path == "/api/sync/push"
    assert request.headers["Authorization"] == "Bearer test-token"
    body = json.loads(request.content)
    assert body["deviceId"] == "dev-1"
    assert body["usageData"]["2024-03-15"]["example.com"]["totalSeconds"] == 5
    assert len(body["activityEvents"]) == 1

    config = load_config()
    assert config["last_sync_success"] is True
    assert config["last_sync"] is not None


def test_push_queues_when_unreachable(configured, mock_server, handlers):
    from trackclient.config import load_config
    from trackclient.local_cache import list_pending
    from trackclient.sync import do_push

    mock_server(handlers["unreachable"])
    result = do_push(configured, {"2024-03-15": {}})

    assert result.status == "queued"
    [item] = list_pending()
    assert item["payload"] == {"deviceId": "dev-1", "usageData": {"2024-03-15": {}}}
    config = load_config()
    assert config["last_sync_success"] is False
    assert "connection refused" in config["last_error"]


def test_queued_pushes_replayed_before_next_push(configured, mock_server, handlers):
    from trackclient.local_cache import get_pending_count, queue_push
    from trackclient.sync import do_push

    queue_push({"deviceId": "dev-1", "usageData": {"2024-03-14": {}}})
    seen = mock_server(handlers["push_ok"])
    result = do_push(configured, {"2024-03-15": {}})

    assert result.replayed == 1
    assert len(seen) == 2
    assert "2024-03-14" in json.loads(seen[0].content)["usageData"]
    assert get_pending_count() == 0


def test_push_rejected_is_not_queued(configured, mock_server):
    from trackclient.local_cache import get_pending_count
    from trackclient.sync import do_push

    mock_server(lambda request: httpx.Response(400, json={"detail": "Invalid usage report at x"}))
    result = do_push(configured, {"x": {}})

    assert result.status == "error"
    assert "Invalid usage report" in result.message
    assert get_pending_count() == 0


@pytest.mark.parametrize("missing, message", [
    ("server_url", "Server not configured"),
    ("token", "Not logged in"),
    ("device_id", "Device not registered"),
])
def test_push_skipped_without_setup(configured, missing, message):
    from trackclient.sync import do_push

    result = do_push({**configured, missing: None}, {})
    assert result.status == "skipped"
    assert result.message == message


def test_login_stores_token(temp_config_dir, mock_server):
    from trackclient.config import load_config, save_config
    from trackclient.sync import login

    save_config({"server_url": "http://tracker.test"})
    seen = mock_server(lambda request: httpx.Response(200, json={
        "message": "Login successful", "token": "new-token",
        "user": {"id": "u1", "email": "a@example.com", "display_name": "a"},
    }))

    user = login(load_config(), "a@example.com", "secret-pw")
    assert user["id"] == "u1"
    assert load_config()["token"] == "new-token"
    assert seen[0].url.path == "/api/auth/login"


def test_login_failure_raises(temp_config_dir, mock_server):
    from trackclient.sync import ApiError, login

    mock_server(lambda request: httpx.Response(401, json={"detail": "Invalid email or password"}))
    with pytest.raises(ApiError) as excinfo:
        login({"server_url": "http://tracker.test"}, "a@example.com", "wrong")
    assert excinfo.value.status_code == 401
    assert excinfo.value.detail == "Invalid email or password"


def test_register_device_remembers_id(configured, mock_server):
    from trackclient.config import load_config
    from trackclient.sync import register_device

    seen = mock_server(lambda request: httpx.Response(201, json={
        "message": "Device registered",
        "device": {"id": "dev-2", "device_name": "desk", "device_type": "desktop",
                   "created_at": "2024-03-15T00:00:00+00:00"},
    }))
    register_device(configured, "desk")

    assert json.loads(seen[0].content) == {"deviceName": "desk", "deviceType": "desktop"}
    config = load_config()
    assert config["device_id"] == "dev-2"
    assert config["device_name"] == "desk"


def test_fetch_analytics_caches_success(configured, mock_server):
    from trackclient.local_cache import load_server_data
    from trackclient.sync import fetch_analytics

    seen = mock_server(lambda request: httpx.Response(200, json={"period": 7, "domains": []}))
    data = fetch_analytics("top", {"period": 7, "limit": 5})

    assert data == {"period": 7, "domains": []}
    assert seen[0].url.path == "/api/analytics/top-domains"
    assert seen[0].url.params["limit"] == "5"
    assert load_server_data("top")["data"] == data


def test_fetch_analytics_failure_returns_none(configured, mock_server, handlers):
    from trackclient.local_cache import load_server_data
    from trackclient.sync import fetch_analytics

    mock_server(handlers["unreachable"])
    assert fetch_analytics("daily") is None
    assert load_server_data("daily") is None
