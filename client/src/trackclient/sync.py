"""Talking to the tracker server: accounts, devices, pushes and analytics."""
import logging
import socket
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import httpx

from .config import load_config, save_config
from .local_cache import process_pending_pushes, queue_push, save_server_data

logger = logging.getLogger(__name__)

SYNC_TIMEOUT = 30.0  # seconds

ANALYTICS_PATHS = {
    "daily": "/api/analytics/daily",
    "weekly": "/api/analytics/weekly",
    "trends": "/api/analytics/trends",
    "top": "/api/analytics/top-domains",
}


class ApiError(Exception):
    """The server answered with an error status."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


@dataclass
class PushResult:
    status: str  # "success", "queued", "skipped", "error"
    message: str = ""
    records_synced: int = 0
    events_synced: int = 0
    replayed: int = 0


def make_client(server_url: str, token: Optional[str] = None) -> httpx.Client:
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.Client(base_url=server_url.rstrip("/"), timeout=SYNC_TIMEOUT, headers=headers)


def _detail(response: httpx.Response) -> str:
    try:
        return response.json().get("detail", response.text)
    except ValueError:
        return response.text


def _check(response: httpx.Response) -> dict:
    if response.is_error:
        raise ApiError(response.status_code, _detail(response))
    return response.json()


def _authenticate(config: dict, path: str, body: dict) -> dict:
    with make_client(config["server_url"]) as client:
        data = _check(client.post(path, json=body))
    save_config({**config, "token": data["token"]})
    return data["user"]


def login(config: dict, email: str, password: str) -> dict:
    """Log in and store the token. Returns the user."""
    return _authenticate(config, "/api/auth/login", {"email": email, "password": password})


def register(config: dict, email: str, password: str, display_name: Optional[str] = None) -> dict:
    """Create an account and store the token. Returns the user."""
    body = {"email": email, "password": password}
    if display_name:
        body["displayName"] = display_name
    return _authenticate(config, "/api/auth/register", body)


def register_device(config: dict, device_name: Optional[str] = None,
                    device_type: str = "desktop") -> dict:
    """Register this machine and remember its id."""
    device_name = device_name or config.get("device_name") or socket.gethostname()
    with make_client(config["server_url"], config.get("token")) as client:
        data = _check(client.post(
            "/api/devices", json={"deviceName": device_name, "deviceType": device_type}
        ))
    device = data["device"]
    save_config({**config, "device_id": device["id"], "device_name": device["device_name"]})
    return device


def list_devices(config: dict) -> list[dict]:
    with make_client(config["server_url"], config.get("token")) as client:
        return _check(client.get("/api/devices"))["devices"]


def build_push_payload(device_id: str, report: dict,
                       events: Optional[list] = None) -> dict:
    payload: dict[str, Any] = {"deviceId": device_id, "usageData": report}
    if events:
        payload["activityEvents"] = events
    return payload


def _not_ready(config: dict) -> Optional[PushResult]:
    if not config.get("server_url"):
        return PushResult(status="skipped", message="Server not configured")
    if not config.get("token"):
        return PushResult(status="skipped", message="Not logged in")
    return None


def do_push(config: dict, report: dict, events: Optional[list] = None) -> PushResult:
    """
    Push a report, replaying anything queued first.

    On a network failure the payload is queued for `retry_pending`.
    """
    not_ready = _not_ready(config)
    if not_ready:
        return not_ready
    if not config.get("device_id"):
        return PushResult(status="skipped", message="Device not registered")

    payload = build_push_payload(config["device_id"], report, events)
    try:
        with make_client(config["server_url"], config["token"]) as client:
            replayed, _ = process_pending_pushes(client)
            if replayed:
                logger.info(f"Replayed {replayed} pending pushes")
            response = client.post("/api/sync/push", json=payload)
            response.raise_for_status()
            result = response.json()

        save_config({
            **config,
            "last_sync": datetime.now().isoformat(),
            "last_sync_success": True,
            "last_error": None
        })
        return PushResult(
            status="success",
            records_synced=result["synced"]["usage_records"],
            events_synced=result["synced"]["activity_events"],
            replayed=replayed,
        )
    except httpx.RequestError as e:
        logger.warning(f"Push failed: {e}")
        queue_push(payload)
        save_config({
            **config,
            "last_sync": datetime.now().isoformat(),
            "last_sync_success": False,
            "last_error": str(e)
        })
        return PushResult(status="queued", message=f"Server unreachable: {e}")
    except httpx.HTTPStatusError as e:
        logger.error(f"Push rejected: {e.response.status_code}")
        return PushResult(
            status="error",
            message=f"Server error {e.response.status_code}: {_detail(e.response)}"
        )


def retry_pending(config: dict) -> tuple[int, int]:
    """Replay the offline queue. Returns (replayed, still_pending)."""
    with make_client(config["server_url"], config.get("token")) as client:
        return process_pending_pushes(client)


def fetch_analytics(kind: str, params: Optional[dict] = None) -> Optional[dict]:
    """Fetch one analytics view. Returns None on failure; successes are cached."""
    config = load_config()
    if _not_ready(config):
        return None

    try:
        with make_client(config["server_url"], config["token"]) as client:
            response = client.get(ANALYTICS_PATHS[kind], params=params or {})
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as e:
        logger.warning(f"Failed to fetch {kind} analytics: {e}")
        return None
    save_server_data(kind, data)
    return data
