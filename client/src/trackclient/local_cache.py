"""Local cache for offline operation and pending pushes."""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

CACHE_DIR = Path.home() / ".activitytracker" / "cache"
PENDING_PUSHES = CACHE_DIR / "pending_pushes.json"
LAST_SERVER_DATA = CACHE_DIR / "last_server_data.json"
MAX_PENDING_PUSHES = 100


def _load_json(path: Path) -> Optional[list | dict]:
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text())
    except (json.JSONDecodeError, IOError):
        return None


def _save_json(path: Path, data: list | dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))


def queue_push(payload: dict) -> None:
    """Queue a push for later replay, dropping the oldest when full."""
    pending = _load_json(PENDING_PUSHES) or []

    if len(pending) >= MAX_PENDING_PUSHES:
        pending = pending[len(pending) - MAX_PENDING_PUSHES + 1:]

    pending.append({
        "payload": payload,
        "queued_at": datetime.now().isoformat()
    })
    _save_json(PENDING_PUSHES, pending)


def get_pending_count() -> int:
    return len(_load_json(PENDING_PUSHES) or [])


def list_pending() -> list[dict]:
    """Return pending pushes with metadata, oldest first."""
    return _load_json(PENDING_PUSHES) or []


def clear_pending() -> None:
    _save_json(PENDING_PUSHES, [])


def process_pending_pushes(client: httpx.Client) -> tuple[int, int]:
    """
    Replay queued pushes in order. Returns (success_count, remaining_count).

    Pushes are idempotent on the server, so replaying one that did arrive
    is harmless. Items the server rejects as invalid are dropped; network
    failures and server errors keep them queued.
    """
    pending = _load_json(PENDING_PUSHES) or []
    if not pending:
        return 0, 0

    success = 0
    remaining = []

    for item in pending:
        try:
            response = client.post("/api/sync/push", json=item["payload"])
            response.raise_for_status()
            success += 1
        except httpx.RequestError as e:
            logger.warning(f"Replay failed: {e}")
            remaining.append(item)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status >= 500 or status in (401, 429):
                remaining.append(item)
            else:
                logger.warning(f"Dropping queued push rejected with {status}")

    _save_json(PENDING_PUSHES, remaining)
    return success, len(remaining)


def save_server_data(kind: str, data: dict) -> None:
    """Cache an analytics response for offline display."""
    cached = _load_json(LAST_SERVER_DATA) or {}
    cached[kind] = {
        "data": data,
        "cached_at": datetime.now().isoformat()
    }
    _save_json(LAST_SERVER_DATA, cached)


def load_server_data(kind: str) -> Optional[dict]:
    """Last cached response of one kind, with its `cached_at` time."""
    cached = _load_json(LAST_SERVER_DATA) or {}
    return cached.get(kind)
