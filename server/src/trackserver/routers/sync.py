"""Sync endpoints: devices push usage reports and pull the merged timeline."""
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..auth import get_current_user_id
from ..deps import get_reconciler
from ..models import FullSyncResponse, PullResponse, PushRequest, PushResponse
from ..reconciler import DEFAULT_FULL_DAYS, Reconciler

router = APIRouter(prefix="/sync", tags=["sync"])


@router.post("/push", response_model=PushResponse)
async def push(
    request: PushRequest,
    user_id: str = Depends(get_current_user_id),
    reconciler: Reconciler = Depends(get_reconciler),
):
    """
    Merge a device's usage report into the user's timeline.
    Counters take the max of stored and pushed values, so retries are safe.
    """
    synced = reconciler.push(user_id, request.device_id, request.usage_data, request.activity_events)
    return PushResponse(
        message="Sync complete",
        synced=synced,
        server_time=datetime.now(timezone.utc).isoformat()
    )


@router.get("/pull", response_model=PullResponse)
async def pull(
    date: Optional[str] = None,
    since: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    reconciler: Reconciler = Depends(get_reconciler),
):
    """Usage merged across all devices for one date, or since a date (default: last 7 days)."""
    return PullResponse(records=reconciler.pull(user_id, date=date, since=since))


@router.get("/full", response_model=FullSyncResponse)
async def full(
    days: int = Query(default=DEFAULT_FULL_DAYS, ge=1),
    user_id: str = Depends(get_current_user_id),
    reconciler: Reconciler = Depends(get_reconciler),
):
    """Per-device records for the trailing days (at most 90)."""
    records, days = reconciler.full(user_id, days=days)
    return FullSyncResponse(records=records, days=days)
