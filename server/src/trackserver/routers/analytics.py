"""Analytics endpoints over the merged usage timeline."""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..aggregator import (
    DEFAULT_DOMAIN_LIMIT,
    DEFAULT_PERIOD_DAYS,
    DEFAULT_WEEKS,
    Aggregator,
)
from ..auth import get_current_user_id
from ..deps import get_aggregator
from ..models import (
    DailyResponse,
    ExportResponse,
    TopDomainsResponse,
    TrendsResponse,
    WeeklyResponse,
)

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/daily", response_model=DailyResponse)
async def daily(
    date: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    aggregator: Aggregator = Depends(get_aggregator),
):
    """Per-site, per-category and per-device usage for one day (default: today)."""
    return aggregator.daily(user_id, date=date)


@router.get("/weekly", response_model=WeeklyResponse)
async def weekly(
    weeks: int = Query(default=DEFAULT_WEEKS, ge=1),
    user_id: str = Depends(get_current_user_id),
    aggregator: Aggregator = Depends(get_aggregator),
):
    return aggregator.weekly(user_id, weeks=weeks)


@router.get("/trends", response_model=TrendsResponse)
async def trends(
    user_id: str = Depends(get_current_user_id),
    aggregator: Aggregator = Depends(get_aggregator),
):
    """This week's totals next to last week's."""
    return aggregator.trends(user_id)


@router.get("/top-domains", response_model=TopDomainsResponse)
async def top_domains(
    period: int = Query(default=DEFAULT_PERIOD_DAYS, ge=1),
    limit: int = Query(default=DEFAULT_DOMAIN_LIMIT, ge=1),
    user_id: str = Depends(get_current_user_id),
    aggregator: Aggregator = Depends(get_aggregator),
):
    return aggregator.top_domains(user_id, period_days=period, limit=limit)


@router.get("/export", response_model=ExportResponse)
async def export(
    user_id: str = Depends(get_current_user_id),
    aggregator: Aggregator = Depends(get_aggregator),
):
    return aggregator.export(user_id)
