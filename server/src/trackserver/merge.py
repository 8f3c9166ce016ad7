"""Monotonic-max merge of per-device usage counters."""
from dataclasses import dataclass
from typing import Optional

DEFAULT_CATEGORY = "Other"


@dataclass(frozen=True)
class UsageStats:
    """
    The mergeable part of a usage record.

    Timestamps are normalized UTC ISO-8601 strings, so comparing them as
    strings compares them in time.
    """
    total_seconds: int = 0
    visits: int = 0
    title: Optional[str] = None
    category: Optional[str] = None
    first_visit: Optional[str] = None
    last_visit: Optional[str] = None


def _earliest(a: Optional[str], b: Optional[str]) -> Optional[str]:
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


def _latest(a: Optional[str], b: Optional[str]) -> Optional[str]:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def merge_usage(existing: Optional[UsageStats], incoming: UsageStats) -> UsageStats:
    """
    Merge an incoming report entry into the stored one.

    Devices report cumulative per-day counters and may resend them, so
    counters take the max and the visit window only ever widens. Applying
    the same incoming entry twice is a no-op.
    """
    if existing is None:
        return incoming

    return UsageStats(
        total_seconds=max(existing.total_seconds, incoming.total_seconds),
        visits=max(existing.visits, incoming.visits),
        title=incoming.title if incoming.title is not None else existing.title,
        category=incoming.category if incoming.category is not None else existing.category,
        first_visit=_earliest(existing.first_visit, incoming.first_visit),
        last_visit=_latest(existing.last_visit, incoming.last_visit),
    )


def with_insert_defaults(stats: UsageStats, domain: str) -> UsageStats:
    """Fill the title and category a brand-new record falls back to."""
    return UsageStats(
        total_seconds=stats.total_seconds,
        visits=stats.visits,
        title=stats.title if stats.title is not None else domain,
        category=stats.category if stats.category is not None else DEFAULT_CATEGORY,
        first_visit=stats.first_visit,
        last_visit=stats.last_visit,
    )
