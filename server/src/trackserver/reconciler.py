"""Merging device usage reports into the per-user timeline."""
import logging
import sqlite3
from dataclasses import dataclass
from datetime import date as date_type
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from .db import Store, utc_now
from .errors import DeviceNotFound, InvalidReport
from .merge import UsageStats, merge_usage, with_insert_defaults
from .models import (
    ActivityEvent,
    DeviceUsageRecord,
    MergedRecord,
    Report,
    SyncedCounts,
    clamp,
    days_ago,
    parse_date,
    today_utc,
)

logger = logging.getLogger(__name__)

MAX_EVENTS_PER_PUSH = 200
DEFAULT_PULL_DAYS = 7
DEFAULT_FULL_DAYS = 7
MAX_FULL_DAYS = 90

_report_adapter = TypeAdapter(Report)
_events_adapter = TypeAdapter(list[ActivityEvent])


@dataclass(frozen=True)
class UsageEntry:
    date: str
    domain: str
    stats: UsageStats


def _describe(error: PydanticValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


def parse_report(raw: Any) -> list[UsageEntry]:
    """Validate a date -> domain -> usage mapping. Raises InvalidReport."""
    if raw is None:
        return []
    try:
        report = _report_adapter.validate_python(raw)
    except PydanticValidationError as e:
        raise InvalidReport(f"Invalid usage report at {_describe(e)}") from e

    return [
        UsageEntry(
            date=day,
            domain=domain,
            stats=UsageStats(
                total_seconds=usage.total_seconds,
                visits=usage.visits,
                title=usage.title,
                category=usage.category,
                first_visit=usage.first_visit,
                last_visit=usage.last_visit,
            ),
        )
        for day, domains in report.items()
        for domain, usage in domains.items()
    ]


def parse_events(raw: Any, limit: int = MAX_EVENTS_PER_PUSH) -> list[ActivityEvent]:
    """Validate the last `limit` activity events; older ones are dropped unchecked."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise InvalidReport("Invalid activity events: expected a list")
    if limit <= 0:
        return []
    try:
        return _events_adapter.validate_python(raw[-limit:])
    except PydanticValidationError as e:
        raise InvalidReport(f"Invalid activity events at {_describe(e)}") from e


def _stats_from_row(row: sqlite3.Row) -> UsageStats:
    return UsageStats(
        total_seconds=row['total_seconds'],
        visits=row['visits'],
        title=row['title'],
        category=row['category'],
        first_visit=row['first_visit'],
        last_visit=row['last_visit'],
    )


class Reconciler:
    """Applies device pushes to the record store and serves the merged timeline back."""

    def __init__(self, store: Store, max_events: int = MAX_EVENTS_PER_PUSH):
        self.store = store
        self.max_events = max_events

    def push(self, user_id: str, device_id: str, report: Any,
             activity_events: Any = None) -> SyncedCounts:
        """
        Merge a device report into the store in a single transaction.

        The whole push is validated before anything is written, and the
        device must belong to the user. Pushing the same report again
        leaves the store unchanged.
        """
        entries = parse_report(report)
        events = parse_events(activity_events, self.max_events)
        now = utc_now()

        with self.store.transaction() as conn:
            device = conn.execute(
                "SELECT id FROM devices WHERE id = ? AND user_id = ?",
                (device_id, user_id)
            ).fetchone()
            if device is None:
                raise DeviceNotFound()

            for entry in entries:
                self._merge_entry(conn, user_id, device_id, entry, now)

            for event in events:
                conn.execute("""
                    INSERT INTO activity_events (user_id, device_id, state, timestamp, date)
                    VALUES (?, ?, ?, ?, ?)
                """, (user_id, device_id, event.state, event.timestamp,
                      event.date or event.timestamp[:10]))

            conn.execute(
                "UPDATE devices SET last_sync_at = ? WHERE id = ?", (now, device_id)
            )
            conn.execute("""
                INSERT INTO sync_log (user_id, device_id, sync_type, records_synced, synced_at)
                VALUES (?, ?, 'push', ?, ?)
            """, (user_id, device_id, len(entries), now))

        logger.info(f"Merged {len(entries)} usage records and {len(events)} events from device {device_id}")
        return SyncedCounts(usage_records=len(entries), activity_events=len(events))

    def _merge_entry(self, conn: sqlite3.Connection, user_id: str, device_id: str,
                     entry: UsageEntry, now: str) -> UsageStats:
        # Runs under the write lock taken by the enclosing transaction
        row = conn.execute("""
            SELECT id, title, category, total_seconds, visits, first_visit, last_visit
            FROM usage_records
            WHERE user_id = ? AND device_id = ? AND domain = ? AND date = ?
        """, (user_id, device_id, entry.domain, entry.date)).fetchone()

        if row is None:
            merged = with_insert_defaults(entry.stats, entry.domain)
            conn.execute("""
                INSERT INTO usage_records
                    (user_id, device_id, domain, title, category, date,
                     total_seconds, visits, first_visit, last_visit, synced_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (user_id, device_id, entry.domain, merged.title, merged.category,
                  entry.date, merged.total_seconds, merged.visits,
                  merged.first_visit, merged.last_visit, now))
            return merged

        merged = merge_usage(_stats_from_row(row), entry.stats)
        conn.execute("""
            UPDATE usage_records SET
                title = ?, category = ?, total_seconds = ?, visits = ?,
                first_visit = ?, last_visit = ?, synced_at = ?
            WHERE id = ?
        """, (merged.title, merged.category, merged.total_seconds, merged.visits,
              merged.first_visit, merged.last_visit, now, row['id']))
        return merged

    def pull(self, user_id: str, date: Optional[str] = None, since: Optional[str] = None,
             today: Optional[date_type] = None) -> list[MergedRecord]:
        """Usage merged across devices, for one day or everything since a date."""
        today = today or today_utc()
        with self.store.read() as conn:
            if date:
                parse_date(date)
                rows = conn.execute("""
                    SELECT domain, title, category, date,
                        COALESCE(SUM(total_seconds), 0) as total_seconds,
                        COALESCE(SUM(visits), 0) as visits,
                        MIN(first_visit) as first_visit,
                        MAX(last_visit) as last_visit
                    FROM usage_records
                    WHERE user_id = ? AND date = ?
                    GROUP BY domain, title, category, date
                    ORDER BY total_seconds DESC
                """, (user_id, date)).fetchall()
            else:
                if since:
                    parse_date(since, "since")
                else:
                    since = days_ago(today, DEFAULT_PULL_DAYS)
                rows = conn.execute("""
                    SELECT domain, title, category, date,
                        COALESCE(SUM(total_seconds), 0) as total_seconds,
                        COALESCE(SUM(visits), 0) as visits,
                        MIN(first_visit) as first_visit,
                        MAX(last_visit) as last_visit
                    FROM usage_records
                    WHERE user_id = ? AND date >= ?
                    GROUP BY domain, title, category, date
                    ORDER BY date DESC, total_seconds DESC
                """, (user_id, since)).fetchall()

        return [MergedRecord(**dict(r)) for r in rows]

    def full(self, user_id: str, days: int = DEFAULT_FULL_DAYS,
             today: Optional[date_type] = None) -> tuple[list[DeviceUsageRecord], int]:
        """Per-device records for the trailing `days` days (at most 90)."""
        days = clamp(days, 1, MAX_FULL_DAYS)
        since = days_ago(today or today_utc(), days)
        with self.store.read() as conn:
            rows = conn.execute("""
                SELECT domain, title, category, date, device_id,
                    total_seconds, visits, first_visit, last_visit
                FROM usage_records
                WHERE user_id = ? AND date >= ?
                ORDER BY date DESC, total_seconds DESC
            """, (user_id, since)).fetchall()
        return [DeviceUsageRecord(**dict(r)) for r in rows], days
