"""Cross-device rollups over the usage timeline."""
from datetime import date as date_type
from typing import Optional

from .db import Store, utc_now
from .models import (
    CategoryTotal,
    CategoryUsage,
    DailyResponse,
    DailyTotals,
    DayUsage,
    DeviceBreakdown,
    DomainRank,
    ExportResponse,
    ProfileStats,
    SiteUsage,
    TopDomainsResponse,
    TrendsResponse,
    WeeklyResponse,
    WindowTotals,
    clamp,
    days_ago,
    parse_date,
    today_utc,
)

DEFAULT_WEEKS = 4
MAX_WEEKS = 12
WEEKLY_TOP_SITES = 20
TREND_WINDOW_DAYS = 7
DEFAULT_PERIOD_DAYS = 7
MAX_PERIOD_DAYS = 90
DEFAULT_DOMAIN_LIMIT = 20
MAX_DOMAIN_LIMIT = 100
EXPORT_EVENT_LIMIT = 1000


class Aggregator:
    """
    Read-only rollups of a user's usage records.

    Every trailing window of N days starts at today - N days (inclusive).
    Sums are coalesced so that empty windows report zeros rather than nulls.
    """

    def __init__(self, store: Store):
        self.store = store

    def daily(self, user_id: str, date: Optional[str] = None,
              today: Optional[date_type] = None) -> DailyResponse:
        if date:
            parse_date(date)
        else:
            date = (today or today_utc()).isoformat()

        with self.store.read() as conn:
            sites = conn.execute("""
                SELECT domain, title, category,
                    SUM(total_seconds) as total_seconds,
                    SUM(visits) as total_visits
                FROM usage_records
                WHERE user_id = ? AND date = ?
                GROUP BY domain, title, category
                ORDER BY total_seconds DESC
            """, (user_id, date)).fetchall()

            totals = conn.execute("""
                SELECT
                    COALESCE(SUM(total_seconds), 0) as total_seconds,
                    COALESCE(SUM(visits), 0) as total_visits,
                    COUNT(DISTINCT domain) as total_domains
                FROM usage_records
                WHERE user_id = ? AND date = ?
            """, (user_id, date)).fetchone()

            categories = conn.execute("""
                SELECT category,
                    SUM(total_seconds) as total_seconds,
                    SUM(visits) as total_visits,
                    COUNT(DISTINCT domain) as sites
                FROM usage_records
                WHERE user_id = ? AND date = ?
                GROUP BY category
                ORDER BY total_seconds DESC
            """, (user_id, date)).fetchall()

            devices = conn.execute("""
                SELECT d.id as device_id, d.device_name, d.device_type,
                    SUM(ur.total_seconds) as total_seconds,
                    SUM(ur.visits) as total_visits,
                    COUNT(DISTINCT ur.domain) as domains
                FROM usage_records ur
                JOIN devices d ON ur.device_id = d.id
                WHERE ur.user_id = ? AND ur.date = ?
                GROUP BY d.id, d.device_name, d.device_type
                ORDER BY total_seconds DESC
            """, (user_id, date)).fetchall()

            screenshot_count = conn.execute(
                "SELECT COUNT(*) FROM screenshots WHERE user_id = ? AND date = ?",
                (user_id, date)
            ).fetchone()[0]

        return DailyResponse(
            date=date,
            sites=[SiteUsage(**dict(r)) for r in sites],
            totals=DailyTotals(**dict(totals)),
            categories=[CategoryUsage(**dict(r)) for r in categories],
            device_breakdown=[DeviceBreakdown(**dict(r)) for r in devices],
            screenshot_count=screenshot_count or 0,
        )

    def weekly(self, user_id: str, weeks: int = DEFAULT_WEEKS,
               today: Optional[date_type] = None) -> WeeklyResponse:
        weeks = clamp(weeks, 1, MAX_WEEKS)
        since = days_ago(today or today_utc(), weeks * 7)

        with self.store.read() as conn:
            daily = conn.execute("""
                SELECT date,
                    SUM(total_seconds) as total_seconds,
                    SUM(visits) as total_visits,
                    COUNT(DISTINCT domain) as total_domains
                FROM usage_records
                WHERE user_id = ? AND date >= ?
                GROUP BY date
                ORDER BY date ASC
            """, (user_id, since)).fetchall()

            top_sites = conn.execute("""
                SELECT domain, title, category,
                    SUM(total_seconds) as total_seconds,
                    SUM(visits) as total_visits
                FROM usage_records
                WHERE user_id = ? AND date >= ?
                GROUP BY domain, title, category
                ORDER BY total_seconds DESC
                LIMIT ?
            """, (user_id, since, WEEKLY_TOP_SITES)).fetchall()

            categories = conn.execute("""
                SELECT category,
                    SUM(total_seconds) as total_seconds,
                    SUM(visits) as total_visits,
                    COUNT(DISTINCT domain) as sites
                FROM usage_records
                WHERE user_id = ? AND date >= ?
                GROUP BY category
                ORDER BY total_seconds DESC
            """, (user_id, since)).fetchall()

        return WeeklyResponse(
            weeks=weeks,
            since=since,
            daily=[DayUsage(**dict(r)) for r in daily],
            top_sites=[SiteUsage(**dict(r)) for r in top_sites],
            categories=[CategoryUsage(**dict(r)) for r in categories],
        )

    def trends(self, user_id: str, today: Optional[date_type] = None) -> TrendsResponse:
        """This week against the week before it, side by side."""
        today = today or today_utc()
        this_week_since = days_ago(today, TREND_WINDOW_DAYS)
        last_week_since = days_ago(today, 2 * TREND_WINDOW_DAYS)

        with self.store.read() as conn:
            window_sql = """
                SELECT
                    COALESCE(SUM(total_seconds), 0) as total_seconds,
                    COALESCE(SUM(visits), 0) as total_visits,
                    COUNT(DISTINCT domain) as total_domains,
                    COUNT(DISTINCT date) as active_days
                FROM usage_records
                WHERE user_id = ? AND date >= ? AND date < ?
            """
            category_sql = """
                SELECT category, SUM(total_seconds) as total_seconds
                FROM usage_records
                WHERE user_id = ? AND date >= ? AND date < ?
                GROUP BY category
                ORDER BY total_seconds DESC
            """
            # this week has no upper bound
            this_args = (user_id, this_week_since, "9999-12-31")
            last_args = (user_id, last_week_since, this_week_since)

            this_week = conn.execute(window_sql, this_args).fetchone()
            last_week = conn.execute(window_sql, last_args).fetchone()
            this_cats = conn.execute(category_sql, this_args).fetchall()
            last_cats = conn.execute(category_sql, last_args).fetchall()

        return TrendsResponse(
            this_week_since=this_week_since,
            last_week_since=last_week_since,
            this_week=WindowTotals(**dict(this_week)),
            last_week=WindowTotals(**dict(last_week)),
            this_week_categories=[CategoryTotal(**dict(r)) for r in this_cats],
            last_week_categories=[CategoryTotal(**dict(r)) for r in last_cats],
        )

    def top_domains(self, user_id: str, period_days: int = DEFAULT_PERIOD_DAYS,
                    limit: int = DEFAULT_DOMAIN_LIMIT,
                    today: Optional[date_type] = None) -> TopDomainsResponse:
        period_days = clamp(period_days, 1, MAX_PERIOD_DAYS)
        limit = clamp(limit, 1, MAX_DOMAIN_LIMIT)
        since = days_ago(today or today_utc(), period_days)

        with self.store.read() as conn:
            rows = conn.execute("""
                SELECT domain, title, category,
                    SUM(total_seconds) as total_seconds,
                    SUM(visits) as total_visits,
                    COUNT(DISTINCT date) as active_days
                FROM usage_records
                WHERE user_id = ? AND date >= ?
                GROUP BY domain, title, category
                ORDER BY total_seconds DESC
                LIMIT ?
            """, (user_id, since, limit)).fetchall()

        return TopDomainsResponse(
            period=period_days,
            domains=[DomainRank(**dict(r)) for r in rows],
        )

    def profile_stats(self, user_id: str) -> ProfileStats:
        with self.store.read() as conn:
            usage = conn.execute("""
                SELECT
                    COUNT(DISTINCT date) as total_days,
                    COUNT(DISTINCT domain) as total_domains,
                    COALESCE(SUM(total_seconds), 0) as total_seconds,
                    COALESCE(SUM(visits), 0) as total_visits
                FROM usage_records
                WHERE user_id = ?
            """, (user_id,)).fetchone()
            screenshots = conn.execute(
                "SELECT COUNT(*) FROM screenshots WHERE user_id = ?", (user_id,)
            ).fetchone()[0]
        return ProfileStats(**dict(usage), total_screenshots=screenshots or 0)

    def export(self, user_id: str) -> ExportResponse:
        """Everything stored for a user, for download."""
        with self.store.read() as conn:
            usage = conn.execute(
                "SELECT * FROM usage_records WHERE user_id = ? ORDER BY date DESC",
                (user_id,)
            ).fetchall()
            events = conn.execute(
                "SELECT * FROM activity_events WHERE user_id = ? ORDER BY timestamp DESC LIMIT ?",
                (user_id, EXPORT_EVENT_LIMIT)
            ).fetchall()
            devices = conn.execute(
                "SELECT * FROM devices WHERE user_id = ? ORDER BY created_at DESC",
                (user_id,)
            ).fetchall()
            screenshots = conn.execute("""
                SELECT id, device_id, domain, title, url, category, timestamp, date, file_size
                FROM screenshots
                WHERE user_id = ?
                ORDER BY timestamp DESC
            """, (user_id,)).fetchall()

        return ExportResponse(
            exported_at=utc_now(),
            usage=[dict(r) for r in usage],
            events=[dict(r) for r in events],
            devices=[dict(r) for r in devices],
            screenshots=[dict(r) for r in screenshots],
        )
