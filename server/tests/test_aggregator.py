"""Tests for the cross-device rollups."""
from datetime import date

import pytest

from trackserver.aggregator import Aggregator
from trackserver.devices import register_device
from trackserver.reconciler import Reconciler

TODAY = date(2024, 3, 15)


@pytest.fixture
def aggregator(store):
    return Aggregator(store)


@pytest.fixture
def push(store, user_id, device_id):
    reconciler = Reconciler(store)

    def _push(report, device=None):
        reconciler.push(user_id, device or device_id, report)
    return _push


def test_daily_sums_devices(store, aggregator, push, user_id, device_id):
    phone = register_device(store, user_id, "phone", "mobile").id
    push({"2024-03-15": {
        "example.com": {"category": "News", "totalSeconds": 300, "visits": 3},
        "docs.python.org": {"category": "Work", "totalSeconds": 600, "visits": 1},
    }})
    push({"2024-03-15": {"example.com": {"category": "News", "totalSeconds": 100, "visits": 1}}}, device=phone)

    daily = aggregator.daily(user_id, today=TODAY)
    assert daily.date == "2024-03-15"
    assert daily.totals.total_seconds == 1000
    assert daily.totals.total_visits == 5
    assert daily.totals.total_domains == 2
    assert [s.domain for s in daily.sites] == ["docs.python.org", "example.com"]
    assert daily.sites[1].total_seconds == 400
    assert {c.category: c.total_seconds for c in daily.categories} == {"Work": 600, "News": 400}
    breakdown = {d.device_id: d for d in daily.device_breakdown}
    assert breakdown[device_id].total_seconds == 900
    assert breakdown[phone].device_type == "mobile"
    assert daily.screenshot_count == 0


def test_empty_day_reports_zeros(aggregator, user_id):
    daily = aggregator.daily(user_id, date="2024-01-01")
    assert daily.sites == []
    assert daily.totals.total_seconds == 0
    assert daily.totals.total_visits == 0
    assert daily.totals.total_domains == 0


def test_weekly_window(aggregator, push, user_id):
    push({
        "2024-03-14": {"a.com": {"totalSeconds": 10}},
        "2024-03-01": {"a.com": {"totalSeconds": 20}},
        "2024-02-16": {"b.com": {"totalSeconds": 40}},
        "2024-02-15": {"c.com": {"totalSeconds": 80}},
    })
    weekly = aggregator.weekly(user_id, weeks=4, today=TODAY)
    assert weekly.since == "2024-02-16"
    assert [d.date for d in weekly.daily] == ["2024-02-16", "2024-03-01", "2024-03-14"]
    assert [s.domain for s in weekly.top_sites] == ["b.com", "a.com"]

    assert aggregator.weekly(user_id, weeks=50, today=TODAY).weeks == 12


def test_trends_compares_adjacent_weeks(aggregator, push, user_id):
    push({
        "2024-03-15": {"a.com": {"category": "Work", "totalSeconds": 100, "visits": 1}},
        "2024-03-08": {"a.com": {"category": "Work", "totalSeconds": 50, "visits": 1}},
        "2024-03-07": {"b.com": {"category": "Fun", "totalSeconds": 30, "visits": 2}},
        "2024-03-01": {"b.com": {"category": "Fun", "totalSeconds": 20, "visits": 2}},
        "2024-02-29": {"c.com": {"totalSeconds": 999}},
    })
    trends = aggregator.trends(user_id, today=TODAY)
    assert trends.this_week_since == "2024-03-08"
    assert trends.last_week_since == "2024-03-01"
    assert trends.this_week.total_seconds == 150
    assert trends.this_week.active_days == 2
    assert trends.last_week.total_seconds == 50
    assert trends.last_week.total_visits == 4
    assert [c.category for c in trends.this_week_categories] == ["Work"]
    assert [c.category for c in trends.last_week_categories] == ["Fun"]


def test_trends_empty_windows_are_zero(aggregator, user_id):
    trends = aggregator.trends(user_id, today=TODAY)
    assert trends.this_week.total_seconds == 0
    assert trends.last_week.active_days == 0


def test_top_domains_ranks_by_time(aggregator, push, user_id):
    push({"2024-03-14": {
        "example.com": {"totalSeconds": 300},
        "example.org": {"totalSeconds": 500},
    }})
    top = aggregator.top_domains(user_id, period_days=7, limit=1, today=TODAY)
    assert top.period == 7
    assert [d.domain for d in top.domains] == ["example.org"]
    assert top.domains[0].total_seconds == 500
    assert top.domains[0].active_days == 1


def test_top_domains_clamps_arguments(aggregator, user_id):
    top = aggregator.top_domains(user_id, period_days=1000, limit=0, today=TODAY)
    assert top.period == 90
    assert top.domains == []


def test_profile_stats_and_export(aggregator, push, user_id, device_id):
    push({"2024-03-14": {"a.com": {"totalSeconds": 10, "visits": 1}},
          "2024-03-15": {"a.com": {"totalSeconds": 5, "visits": 1}}})
    stats = aggregator.profile_stats(user_id)
    assert stats.total_days == 2
    assert stats.total_domains == 1
    assert stats.total_seconds == 15

    exported = aggregator.export(user_id)
    assert len(exported.usage) == 2
    assert [d["id"] for d in exported.devices] == [device_id]
    assert exported.screenshots == []
