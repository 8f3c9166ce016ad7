"""Tests for the usage merge rules."""
from trackserver.merge import UsageStats, merge_usage, with_insert_defaults


def test_merge_into_nothing_keeps_incoming():
    incoming = UsageStats(total_seconds=10, visits=1)
    assert merge_usage(None, incoming) == incoming


def test_counters_take_max():
    existing = UsageStats(total_seconds=100, visits=2)
    merged = merge_usage(existing, UsageStats(total_seconds=80, visits=5))
    assert merged.total_seconds == 100
    assert merged.visits == 5


def test_null_title_and_category_keep_existing():
    existing = UsageStats(title="Example", category="News")
    merged = merge_usage(existing, UsageStats(title=None, category=None))
    assert merged.title == "Example"
    assert merged.category == "News"

    merged = merge_usage(existing, UsageStats(title="Example Domain", category=None))
    assert merged.title == "Example Domain"
    assert merged.category == "News"


def test_visit_window_only_widens():
    existing = UsageStats(first_visit="2024-01-01T09:00:00.000Z", last_visit="2024-01-01T10:00:00.000Z")
    merged = merge_usage(existing, UsageStats(
        first_visit="2024-01-01T09:30:00.000Z", last_visit="2024-01-01T11:00:00.000Z"
    ))
    assert merged.first_visit == "2024-01-01T09:00:00.000Z"
    assert merged.last_visit == "2024-01-01T11:00:00.000Z"


def test_missing_visit_bounds_are_not_bounds():
    existing = UsageStats(first_visit=None, last_visit="2024-01-01T10:00:00.000Z")
    merged = merge_usage(existing, UsageStats(first_visit="2024-01-01T08:00:00.000Z", last_visit=None))
    assert merged.first_visit == "2024-01-01T08:00:00.000Z"
    assert merged.last_visit == "2024-01-01T10:00:00.000Z"


def test_merge_is_idempotent():
    existing = UsageStats(total_seconds=50, visits=3, title="a", category="b",
                          first_visit="2024-01-01T09:00:00.000Z", last_visit="2024-01-01T09:10:00.000Z")
    incoming = UsageStats(total_seconds=70, visits=1, first_visit="2024-01-01T08:00:00.000Z")
    once = merge_usage(existing, incoming)
    assert merge_usage(once, incoming) == once


def test_counter_and_window_merge_is_order_independent():
    existing = UsageStats(total_seconds=5, visits=5)
    a = UsageStats(total_seconds=30, visits=1, first_visit="2024-01-01T12:00:00.000Z",
                   last_visit="2024-01-01T12:30:00.000Z")
    b = UsageStats(total_seconds=10, visits=9, first_visit="2024-01-01T07:00:00.000Z",
                   last_visit="2024-01-01T08:00:00.000Z")
    ab = merge_usage(merge_usage(existing, a), b)
    ba = merge_usage(merge_usage(existing, b), a)
    for field in ("total_seconds", "visits", "first_visit", "last_visit"):
        assert getattr(ab, field) == getattr(ba, field)


def test_insert_defaults():
    filled = with_insert_defaults(UsageStats(total_seconds=1), "example.com")
    assert filled.title == "example.com"
    assert filled.category == "Other"
    kept = with_insert_defaults(UsageStats(title="T", category="C"), "example.com")
    assert (kept.title, kept.category) == ("T", "C")
