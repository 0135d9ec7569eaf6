# This project was developed with assistance from AI tools.
"""Tests for analytics range resolution, labels, and trend buckets."""

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

import pytest

from audres_api.services.time_range import (
    InvalidRangeError,
    RangeKind,
    bucket_label,
    period_labels,
    resolve_range,
    trend_labels,
)

MANILA = ZoneInfo("Asia/Manila")
# Wednesday
NOW = datetime(2026, 10, 21, 10, 0, tzinfo=MANILA)


def _local(y, m, d, h=0):
    return datetime(y, m, d, h, tzinfo=MANILA)


def _resolve(kind, **kwargs):
    return resolve_range(kind, now=kwargs.pop("now", NOW), tz=MANILA, **kwargs)


# ---------------------------------------------------------------------------
# Window resolution
# ---------------------------------------------------------------------------


class TestResolveRange:
    def test_today_and_previous_day(self):
        rng = _resolve("today")
        assert rng.start == _local(2026, 10, 21)
        assert rng.end == _local(2026, 10, 22)
        assert rng.previous_start == _local(2026, 10, 20)
        assert rng.previous_end == _local(2026, 10, 21)

    def test_yesterday(self):
        rng = _resolve(RangeKind.YESTERDAY)
        assert rng.start == _local(2026, 10, 20)
        assert rng.last_day == date(2026, 10, 20)

    def test_week_starts_on_sunday(self):
        rng = _resolve("thisWeek")
        assert rng.start == _local(2026, 10, 18)
        assert rng.end == _local(2026, 10, 25)
        assert rng.previous_start == _local(2026, 10, 11)

    def test_last_week(self):
        rng = _resolve("lastWeek")
        assert rng.start == _local(2026, 10, 11)
        assert rng.end == _local(2026, 10, 18)

    def test_last_month_crosses_year_boundary(self):
        rng = _resolve("lastMonth", now=datetime(2026, 1, 15, tzinfo=MANILA))
        assert rng.start == _local(2025, 12, 1)
        assert rng.end == _local(2026, 1, 1)
        assert rng.previous_start == _local(2025, 11, 1)
        assert rng.previous_end == _local(2025, 12, 1)

    def test_this_year(self):
        rng = _resolve("thisYear")
        assert rng.start == _local(2026, 1, 1)
        assert rng.end == _local(2027, 1, 1)
        assert rng.previous_start == _local(2025, 1, 1)

    def test_specific_day(self):
        rng = _resolve("specific", on=date(2026, 2, 14))
        assert rng.start == _local(2026, 2, 14)
        assert rng.end == _local(2026, 2, 15)

    def test_custom_previous_window_has_same_length(self):
        rng = _resolve("custom", start=date(2026, 10, 1), end=date(2026, 10, 10))
        assert rng.start == _local(2026, 10, 1)
        assert rng.end == _local(2026, 10, 11)
        assert rng.previous_start == _local(2026, 9, 21)
        assert rng.previous_end == _local(2026, 10, 1)

    def test_overall_is_unbounded(self):
        rng = _resolve("overall")
        assert not rng.is_bounded
        assert rng.last_day is None
        assert rng.contains(datetime(1999, 1, 1, tzinfo=UTC))

    def test_now_in_utc_is_taken_in_registrar_zone(self):
        # 18:00 UTC on the 20th is already the 21st in Manila
        rng = resolve_range("today", now=datetime(2026, 10, 20, 18, 0, tzinfo=UTC), tz=MANILA)
        assert rng.start == _local(2026, 10, 21)


class TestResolveRangeErrors:
    def test_unknown_range(self):
        with pytest.raises(InvalidRangeError, match="Unknown range"):
            _resolve("fortnight")

    def test_specific_requires_date(self):
        with pytest.raises(InvalidRangeError, match="requires a date"):
            _resolve("specific")

    def test_custom_requires_both_dates(self):
        with pytest.raises(InvalidRangeError, match="requires start and end"):
            _resolve("custom", start=date(2026, 1, 1))

    def test_custom_start_after_end(self):
        with pytest.raises(InvalidRangeError, match="must not be after"):
            _resolve("custom", start=date(2026, 2, 1), end=date(2026, 1, 1))


# ---------------------------------------------------------------------------
# Membership and labels
# ---------------------------------------------------------------------------


class TestContains:
    def test_half_open_window(self):
        rng = _resolve("today")
        assert rng.contains(_local(2026, 10, 21))
        assert not rng.contains(_local(2026, 10, 22))
        assert rng.in_previous(_local(2026, 10, 20, 23))

    def test_naive_timestamp_is_utc(self):
        rng = _resolve("today")
        # 16:30 UTC on the 20th is 00:30 on the 21st in Manila
        assert rng.contains(datetime(2026, 10, 20, 16, 30))


class TestPeriodLabels:
    def test_month_labels(self):
        assert period_labels(_resolve("thisMonth")) == (
            "This Month - October 2026",
            "Last Month - September 2026",
        )

    def test_day_labels(self):
        assert period_labels(_resolve("today")) == (
            "Today - Oct 21, 2026",
            "Yesterday - Oct 20, 2026",
        )

    def test_week_labels_show_span(self):
        current, previous = period_labels(_resolve("thisWeek"))
        assert current == "This Week - Oct 18 to Oct 24, 2026"
        assert previous == "Last Week - Oct 11 to Oct 17, 2026"

    def test_overall_labels(self):
        assert period_labels(_resolve("overall")) == ("Overall - All Time", "-")


# ---------------------------------------------------------------------------
# Trend buckets
# ---------------------------------------------------------------------------


class TestTrendBuckets:
    def test_hourly_buckets(self):
        labels = trend_labels(_resolve("today"))
        assert len(labels) == 24
        assert labels[0] == "0:00"
        assert labels[-1] == "23:00"

    def test_week_buckets(self):
        assert trend_labels(_resolve("lastWeek")) == [
            "SUN",
            "MON",
            "TUE",
            "WED",
            "THU",
            "FRI",
            "SAT",
        ]

    def test_month_buckets_follow_days_in_month(self):
        rng = _resolve("thisMonth", now=datetime(2028, 2, 10, tzinfo=MANILA))
        labels = trend_labels(rng)
        assert len(labels) == 29
        assert labels[-1] == "29"

    def test_year_buckets(self):
        labels = trend_labels(_resolve("thisYear"))
        assert labels[0] == "JAN"
        assert len(labels) == 12

    def test_custom_buckets_merge_same_calendar_day(self):
        rng = _resolve("custom", start=date(2025, 1, 1), end=date(2026, 1, 5))
        labels = trend_labels(rng)
        assert len(labels) == 365
        assert labels[0] == "01-01"

    def test_overall_buckets_span_years(self):
        rng = _resolve("overall")
        assert trend_labels(rng, (2024, 2026)) == ["2024", "2025", "2026"]
        assert trend_labels(rng) == []

    def test_bucket_label_uses_local_time(self):
        rng = _resolve("today")
        assert bucket_label(rng, datetime(2026, 10, 20, 17, 30, tzinfo=UTC)) == "1:00"

    def test_bucket_label_weekday(self):
        rng = _resolve("thisWeek")
        assert bucket_label(rng, _local(2026, 10, 21, 9)) == "WED"
