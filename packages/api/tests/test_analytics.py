# This project was developed with assistance from AI tools.
"""Tests for the analytics report: counting, durations, leaderboards, trend."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch
from zoneinfo import ZoneInfo

import pytest
from audres_db.enums import ItemStatus, RequestStatus, UserRole

from audres_api.schemas.rating import RatingSummary
from audres_api.services.analytics import (
    AnalyticsSnapshot,
    approval_speed,
    build_report,
    format_duration,
    get_analytics,
    load_snapshot,
    registration_growth,
    stage_speed,
)
from audres_api.services.time_range import resolve_range

from .factories import make_item, make_ledger, make_user

MANILA = ZoneInfo("Asia/Manila")
NOW = datetime(2026, 10, 21, 10, 0, tzinfo=MANILA)
PRICES = {
    "Transcript of Record": Decimal("350"),
    "Diploma": Decimal("800"),
    "Form 137": Decimal("200"),
}


def _rng(kind, **kwargs):
    return resolve_range(kind, now=NOW, tz=MANILA, **kwargs)


def _at(day, hour):
    """UTC timestamp; Manila is eight hours ahead."""
    return datetime(2026, 10, day, hour, 0, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


class TestFormatDuration:
    @pytest.mark.parametrize(
        "hours,expected",
        [
            (0, "Less than a minute"),
            (0.004, "Less than a minute"),
            (1 / 60, "1 min"),
            (2.0, "2 hrs"),
            (1.0, "1 hr"),
            (26 + 5 / 60, "1 day 2 hrs 5 mins"),
            (48.0, "2 days"),
        ],
    )
    def test_format(self, hours, expected):
        assert format_duration(hours) == expected


class TestSpeedLabels:
    @pytest.mark.parametrize(
        "hours,label",
        [
            (0.5, "Quick"),
            (1.0, "Quick"),
            (4.0, "Fast"),
            (4.01, "Moderate"),
            (24.0, "Standard"),
            (40.0, "Slow"),
            (72.0, "Warning"),
            (73.0, "Critical"),
        ],
    )
    def test_approval_speed(self, hours, label):
        assert approval_speed(hours) == label

    @pytest.mark.parametrize(
        "hours,label",
        [(0.01, "Quick"), (0.4, "Fast"), (0.9, "Moderate"), (2.0, "Standard"), (100.0, "Critical")],
    )
    def test_stage_speed(self, hours, label):
        assert stage_speed(hours) == label


class TestRegistrationGrowth:
    @pytest.mark.parametrize(
        "current,previous,expected",
        [
            (5, 4, "+25.00%"),
            (9, 10, "-10.00%"),
            (3, 3, "No Progress"),
            (3, 0, "+3 New Users"),
            (1, 0, "+1 New User"),
            (0, 0, "No New Users"),
        ],
    )
    def test_bounded(self, current, previous, expected):
        assert registration_growth(current, previous) == expected

    def test_overall(self):
        assert registration_growth(40, 0, bounded=False) == "+40 Users"
        assert registration_growth(0, 0, bounded=False) == "No Users"


# ---------------------------------------------------------------------------
# Report construction
# ---------------------------------------------------------------------------


def _october_snapshot() -> AnalyticsSnapshot:
    users = {
        1: make_user(id=1, first_name="Ana", last_name="Reyes", course="BSIT"),
        2: make_user(
            id=2,
            first_name="Ben",
            last_name="Santos",
            role=UserRole.ALUMNI,
            course="BSN",
            year_level=None,
        ),
        9: make_user(id=9, first_name="Carla", last_name="Cruz", role=UserRole.STAFF),
        10: make_user(id=10, first_name="Dan", last_name="Lim", role=UserRole.STAFF),
    }
    l1 = make_ledger(
        id=1,
        tr="A1",
        status=RequestStatus.CLAIMED,
        request_by=1,
        process_by=9,
        created_at=_at(5, 1),
        review_at=_at(5, 1) + timedelta(minutes=30),
        assess_at=_at(5, 2) + timedelta(minutes=30),
        verify_at=_at(5, 4),
    )
    l2 = make_ledger(
        id=2,
        tr="A2",
        status=RequestStatus.VERIFIED,
        request_by=1,
        process_by=9,
        created_at=_at(5, 2),
        verify_at=_at(5, 7),
    )
    l3 = make_ledger(
        id=3,
        tr="A3",
        request_by=2,
        created_at=_at(6, 2),
        decline_at=_at(6, 5),
    )
    l4 = make_ledger(
        id=4,
        tr="A4",
        status=RequestStatus.REVIEWED,
        request_by=2,
        process_by=10,
        created_at=_at(6, 2),
        hold_at=_at(6, 9),
    )
    l5 = make_ledger(id=5, tr="A5", request_by=1, created_at=_at(7, 3))
    items = [
        make_item(id=1, tr="A1", quantity=2, status=ItemStatus.APPROVED),
        make_item(id=2, tr="A1", type="Diploma", status=ItemStatus.APPROVED),
        make_item(id=3, tr="A2", status=ItemStatus.APPROVED),
        make_item(id=4, tr="A3", status=ItemStatus.DECLINED, purpose="Board Exam"),
        make_item(id=5, tr="A4", type="Form 137", status=ItemStatus.APPROVED),
        make_item(id=6, tr="A5"),
        make_item(id=7, tr="OUTSIDE", type="Diploma", quantity=9),
    ]
    return AnalyticsSnapshot(
        ledgers=[l1, l2, l3, l4, l5],
        items=items,
        users=users,
        prices=PRICES,
        to_verify=2,
        total_users=20,
        to_verify_users=3,
        registered_current=4,
        registered_previous=2,
        ratings=RatingSummary(average=4.5, total=8),
    )


@pytest.fixture
def october_report():
    return build_report(_rng("thisMonth"), _october_snapshot(), computed_at=NOW)


class TestStatusCounts:
    def test_headline_counts(self, october_report):
        r = october_report
        assert r.total_requests == 5
        assert (r.approved.count, r.approved.percentage) == (2, 40.0)
        assert r.on_process.count == 1
        assert r.pending.count == 1
        assert r.declined.count == 1
        assert r.on_hold.count == 1
        assert r.to_verify == 2

    def test_breakdown_follows_lifecycle_order(self, october_report):
        assert [(s.status, s.count) for s in october_report.status_breakdown] == [
            ("Pending", 2),
            ("Reviewed", 1),
            ("Verified", 1),
            ("Claimed", 1),
        ]

    def test_labels(self, october_report):
        assert october_report.current_period_label == "This Month - October 2026"
        assert october_report.range_end.day == 31


class TestDurations:
    def test_approval_average(self, october_report):
        t = october_report.approval_time
        assert t.duration == "4 hrs"
        assert t.speed == "Fast"
        assert t.sample_size == 2

    def test_negative_spans_are_skipped(self):
        valid = make_ledger(
            id=1,
            tr="A1",
            status=RequestStatus.VERIFIED,
            created_at=_at(5, 1),
            verify_at=_at(5, 3),
        )
        skewed = make_ledger(
            id=2,
            tr="A2",
            status=RequestStatus.VERIFIED,
            created_at=_at(5, 6),
            verify_at=_at(5, 2),
            review_at=_at(5, 5),
        )
        snapshot = AnalyticsSnapshot(ledgers=[valid, skewed], prices=PRICES)

        report = build_report(_rng("thisMonth"), snapshot, computed_at=NOW)

        assert report.approval_time.sample_size == 1
        assert report.approval_time.hours == 2.0
        assert report.approval_time.duration == "2 hrs"
        assert report.review_time.sample_size == 0

    def test_review_and_assessment(self, october_report):
        assert october_report.review_time.duration == "30 mins"
        assert october_report.review_time.speed == "Fast"
        assert october_report.assessment_time.duration == "1 hr"
        assert october_report.assessment_time.speed == "Moderate"


class TestRequesters:
    def test_top_requesters(self, october_report):
        top = october_report.top_requesters
        assert [(t.name, t.total_requests) for t in top] == [("Ana Reyes", 3), ("Ben Santos", 2)]
        assert october_report.active_requesters == 2

    def test_distributions(self, october_report):
        roles = {d.label: d.count for d in october_report.role_distribution}
        assert roles == {"student": 3, "alumni": 2}
        years = [(d.label, d.count, d.percentage) for d in october_report.year_level_distribution]
        assert years == [("3rd Year", 3, 60.0), (None, 2, 40.0)]


class TestDocuments:
    def test_totals_exclude_declined_and_foreign_items(self, october_report):
        r = october_report
        docs = {d.type: d for d in r.documents}
        assert docs["Transcript of Record"].total_quantity == 5
        assert docs["Transcript of Record"].total_requests == 4
        assert docs["Transcript of Record"].revenue == Decimal("1400")
        assert docs["Diploma"].total_quantity == 1
        assert r.total_revenue == Decimal("2400")

    def test_paper_usage_counts_released_only(self, october_report):
        docs = {d.type: d for d in october_report.documents}
        assert docs["Transcript of Record"].paper_usage == 2
        assert docs["Diploma"].paper_usage == 1
        assert docs["Form 137"].paper_usage == 0
        assert october_report.total_paper_usage == 3

    def test_top_documents_tie_broken_by_name(self, october_report):
        assert [d.type for d in october_report.top_documents] == [
            "Transcript of Record",
            "Diploma",
            "Form 137",
        ]

    def test_top_purpose(self, october_report):
        assert october_report.top_purposes[0].label == "Employment"


class TestTrend:
    def test_daily_buckets_for_month(self, october_report):
        trend = {p.label: p for p in october_report.trend}
        assert len(trend) == 31
        assert trend["5"].count == 2
        assert trend["5"].revenue == Decimal("1850")
        assert trend["6"].count == 2
        assert trend["6"].revenue == Decimal("200")
        assert trend["1"].count == 0

    def test_overall_buckets_by_year(self):
        snapshot = AnalyticsSnapshot(
            ledgers=[
                make_ledger(id=1, tr="A", created_at=datetime(2024, 6, 1, tzinfo=UTC)),
                make_ledger(id=2, tr="B", created_at=datetime(2026, 6, 1, tzinfo=UTC)),
            ]
        )
        report = build_report(_rng("overall"), snapshot, computed_at=NOW)
        assert [(p.label, p.count) for p in report.trend] == [
            ("2024", 1),
            ("2025", 0),
            ("2026", 1),
        ]
        assert report.previous_period_label == "-"
        assert report.range_start is None


class TestLeaderboards:
    def test_processed(self, october_report):
        rows = october_report.staff_processed
        assert [(e.display_name, e.total, e.percentage) for e in rows] == [
            ("Carla Cruz", 2, 66.67),
            ("Dan Lim", 1, 33.33),
        ]
        assert rows[0].statuses == {"Claimed": 1, "Verified": 1}
        assert october_report.overall_processed == 3

    def test_successful(self, october_report):
        assert [(e.staff_id, e.total) for e in october_report.staff_successful] == [(9, 2)]
        assert october_report.overall_successful == 2

    def test_declined_includes_unassigned(self, october_report):
        rows = october_report.staff_declined
        assert [(e.staff_id, e.display_name) for e in rows] == [(None, "Unassigned")]
        assert october_report.overall_declined == 1


class TestRegistrations:
    def test_growth(self, october_report):
        reg = october_report.registrations
        assert reg.growth == "+100.00%"
        assert reg.total_users == 20
        assert reg.to_verify_users == 3
        assert october_report.ratings.average == 4.5


class TestEmptyWindow:
    def test_today_with_no_requests(self):
        report = build_report(_rng("today"), AnalyticsSnapshot(), computed_at=NOW)

        assert report.total_requests == 0
        assert len(report.trend) == 24
        assert all(p.count == 0 for p in report.trend)
        for share in (report.approved, report.on_process, report.pending, report.declined):
            assert share.percentage == 0.0
        assert report.approval_time.sample_size == 0
        assert report.approval_time.duration == "Less than a minute"
        assert report.top_requesters == []
        assert report.registrations.growth == "No New Users"


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _result(*, items=None, count=None):
    result = MagicMock()
    result.scalars.return_value.all.return_value = items or []
    result.scalar.return_value = count
    return result


class TestLoadSnapshot:
    @pytest.mark.asyncio
    async def test_query_sequence_for_bounded_range(self):
        ledger = make_ledger(tr="A1", request_by=1, process_by=9, created_at=_at(5, 1))
        student = make_user(id=1)
        staff = make_user(id=9, role=UserRole.STAFF)
        session = AsyncMock()
        session.execute = AsyncMock(
            side_effect=[
                _result(items=[ledger]),
                _result(count=2),
                _result(items=ledger.items),
                _result(items=[student, staff]),
                _result(count=30),
                _result(count=4),
                _result(count=6),
                _result(count=3),
            ]
        )

        with (
            patch(
                "audres_api.services.analytics.get_prices", AsyncMock(return_value=PRICES)
            ),
            patch(
                "audres_api.services.analytics.get_rating_summary",
                AsyncMock(return_value=RatingSummary(average=5.0, total=1)),
            ),
        ):
            snapshot = await load_snapshot(session, _rng("thisMonth"))

        assert snapshot.ledgers == [ledger]
        assert snapshot.to_verify == 2
        assert set(snapshot.users) == {1, 9}
        assert snapshot.total_users == 30
        assert snapshot.to_verify_users == 4
        assert (snapshot.registered_current, snapshot.registered_previous) == (6, 3)
        assert session.execute.await_count == 8

    @pytest.mark.asyncio
    async def test_empty_overall_skips_item_and_user_queries(self):
        session = AsyncMock()
        session.execute = AsyncMock(
            side_effect=[_result(), _result(count=0), _result(count=12), _result(count=1)]
        )
        with (
            patch("audres_api.services.analytics.get_prices", AsyncMock(return_value={})),
            patch(
                "audres_api.services.analytics.get_rating_summary",
                AsyncMock(return_value=RatingSummary()),
            ),
        ):
            snapshot = await load_snapshot(session, _rng("overall"))

        assert snapshot.items == []
        assert snapshot.users == {}
        assert (snapshot.registered_current, snapshot.registered_previous) == (12, 0)

    @pytest.mark.asyncio
    async def test_get_analytics_builds_report(self):
        with patch(
            "audres_api.services.analytics.load_snapshot",
            AsyncMock(return_value=AnalyticsSnapshot()),
        ):
            report = await get_analytics(AsyncMock(), "thisWeek", now=NOW)
        assert report.range == "thisWeek"
        assert [p.label for p in report.trend][:2] == ["SUN", "MON"]
