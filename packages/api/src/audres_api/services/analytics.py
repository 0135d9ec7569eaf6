# This project was developed with assistance from AI tools.
"""Analytics service for the registrar dashboard.

Reports are recomputed on every call. ``load_snapshot`` runs the read
queries for a resolved window; ``build_report`` is a pure function over
the loaded rows, so the counting and bucketing rules are testable with
plain objects.
"""

import logging
from collections import Counter, defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal

from audres_db import DocumentRequest, RequestItem, User
from audres_db.enums import ItemStatus, RequestStatus, UserRole
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.analytics import (
    AnalyticsReport,
    CountShare,
    DocumentStatusCount,
    DocumentTotals,
    DocumentVolume,
    LabelCount,
    RegistrationGrowth,
    RequesterVolume,
    StaffEntry,
    StageDuration,
    StatusCount,
    TrendPoint,
)
from ..schemas.rating import RatingSummary
from .catalog import get_prices
from .ratings import get_rating_summary
from .time_range import (
    RangeKind,
    ResolvedRange,
    bucket_label,
    period_labels,
    resolve_range,
    trend_labels,
)

logger = logging.getLogger(__name__)

# Upper bounds in hours, inclusive. Anything slower is Critical.
_APPROVAL_SPEEDS: tuple[tuple[float, str], ...] = (
    (1.0, "Quick"),
    (4.0, "Fast"),
    (12.0, "Moderate"),
    (24.0, "Standard"),
    (48.0, "Slow"),
    (72.0, "Warning"),
)
_STAGE_SPEEDS: tuple[tuple[float, str], ...] = (
    (1.0 / 60, "Quick"),
    (0.5, "Fast"),
    (1.0, "Moderate"),
    (3.0, "Standard"),
    (24.0, "Slow"),
    (72.0, "Warning"),
)

_TOP_N = 3


@dataclass
class AnalyticsSnapshot:
    """Rows and counts read for one window."""

    ledgers: list = field(default_factory=list)
    items: list = field(default_factory=list)
    users: dict = field(default_factory=dict)
    prices: dict[str, Decimal] = field(default_factory=dict)
    to_verify: int = 0
    total_users: int = 0
    to_verify_users: int = 0
    registered_current: int = 0
    registered_previous: int = 0
    ratings: RatingSummary = field(default_factory=RatingSummary)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _percent(count: int, total: int, digits: int = 1) -> float:
    if total <= 0:
        return 0.0
    return round(count / total * 100, digits)


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'s' if n > 1 else ''}"


def format_duration(hours: float) -> str:
    """Render hours as ``1 day 2 hrs 5 mins``; under half a minute reads ``Less than a minute``."""
    total_minutes = int(hours * 60 + 0.5) if hours > 0 else 0
    days, rest = divmod(total_minutes, 60 * 24)
    hrs, mins = divmod(rest, 60)
    parts = []
    if days:
        parts.append(_plural(days, "day"))
    if hrs:
        parts.append(_plural(hrs, "hr"))
    if mins:
        parts.append(_plural(mins, "min"))
    return " ".join(parts) or "Less than a minute"


def _speed(hours: float, thresholds: tuple[tuple[float, str], ...]) -> str:
    for bound, label in thresholds:
        if hours <= bound:
            return label
    return "Critical"


def approval_speed(hours: float) -> str:
    return _speed(hours, _APPROVAL_SPEEDS)


def stage_speed(hours: float) -> str:
    """Speed label for review and assessment, which are expected within minutes."""
    return _speed(hours, _STAGE_SPEEDS)


def registration_growth(current: int, previous: int, *, bounded: bool = True) -> str:
    """Describe new requester accounts against the preceding window.

    Examples: ``+25.00%``, ``-10.00%``, ``No Progress``, ``+3 New Users``,
    ``No New Users``; for the unbounded range ``+40 Users`` or ``No Users``.
    """
    if not bounded:
        return f"+{_plural(current, 'User')}" if current > 0 else "No Users"
    if previous > 0:
        diff = current - previous
        if diff == 0:
            return "No Progress"
        sign = "+" if diff > 0 else "-"
        return f"{sign}{abs(diff) / previous * 100:.2f}%"
    if current > 0:
        return f"+{_plural(current, 'New User')}"
    return "No New Users"


# ---------------------------------------------------------------------------
# Report sections
# ---------------------------------------------------------------------------


def _average_hours(pairs: Iterable[tuple[datetime | None, datetime | None]]) -> tuple[float, int]:
    """Mean span in hours over pairs with both ends set; negative spans are skipped."""
    spans = [
        (end - start).total_seconds() / 3600
        for start, end in pairs
        if start is not None and end is not None
    ]
    spans = [s for s in spans if s >= 0]
    if not spans:
        return 0.0, 0
    return sum(spans) / len(spans), len(spans)


def _stage_duration(pairs, speed) -> StageDuration:
    hours, samples = _average_hours(pairs)
    return StageDuration(
        duration=format_duration(hours),
        hours=round(hours, 2),
        sample_size=samples,
        speed=speed(hours),
    )


def _distribution(counter: Counter, total: int | None = None) -> list[LabelCount]:
    rows = sorted(counter.items(), key=lambda kv: (-kv[1], kv[0] or ""))
    return [
        LabelCount(
            label=label,
            count=count,
            percentage=_percent(count, total) if total is not None else None,
        )
        for label, count in rows
    ]


def _staff_name(staff_id: int | None, users: dict) -> str:
    if staff_id is None:
        return "Unassigned"
    user = users.get(staff_id)
    return user.full_name if user is not None else f"User {staff_id}"


def _leaderboard(ledgers: Iterable, users: dict, *, include_unassigned: bool = False):
    """Group ledgers by ``process_by`` into leaderboard rows, largest first."""
    groups: dict[int | None, Counter] = defaultdict(Counter)
    for ledger in ledgers:
        if ledger.process_by is None and not include_unassigned:
            continue
        groups[ledger.process_by][ledger.status.value] += 1

    overall = sum(sum(c.values()) for c in groups.values())
    entries = [
        StaffEntry(
            staff_id=staff_id,
            display_name=_staff_name(staff_id, users),
            total=sum(counts.values()),
            percentage=_percent(sum(counts.values()), overall, digits=2),
            statuses=dict(counts),
        )
        for staff_id, counts in groups.items()
    ]
    entries.sort(key=lambda e: (-e.total, e.display_name))
    return entries, overall


def _overall_years(rng: ResolvedRange, ledgers: list) -> tuple[int, int] | None:
    if rng.is_bounded or not ledgers:
        return None
    years = [rng.local(ledger.created_at).year for ledger in ledgers]
    return min(years), max(years)


def build_report(
    rng: ResolvedRange,
    snapshot: AnalyticsSnapshot,
    computed_at: datetime | None = None,
) -> AnalyticsReport:
    """Compute the dashboard report from already loaded rows."""
    ledgers = snapshot.ledgers
    users = snapshot.users
    total = len(ledgers)

    def share(count: int) -> CountShare:
        return CountShare(count=count, percentage=_percent(count, total))

    # -- status counts --
    approved = sum(1 for r in ledgers if r.status in RequestStatus.approved_statuses())
    on_process = sum(1 for r in ledgers if r.status in RequestStatus.on_process_statuses())
    pending = sum(1 for r in ledgers if r.status == RequestStatus.PENDING and r.decline_at is None)
    declined = sum(1 for r in ledgers if r.decline_at is not None)
    on_hold = sum(1 for r in ledgers if r.hold_at is not None)

    by_status = Counter(r.status for r in ledgers)
    status_breakdown = [
        StatusCount(
            status=status.value,
            count=by_status[status],
            percentage=_percent(by_status[status], total),
        )
        for status in RequestStatus
        if by_status[status]
    ]

    # -- stage durations --
    approval_time = _stage_duration(((r.created_at, r.verify_at) for r in ledgers), approval_speed)
    review_time = _stage_duration(((r.created_at, r.review_at) for r in ledgers), stage_speed)
    assessment_time = _stage_duration(((r.review_at, r.assess_at) for r in ledgers), stage_speed)

    # -- requesters --
    requester_roles = UserRole.requester_roles()

    per_requester = Counter(r.request_by for r in ledgers)
    ranked = sorted(
        (
            (users[uid], n)
            for uid, n in per_requester.items()
            if uid in users and users[uid].role in requester_roles
        ),
        key=lambda pair: (-pair[1], pair[0].id),
    )
    top_requesters = [
        RequesterVolume(
            user_id=user.id,
            name=user.full_name,
            role=user.role.value,
            course=user.course,
            total_requests=n,
        )
        for user, n in ranked[:_TOP_N]
    ]

    roles: Counter = Counter()
    courses: Counter = Counter()
    year_levels: Counter = Counter()
    for ledger in ledgers:
        user = users.get(ledger.request_by)
        if user is None:
            continue
        if user.role in requester_roles:
            roles[user.role.value] += 1
        courses[user.course] += 1
        year_levels[user.year_level] += 1

    # -- documents --
    ledger_by_tr = {r.tr: r for r in ledgers}
    items = [i for i in snapshot.items if i.tr in ledger_by_tr]

    quantity: Counter = Counter()
    lines: Counter = Counter()
    revenue: dict[str, Decimal] = defaultdict(Decimal)
    paper: Counter = Counter()
    ledger_revenue: dict[str, Decimal] = defaultdict(Decimal)
    purposes: Counter = Counter()
    type_status: Counter = Counter()
    for item in items:
        quantity[item.type] += item.quantity
        lines[item.type] += 1
        purposes[item.purpose] += 1
        type_status[(item.type, item.status.value)] += 1
        if item.status == ItemStatus.DECLINED:
            continue
        amount = snapshot.prices.get(item.type, Decimal("0")) * item.quantity
        revenue[item.type] += amount
        ledger_revenue[item.tr] += amount
        if ledger_by_tr[item.tr].status in RequestStatus.released_statuses():
            paper[item.type] += item.quantity

    by_quantity = sorted(quantity, key=lambda t: (-quantity[t], t))
    documents = [
        DocumentTotals(
            type=doc_type,
            total_quantity=quantity[doc_type],
            total_requests=lines[doc_type],
            unit_price=snapshot.prices.get(doc_type, Decimal("0")),
            revenue=revenue[doc_type],
            paper_usage=paper[doc_type],
        )
        for doc_type in by_quantity
    ]
    purpose_distribution = _distribution(purposes)

    # -- trend --
    labels = trend_labels(rng, _overall_years(rng, ledgers))
    trend_counts = dict.fromkeys(labels, 0)
    trend_revenue = dict.fromkeys(labels, Decimal("0"))
    for ledger in ledgers:
        label = bucket_label(rng, ledger.created_at)
        if label in trend_counts:
            trend_counts[label] += 1
            trend_revenue[label] += ledger_revenue[ledger.tr]

    # -- staff --
    staff_processed, overall_processed = _leaderboard(ledgers, users)
    staff_successful, overall_successful = _leaderboard(
        (r for r in ledgers if r.status in RequestStatus.approved_statuses()), users
    )
    staff_declined, overall_declined = _leaderboard(
        (r for r in ledgers if r.decline_at is not None), users, include_unassigned=True
    )

    # -- registrations --
    current_label, previous_label = period_labels(rng)
    registrations = RegistrationGrowth(
        current=snapshot.registered_current,
        previous=snapshot.registered_previous,
        growth=registration_growth(
            snapshot.registered_current, snapshot.registered_previous, bounded=rng.is_bounded
        ),
        total_users=snapshot.total_users,
        to_verify_users=snapshot.to_verify_users,
    )

    return AnalyticsReport(
        range=rng.kind.value,
        range_start=rng.start.date() if rng.is_bounded else None,
        range_end=rng.last_day,
        current_period_label=current_label,
        previous_period_label=previous_label,
        total_requests=total,
        approved=share(approved),
        on_process=share(on_process),
        pending=share(pending),
        declined=share(declined),
        on_hold=share(on_hold),
        to_verify=snapshot.to_verify,
        status_breakdown=status_breakdown,
        approval_time=approval_time,
        review_time=review_time,
        assessment_time=assessment_time,
        active_requesters=len(ranked),
        top_requesters=top_requesters,
        role_distribution=_distribution(roles),
        course_distribution=_distribution(courses),
        year_level_distribution=_distribution(year_levels, total),
        top_documents=[
            DocumentVolume(type=t, total_quantity=quantity[t], total_requests=lines[t])
            for t in by_quantity[:_TOP_N]
        ],
        top_purposes=purpose_distribution[:_TOP_N],
        purpose_distribution=purpose_distribution,
        document_status=[
            DocumentStatusCount(type=doc_type, status=status, count=count)
            for (doc_type, status), count in sorted(type_status.items())
        ],
        documents=documents,
        total_quantity=sum(quantity.values()),
        total_revenue=sum(revenue.values(), Decimal("0")),
        total_paper_usage=sum(paper.values()),
        trend=[
            TrendPoint(label=label, count=trend_counts[label], revenue=trend_revenue[label])
            for label in labels
        ],
        staff_processed=staff_processed,
        overall_processed=overall_processed,
        staff_successful=staff_successful,
        overall_successful=overall_successful,
        staff_declined=staff_declined,
        overall_declined=overall_declined,
        registrations=registrations,
        ratings=snapshot.ratings,
        computed_at=computed_at or datetime.now(UTC),
    )


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _window(column, start: datetime | None, end: datetime | None) -> list:
    if start is None or end is None:
        return []
    return [column >= start, column < end]


async def _count(session: AsyncSession, stmt) -> int:
    return (await session.execute(stmt)).scalar() or 0


async def load_snapshot(session: AsyncSession, rng: ResolvedRange) -> AnalyticsSnapshot:
    """Read everything ``build_report`` needs for the window."""
    window = _window(DocumentRequest.created_at, rng.start, rng.end)
    result = await session.execute(
        select(DocumentRequest)
        .where(
            DocumentRequest.archived.is_(False),
            DocumentRequest.pending_verification.is_(False),
            *window,
        )
        .order_by(DocumentRequest.created_at.asc())
    )
    ledgers = list(result.scalars().all())

    to_verify = await _count(
        session,
        select(func.count(DocumentRequest.id)).where(
            DocumentRequest.archived.is_(False),
            DocumentRequest.pending_verification.is_(True),
            *window,
        ),
    )

    items: list[RequestItem] = []
    trs = [r.tr for r in ledgers]
    if trs:
        result = await session.execute(
            select(RequestItem).where(RequestItem.tr.in_(trs)).order_by(RequestItem.id)
        )
        items = list(result.scalars().all())

    users: dict[int, User] = {}
    user_ids = {r.request_by for r in ledgers} | {r.process_by for r in ledgers if r.process_by}
    if user_ids:
        result = await session.execute(select(User).where(User.id.in_(user_ids)))
        users = {u.id: u for u in result.scalars().all()}

    prices = await get_prices(session)

    requester_filter = (
        User.role.in_(sorted(UserRole.requester_roles())),
        User.archived.is_(False),
    )
    total_users = await _count(
        session,
        select(func.count(User.id)).where(*requester_filter, User.pending_verification.is_(False)),
    )
    to_verify_users = await _count(
        session,
        select(func.count(User.id)).where(*requester_filter, User.pending_verification.is_(True)),
    )

    if rng.is_bounded:
        active = select(func.count(User.id)).where(
            *requester_filter, User.pending_verification.is_(False)
        )
        registered_current = await _count(
            session, active.where(*_window(User.created_at, rng.start, rng.end))
        )
        registered_previous = await _count(
            session,
            active.where(*_window(User.created_at, rng.previous_start, rng.previous_end)),
        )
    else:
        registered_current, registered_previous = total_users, 0

    ratings = await get_rating_summary(session)

    return AnalyticsSnapshot(
        ledgers=ledgers,
        items=items,
        users=users,
        prices=prices,
        to_verify=to_verify,
        total_users=total_users,
        to_verify_users=to_verify_users,
        registered_current=registered_current,
        registered_previous=registered_previous,
        ratings=ratings,
    )


async def get_analytics(
    session: AsyncSession,
    kind: RangeKind | str = RangeKind.THIS_YEAR,
    *,
    on: date | None = None,
    start: date | None = None,
    end: date | None = None,
    now: datetime | None = None,
) -> AnalyticsReport:
    """Resolve the range, read the window, and build the report.

    Raises:
        InvalidRangeError: The selector is unknown or missing its dates.
    """
    rng = resolve_range(kind, on=on, start=start, end=end, now=now)
    snapshot = await load_snapshot(session, rng)
    report = build_report(rng, snapshot)
    logger.debug(
        "Analytics for %s: %d requests, %d items",
        rng.kind.value,
        report.total_requests,
        len(snapshot.items),
    )
    return report
