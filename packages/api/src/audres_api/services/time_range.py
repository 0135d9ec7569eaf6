# This project was developed with assistance from AI tools.
"""Analytics date ranges.

Turns a range selector (``today``, ``thisMonth``, ``custom`` ...) into a
half-open ``[start, end)`` window in the registrar's timezone, together
with the window it is compared against, display labels, and the trend
bucket each timestamp falls into. Weeks start on Sunday.
"""

import calendar
import enum
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from ..core.config import settings

DAY_NAMES = ("SUN", "MON", "TUE", "WED", "THU", "FRI", "SAT")
MONTH_NAMES = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")


class RangeKind(str, enum.Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_WEEK = "thisWeek"
    LAST_WEEK = "lastWeek"
    THIS_MONTH = "thisMonth"
    LAST_MONTH = "lastMonth"
    THIS_YEAR = "thisYear"
    LAST_YEAR = "lastYear"
    SPECIFIC = "specific"
    CUSTOM = "custom"
    OVERALL = "overall"

    @classmethod
    def hourly_kinds(cls) -> frozenset["RangeKind"]:
        return frozenset({cls.TODAY, cls.YESTERDAY, cls.SPECIFIC})

    @classmethod
    def week_kinds(cls) -> frozenset["RangeKind"]:
        return frozenset({cls.THIS_WEEK, cls.LAST_WEEK})

    @classmethod
    def month_kinds(cls) -> frozenset["RangeKind"]:
        return frozenset({cls.THIS_MONTH, cls.LAST_MONTH})

    @classmethod
    def year_kinds(cls) -> frozenset["RangeKind"]:
        return frozenset({cls.THIS_YEAR, cls.LAST_YEAR})


class InvalidRangeError(ValueError):
    """Raised when a range selector is missing the dates it needs."""


@dataclass(frozen=True)
class ResolvedRange:
    """A resolved window. All bounds are local, tz-aware, and None for ``overall``."""

    kind: RangeKind
    tz: ZoneInfo
    start: datetime | None = None
    end: datetime | None = None
    previous_start: datetime | None = None
    previous_end: datetime | None = None

    @property
    def is_bounded(self) -> bool:
        return self.start is not None

    @property
    def last_day(self) -> date | None:
        """Final calendar day inside the window."""
        if self.end is None:
            return None
        return (self.end - timedelta(days=1)).date()

    def local(self, ts: datetime) -> datetime:
        """Express ``ts`` in the registrar's zone. Naive values are taken as UTC."""
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=UTC)
        return ts.astimezone(self.tz)

    def contains(self, ts: datetime) -> bool:
        if not self.is_bounded:
            return True
        return self.start <= self.local(ts) < self.end

    def in_previous(self, ts: datetime) -> bool:
        if self.previous_start is None:
            return False
        return self.previous_start <= self.local(ts) < self.previous_end


def registrar_zone(name: str | None = None) -> ZoneInfo:
    return ZoneInfo(name or settings.TIMEZONE)


def local_now(tz: ZoneInfo | None = None) -> datetime:
    return datetime.now(tz or registrar_zone())


def _midnight(day: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def _add_months(day: date, months: int) -> date:
    """Shift a first-of-month date by whole months."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def _days(start: date, end_exclusive: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    return _midnight(start, tz), _midnight(end_exclusive, tz)


def resolve_range(
    kind: RangeKind | str = RangeKind.THIS_YEAR,
    *,
    on: date | None = None,
    start: date | None = None,
    end: date | None = None,
    now: datetime | None = None,
    tz: ZoneInfo | str | None = None,
) -> ResolvedRange:
    """Resolve a selector into current and previous windows.

    Args:
        kind: Range selector; defaults to ``thisYear``.
        on: Day for ``specific``.
        start: First day for ``custom`` (inclusive).
        end: Last day for ``custom`` (inclusive).
        now: Override current time (for testing).
        tz: Registrar timezone; defaults to the ``TIMEZONE`` setting.

    Raises:
        InvalidRangeError: Unknown selector, or ``specific``/``custom``
            without the dates they need, or ``start`` after ``end``.
    """
    try:
        kind = RangeKind(kind)
    except ValueError as exc:
        raise InvalidRangeError(f"Unknown range '{kind}'") from exc

    zone = tz if isinstance(tz, ZoneInfo) else registrar_zone(tz)
    today = (now.astimezone(zone) if now is not None else local_now(zone)).date()

    if kind == RangeKind.OVERALL:
        return ResolvedRange(kind=kind, tz=zone)

    if kind in (RangeKind.TODAY, RangeKind.YESTERDAY, RangeKind.SPECIFIC):
        if kind == RangeKind.SPECIFIC:
            if on is None:
                raise InvalidRangeError("Range 'specific' requires a date")
            day = on
        else:
            day = today if kind == RangeKind.TODAY else today - timedelta(days=1)
        cur = _days(day, day + timedelta(days=1), zone)
        prev = _days(day - timedelta(days=1), day, zone)

    elif kind in RangeKind.week_kinds():
        sunday = today - timedelta(days=(today.weekday() + 1) % 7)
        if kind == RangeKind.LAST_WEEK:
            sunday -= timedelta(days=7)
        cur = _days(sunday, sunday + timedelta(days=7), zone)
        prev = _days(sunday - timedelta(days=7), sunday, zone)

    elif kind in RangeKind.month_kinds():
        first = today.replace(day=1)
        if kind == RangeKind.LAST_MONTH:
            first = _add_months(first, -1)
        cur = _days(first, _add_months(first, 1), zone)
        prev = _days(_add_months(first, -1), first, zone)

    elif kind in RangeKind.year_kinds():
        year = today.year if kind == RangeKind.THIS_YEAR else today.year - 1
        cur = _days(date(year, 1, 1), date(year + 1, 1, 1), zone)
        prev = _days(date(year - 1, 1, 1), date(year, 1, 1), zone)

    else:  # custom
        if start is None or end is None:
            raise InvalidRangeError("Range 'custom' requires start and end dates")
        if start > end:
            raise InvalidRangeError("Range start must not be after range end")
        length = (end - start).days + 1
        cur = _days(start, end + timedelta(days=1), zone)
        prev = _days(start - timedelta(days=length), start, zone)

    return ResolvedRange(
        kind=kind,
        tz=zone,
        start=cur[0],
        end=cur[1],
        previous_start=prev[0],
        previous_end=prev[1],
    )


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------

_PERIOD_NAMES = {
    RangeKind.TODAY: ("Today", "Yesterday"),
    RangeKind.YESTERDAY: ("Yesterday", "2 Days Ago"),
    RangeKind.THIS_WEEK: ("This Week", "Last Week"),
    RangeKind.LAST_WEEK: ("Last Week", "Previous Week"),
    RangeKind.THIS_MONTH: ("This Month", "Last Month"),
    RangeKind.LAST_MONTH: ("Last Month", "Previous Month"),
    RangeKind.THIS_YEAR: ("This Year", "Last Year"),
    RangeKind.LAST_YEAR: ("Last Year", "Previous Year"),
    RangeKind.SPECIFIC: ("Selected Date", "Previous Date"),
    RangeKind.CUSTOM: ("Custom Range", "Previous Range"),
}


def _describe(kind: RangeKind, start: datetime, end: datetime) -> str:
    last = (end - timedelta(days=1)).date()
    if kind in RangeKind.hourly_kinds():
        return start.strftime("%b %d, %Y")
    if kind in RangeKind.month_kinds():
        return start.strftime("%B %Y")
    if kind in RangeKind.year_kinds():
        return start.strftime("%Y")
    return f"{start.strftime('%b %d')} to {last.strftime('%b %d, %Y')}"


def period_labels(rng: ResolvedRange) -> tuple[str, str]:
    """Return ``(current, previous)`` display labels, e.g. ``This Month - October 2026``."""
    if not rng.is_bounded:
        return "Overall - All Time", "-"
    current_name, previous_name = _PERIOD_NAMES[rng.kind]
    return (
        f"{current_name} - {_describe(rng.kind, rng.start, rng.end)}",
        f"{previous_name} - {_describe(rng.kind, rng.previous_start, rng.previous_end)}",
    )


# ---------------------------------------------------------------------------
# Trend buckets
# ---------------------------------------------------------------------------


def trend_labels(rng: ResolvedRange, years: tuple[int, int] | None = None) -> list[str]:
    """Ordered bucket labels for the window.

    ``years`` gives the first and last year seen, used only by ``overall``.
    """
    kind = rng.kind
    if kind in RangeKind.hourly_kinds():
        return [f"{h}:00" for h in range(24)]
    if kind in RangeKind.week_kinds():
        return list(DAY_NAMES)
    if kind in RangeKind.month_kinds():
        days = calendar.monthrange(rng.start.year, rng.start.month)[1]
        return [str(d) for d in range(1, days + 1)]
    if kind in RangeKind.year_kinds():
        return list(MONTH_NAMES)
    if kind == RangeKind.CUSTOM:
        labels: list[str] = []
        day = rng.start.date()
        while day <= rng.last_day:
            label = day.strftime("%m-%d")
            if label not in labels:
                labels.append(label)
            day += timedelta(days=1)
        return labels
    if years is None:
        return []
    return [str(y) for y in range(years[0], years[1] + 1)]


def bucket_label(rng: ResolvedRange, ts: datetime) -> str:
    """Label of the trend bucket ``ts`` belongs to."""
    local = rng.local(ts)
    kind = rng.kind
    if kind in RangeKind.hourly_kinds():
        return f"{local.hour}:00"
    if kind in RangeKind.week_kinds():
        return DAY_NAMES[(local.weekday() + 1) % 7]
    if kind in RangeKind.month_kinds():
        return str(local.day)
    if kind in RangeKind.year_kinds():
        return MONTH_NAMES[local.month - 1]
    if kind == RangeKind.CUSTOM:
        return local.strftime("%m-%d")
    return str(local.year)
