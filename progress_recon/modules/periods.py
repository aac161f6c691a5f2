"""
Period Bucketer.

Maps dates to canonical period keys and keys back to inclusive date
windows. Keys are plain strings so they can be used as dict keys and
column names:

    daily     2025-01-06
    weekly    2025-W02              (ISO 8601: Monday start, week 1 holds
                                     the first Thursday; the ISO year can
                                     differ from the calendar year)
    monthly   2025-01
    custom    custom:2025-01-01:2025-01-15
"""
import calendar
import re
from datetime import date, timedelta
from typing import List, Optional, Tuple, Union

from ..config import get_config
from ..domain.entities import Granularity, Period
from ..domain.exceptions import InvalidPeriodError, UnknownGranularityError


_DAILY_KEY = re.compile(r'^(\d{4})-(\d{2})-(\d{2})$')
_WEEKLY_KEY = re.compile(r'^(\d{4})-W(\d{2})$')
_MONTHLY_KEY = re.compile(r'^(\d{4})-(\d{2})$')
_CUSTOM_KEY = re.compile(r'^custom:(\d{4}-\d{2}-\d{2}):(\d{4}-\d{2}-\d{2})$')

# Lookahead count-mode unit names
PERIOD_TYPES = {
    'days': Granularity.DAILY,
    'weeks': Granularity.WEEKLY,
    'months': Granularity.MONTHLY,
}


def coerce_granularity(value: Union[str, Granularity]) -> Granularity:
    """Accept a Granularity or its name ('weekly', 'Weekly', 'weeks')."""
    if isinstance(value, Granularity):
        return value
    key = str(value).strip().lower()
    if key in PERIOD_TYPES:
        return PERIOD_TYPES[key]
    for granularity in Granularity:
        if granularity.value == key:
            return granularity
    raise UnknownGranularityError(str(value))


# =============================================================================
# Calendar helpers
# =============================================================================

def get_week_start(d: date) -> date:
    """Get the Monday of the week containing the given date."""
    return d - timedelta(days=d.weekday())


def get_week_end(d: date) -> date:
    """Get the Sunday of the week containing the given date."""
    return get_week_start(d) + timedelta(days=6)


def get_month_start(d: date) -> date:
    """Get the first day of the month."""
    return d.replace(day=1)


def get_month_end(d: date) -> date:
    """Get the last day of the month."""
    return d.replace(day=calendar.monthrange(d.year, d.month)[1])


def add_months(d: date, months: int) -> date:
    """First day of the month `months` after the month of d."""
    index = d.year * 12 + (d.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


# =============================================================================
# Keys
# =============================================================================

def period_key(
    d: date,
    granularity: Union[str, Granularity],
    custom_range: Optional[Tuple[date, date]] = None
) -> str:
    """
    Canonical key of the period containing d.

    Args:
        d: Date to bucket
        granularity: daily, weekly, monthly or custom
        custom_range: (start, end) for custom granularity; d must fall inside

    Returns:
        Period key string
    """
    granularity = coerce_granularity(granularity)

    if granularity is Granularity.DAILY:
        return d.isoformat()
    if granularity is Granularity.WEEKLY:
        iso_year, iso_week, _ = d.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    if granularity is Granularity.MONTHLY:
        return f"{d.year}-{d.month:02d}"

    if custom_range is None:
        raise InvalidPeriodError(d.isoformat(), "custom granularity needs a date range")
    start, end = custom_range
    if start > end:
        raise InvalidPeriodError(f"{start}:{end}", "range start is after end")
    if not start <= d <= end:
        raise InvalidPeriodError(d.isoformat(), f"date outside custom range {start} - {end}")
    return custom_key(start, end)


def custom_key(start: date, end: date) -> str:
    if start > end:
        raise InvalidPeriodError(f"{start}:{end}", "range start is after end")
    return f"custom:{start.isoformat()}:{end.isoformat()}"


def granularity_of(key: str) -> Granularity:
    """Granularity encoded by a period key."""
    if _CUSTOM_KEY.match(key):
        return Granularity.CUSTOM
    if _WEEKLY_KEY.match(key):
        return Granularity.WEEKLY
    if _DAILY_KEY.match(key):
        return Granularity.DAILY
    if _MONTHLY_KEY.match(key):
        return Granularity.MONTHLY
    raise InvalidPeriodError(key)


def period_bounds(key: str) -> Tuple[date, date]:
    """
    Inclusive (start, end) dates of a period key.

    Raises:
        InvalidPeriodError: key is malformed or names a non-existent date/week
    """
    key = (key or '').strip()
    try:
        match = _CUSTOM_KEY.match(key)
        if match:
            start = date.fromisoformat(match.group(1))
            end = date.fromisoformat(match.group(2))
            if start > end:
                raise InvalidPeriodError(key, "range start is after end")
            return start, end

        match = _WEEKLY_KEY.match(key)
        if match:
            start = date.fromisocalendar(int(match.group(1)), int(match.group(2)), 1)
            return start, start + timedelta(days=6)

        match = _DAILY_KEY.match(key)
        if match:
            d = date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
            return d, d

        match = _MONTHLY_KEY.match(key)
        if match:
            start = date(int(match.group(1)), int(match.group(2)), 1)
            return start, get_month_end(start)
    except ValueError as e:
        raise InvalidPeriodError(key, str(e))

    raise InvalidPeriodError(key)


def period_label(key: str) -> str:
    """
    Human-readable label for a period key.

        2025-01-06  -> 'Jan 06, 2025'
        2025-W02    -> 'Week 2, 2025 (Jan 06 - Jan 12)'
        2025-01     -> 'January 2025'
        custom:...  -> 'Jan 01, 2025 - Jan 15, 2025'
    """
    granularity = granularity_of(key)
    start, end = period_bounds(key)

    if granularity is Granularity.DAILY:
        return start.strftime('%b %d, %Y')
    if granularity is Granularity.WEEKLY:
        iso_year, iso_week, _ = start.isocalendar()
        return (
            f"Week {iso_week}, {iso_year} "
            f"({start.strftime('%b %d')} - {end.strftime('%b %d')})"
        )
    if granularity is Granularity.MONTHLY:
        return start.strftime('%B %Y')
    return f"{start.strftime('%b %d, %Y')} - {end.strftime('%b %d, %Y')}"


def period_for(key: str) -> Period:
    """Build the Period for a key."""
    start, end = period_bounds(key)
    return Period(
        start=start,
        end=end,
        key=key,
        label=period_label(key),
        granularity=granularity_of(key),
    )


def make_period(d: date, granularity: Union[str, Granularity]) -> Period:
    """Period of the given granularity containing d (not custom)."""
    return period_for(period_key(d, granularity))


def custom_period(start: date, end: date) -> Period:
    return period_for(custom_key(start, end))


def previous_period(period: Union[str, Period]) -> Period:
    """
    Period immediately preceding the given one.

    Daily/weekly/monthly step back one unit; a custom range steps back
    to the same-length window ending the day before it starts.
    """
    if not isinstance(period, Period):
        period = period_for(period)

    if period.granularity is Granularity.CUSTOM:
        end = period.start - timedelta(days=1)
        start = end - timedelta(days=period.days - 1)
        return custom_period(start, end)

    return make_period(period.start - timedelta(days=1), period.granularity)


def next_period(period: Union[str, Period]) -> Period:
    if not isinstance(period, Period):
        period = period_for(period)

    if period.granularity is Granularity.CUSTOM:
        start = period.end + timedelta(days=1)
        return custom_period(start, start + timedelta(days=period.days - 1))

    return make_period(period.end + timedelta(days=1), period.granularity)


# =============================================================================
# Period sequences
# =============================================================================

def recent_periods(
    granularity: Union[str, Granularity],
    as_of: date,
    count: Optional[int] = None
) -> List[Period]:
    """
    The last `count` periods ending with the one containing as_of, oldest first.

    Used to offer a period picker (default: last 12 weeks or months).
    """
    if count is None:
        count = get_config().recent_period_count
    if count <= 0:
        return []

    current = make_period(as_of, granularity)
    periods = [current]
    for _ in range(count - 1):
        periods.append(previous_period(periods[-1]))
    return list(reversed(periods))


def periods_between(
    start: date,
    end: date,
    granularity: Union[str, Granularity]
) -> List[Period]:
    """
    Contiguous, non-overlapping periods covering [start, end].

    The first and last periods are whole periods, so they may extend
    before start and after end.
    """
    granularity = coerce_granularity(granularity)
    if start > end:
        raise InvalidPeriodError(f"{start}:{end}", "range start is after end")
    if granularity is Granularity.CUSTOM:
        return [custom_period(start, end)]

    periods = [make_period(start, granularity)]
    while periods[-1].end < end:
        periods.append(next_period(periods[-1]))
    return periods


def lookahead_periods(
    as_of: date,
    period_type: Union[str, Granularity, None] = None,
    count: Optional[int] = None
) -> List[Period]:
    """
    Forecast columns in count mode.

    Args:
        as_of: Today
        period_type: 'days', 'weeks' or 'months' (or the Granularity)
        count: Number of columns

    Returns:
        `count` consecutive periods, the first containing as_of
        (today, this Monday-start week, or this month)
    """
    config = get_config()
    granularity = coerce_granularity(period_type or config.default_period_type)
    if granularity is Granularity.CUSTOM:
        raise UnknownGranularityError(granularity.value)
    if count is None:
        count = config.default_period_count

    periods = []
    for _ in range(max(count, 0)):
        periods.append(make_period(as_of, granularity) if not periods else next_period(periods[-1]))
    return periods


def range_granularity(start: date, end: date) -> Granularity:
    """Column granularity for a date-range lookahead, picked from its length."""
    thresholds = get_config().get_range_thresholds()
    span = (end - start).days
    if span <= thresholds["daily_max_days"]:
        return Granularity.DAILY
    if span <= thresholds["weekly_max_days"]:
        return Granularity.WEEKLY
    return Granularity.MONTHLY


def date_range_periods(start: date, end: date) -> List[Period]:
    """Forecast columns in date-range mode."""
    return periods_between(start, end, range_granularity(start, end))


def completion_labels(d: Optional[date]) -> dict:
    """
    Display strings for a completion date.

    Returns:
        Dict with month ('October 2026'), week ('Week 43, 2026') and
        day ('Monday, October 19, 2026'); all None when d is None
    """
    if d is None:
        return {'month': None, 'week': None, 'day': None}
    iso_year, iso_week, _ = d.isocalendar()
    return {
        'month': d.strftime('%B %Y'),
        'week': f"Week {iso_week}, {iso_year}",
        'day': f"{d.strftime('%A, %B')} {d.day}, {d.year}",
    }
