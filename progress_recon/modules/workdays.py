"""
Working-day calendar.

Friday and Saturday are the project weekend by default; weekend days and
holidays come from configuration. Business-day arithmetic is delegated to
numpy's busday routines.
"""
from datetime import date, timedelta
from typing import Iterable, Optional

import numpy as np

from ..config import get_config


def _to_date(value: np.datetime64) -> date:
    return value.astype('datetime64[D]').item()


def build_weekmask(weekend_days: Iterable[int]) -> str:
    """
    Build a numpy weekmask string (Mon..Sun) from non-working weekday numbers.

    Args:
        weekend_days: Python weekday numbers (Mon=0 ... Sun=6)

    Returns:
        Seven-character mask, e.g. '1111001' for a Fri/Sat weekend
    """
    weekend = set(weekend_days)
    if len(weekend) >= 7:
        raise ValueError("A calendar needs at least one working weekday")
    return ''.join('0' if day in weekend else '1' for day in range(7))


class WorkCalendar:
    """
    Working-day calendar.

    Args:
        weekend_days: Non-working weekday numbers; defaults to configuration
        holidays: Non-working dates; defaults to configuration
    """

    def __init__(
        self,
        weekend_days: Optional[Iterable[int]] = None,
        holidays: Optional[Iterable[date]] = None
    ):
        config = get_config()
        self.weekend_days = sorted(set(weekend_days if weekend_days is not None else config.weekend_days))
        self.holidays = sorted(set(holidays if holidays is not None else config.holidays))
        self.weekmask = build_weekmask(self.weekend_days)
        self._busdaycal = np.busdaycalendar(
            weekmask=self.weekmask,
            holidays=[np.datetime64(h, 'D') for h in self.holidays],
        )

    @classmethod
    def default(cls) -> 'WorkCalendar':
        """Calendar built from the current configuration."""
        return cls()

    def is_working_day(self, d: date) -> bool:
        return bool(np.is_busday(np.datetime64(d, 'D'), busdaycal=self._busdaycal))

    def count_working_days(self, start: date, end: date) -> int:
        """Working days in the inclusive range [start, end]; 0 when end < start."""
        if end < start:
            return 0
        return int(np.busday_count(
            np.datetime64(start, 'D'),
            np.datetime64(end + timedelta(days=1), 'D'),
            busdaycal=self._busdaycal,
        ))

    def add_working_days(self, start: date, n: int) -> Optional[date]:
        """
        Date of the n-th working day counting from start.

        start itself counts as the first working day when it is one, so
        add_working_days(monday, 1) is that Monday. n <= 0 returns start.

        Returns:
            date, or None when the result lies beyond date.max
        """
        if n <= 0:
            return start
        # Cheap bound: n working days span at least n calendar days
        if n - 1 > (date.max - start).days:
            return None
        result = np.busday_offset(
            np.datetime64(start, 'D'),
            n - 1,
            roll='forward',
            busdaycal=self._busdaycal,
        )
        if result > np.datetime64(date.max, 'D'):
            return None
        return _to_date(result)

    def distinct_working_days(self, dates: Iterable[date]) -> int:
        """Number of distinct working days among the given dates."""
        return sum(1 for d in set(dates) if self.is_working_day(d))
