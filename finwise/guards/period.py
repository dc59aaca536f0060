"""
Period Resolver

A period is one calendar month, represented as the closed interval
[first instant, last instant]. Times are naive UTC; aware datetimes
handed to period_containing() or Period.contains() are converted to
naive UTC first.
"""

import calendar
from datetime import datetime
from typing import NamedTuple

from finwise.models.ledger import to_naive_utc


class Period(NamedTuple):
    """A calendar month as [start, end], both inclusive."""

    start: datetime
    end: datetime

    @property
    def label(self) -> str:
        """Human-readable month, e.g. "February 2024"."""
        return f"{calendar.month_name[self.start.month]} {self.start.year}"

    def contains(self, moment: datetime) -> bool:
        return self.start <= to_naive_utc(moment) <= self.end


def resolve_period(year: int, month: int) -> Period:
    """
    Map (year, month) to the month's first and last instants.

    The end is 23:59:59.999 on the last day, so leap years and month
    lengths follow the Gregorian calendar. Input is assumed valid;
    callers reject out-of-range months before calling.
    """
    last_day = calendar.monthrange(year, month)[1]
    return Period(
        start=datetime(year, month, 1),
        end=datetime(year, month, last_day, 23, 59, 59, 999000),
    )


def period_containing(moment: datetime) -> Period:
    """Resolve the calendar month that contains `moment`."""
    moment = to_naive_utc(moment)
    return resolve_period(moment.year, moment.month)
