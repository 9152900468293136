"""
Date-range predicates used to slice trades, accounts and payouts.

Three families of ranges exist because each view filters differently:
the dashboard (rolling windows), the funded-accounts page (calendar
buckets with a Sunday-based week) and the reports page (month/YTD ranges).
All timestamps are naive UTC, as normalized by `tradejournal.types`.
"""
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, List, Optional

from tradejournal.types import Trade

__all__ = [
    "DashboardFilter",
    "AccountPeriod",
    "ReportRange",
    "DatePredicate",
    "utc_now",
    "start_of_day",
    "week_start",
    "dashboard_predicate",
    "account_period_predicate",
    "report_range_predicate",
    "filter_trades",
]

DatePredicate = Callable[[datetime], bool]


class DashboardFilter(str, Enum):
    TODAY = "TODAY"
    LAST_WEEK = "LAST_WEEK"
    LAST_MONTH = "LAST_MONTH"
    ALL = "ALL"


class AccountPeriod(str, Enum):
    ALL = "ALL"
    TODAY = "TODAY"
    WEEK = "WEEK"
    MONTH = "MONTH"
    YEAR = "YEAR"


class ReportRange(str, Enum):
    ALL = "ALL"
    THIS_MONTH = "THIS_MONTH"
    LAST_MONTH = "LAST_MONTH"
    YTD = "YTD"
    LAST_90_DAYS = "LAST_90_DAYS"


def utc_now() -> datetime:
    """Current time as naive UTC, matching stored timestamps."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def week_start(now: datetime) -> datetime:
    """
    The most recent Sunday at the current time of day (Sunday = weekday index 0).

    Only the date moves back; records from earlier on that Sunday fall outside.
    """
    sunday_index = (now.weekday() + 1) % 7
    return now - timedelta(days=sunday_index)


def dashboard_predicate(dashboard_filter: DashboardFilter, now: Optional[datetime] = None) -> DatePredicate:
    """
    Predicate for the dashboard filter.

    LAST_MONTH means "the current calendar month", not the previous one.
    """
    now = now or utc_now()
    if dashboard_filter is DashboardFilter.TODAY:
        day_start = start_of_day(now)
        return lambda d: d >= day_start
    if dashboard_filter is DashboardFilter.LAST_WEEK:
        cutoff = now - timedelta(days=7)
        return lambda d: d >= cutoff
    if dashboard_filter is DashboardFilter.LAST_MONTH:
        return lambda d: d.month == now.month and d.year == now.year
    return lambda d: True


def account_period_predicate(period: AccountPeriod, now: Optional[datetime] = None) -> DatePredicate:
    """Predicate for the funded-accounts period selector."""
    now = now or utc_now()
    if period is AccountPeriod.TODAY:
        day_start = start_of_day(now)
        return lambda d: d >= day_start
    if period is AccountPeriod.WEEK:
        first_day = week_start(now)
        return lambda d: d >= first_day
    if period is AccountPeriod.MONTH:
        return lambda d: d.month == now.month and d.year == now.year
    if period is AccountPeriod.YEAR:
        return lambda d: d.year == now.year
    return lambda d: True


def report_range_predicate(report_range: ReportRange, now: Optional[datetime] = None) -> DatePredicate:
    """Predicate for the reports page range selector."""
    now = now or utc_now()
    if report_range is ReportRange.THIS_MONTH:
        return lambda d: d.month == now.month and d.year == now.year
    if report_range is ReportRange.LAST_MONTH:
        year, month = (now.year, now.month - 1) if now.month > 1 else (now.year - 1, 12)
        return lambda d: d.month == month and d.year == year
    if report_range is ReportRange.YTD:
        return lambda d: d.year == now.year
    if report_range is ReportRange.LAST_90_DAYS:
        cutoff = now - timedelta(days=90)
        return lambda d: d >= cutoff
    return lambda d: True


def filter_trades(trades: List[Trade], predicate: DatePredicate) -> List[Trade]:
    """Selects trades whose entry date passes the predicate, preserving order."""
    return [t for t in trades if predicate(t.entry_date)]
