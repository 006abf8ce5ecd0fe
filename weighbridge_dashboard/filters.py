"""
Ticket filtering: time window, free-text search and location group.

Windows
-------
    today   same local calendar date as ``now``
    week    on or after the Monday of ``now``'s week (Monday-start)
    month   same calendar month and year as ``now``
    custom  start <= date <= end, both days inclusive
    all     everything (also: custom without both bounds)

All comparisons use the date component only. ``now`` is a naive local
datetime; callers pass it explicitly so results are reproducible.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any

import pandas as pd

from .config import LOCATION_GROUPS, SEARCH_CATEGORIES, TIME_WINDOWS

logger = logging.getLogger(__name__)


def to_date(val: Any) -> date | None:
    if val is None or val == "":
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    ts = pd.Timestamp(val)
    if pd.isna(ts):
        return None
    return ts.date()


def reference_date(now: datetime | date | None) -> date:
    if now is None:
        now = datetime.now()
    return to_date(now)


def window_bounds(
    window: str | None,
    now: datetime | date | None = None,
    start: Any = None,
    end: Any = None,
) -> tuple[date | None, date | None] | None:
    """Return the inclusive (first, last) dates of a window.

    ``None`` means no restriction; a ``None`` element means open-ended.

    Raises
    ------
    ValueError
        If ``window`` is not one of config.TIME_WINDOWS.
    """
    if window is None or window == "all":
        return None
    if window not in TIME_WINDOWS:
        raise ValueError(f"Unknown time window: {window!r}")

    today = reference_date(now)

    if window == "today":
        return today, today
    if window == "week":
        # isoweekday: Monday=1 ... Sunday=7
        monday = today - timedelta(days=today.isoweekday() - 1)
        return monday, None
    if window == "month":
        first = today.replace(day=1)
        next_month = (first + timedelta(days=32)).replace(day=1)
        return first, next_month - timedelta(days=1)

    # custom
    start_date, end_date = to_date(start), to_date(end)
    if start_date is None or end_date is None:
        return None
    return start_date, end_date


def previous_window_bounds(
    window: str | None,
    now: datetime | date | None = None,
) -> tuple[date, date] | None:
    """Comparison period for a window: yesterday, last week, last month.

    Returns None for ``custom`` and ``all``, which have no comparison.
    """
    today = reference_date(now)

    if window == "today":
        yesterday = today - timedelta(days=1)
        return yesterday, yesterday
    if window == "week":
        monday = today - timedelta(days=today.isoweekday() - 1)
        return monday - timedelta(days=7), monday - timedelta(days=1)
    if window == "month":
        last_of_prev = today.replace(day=1) - timedelta(days=1)
        return last_of_prev.replace(day=1), last_of_prev
    return None


def in_window(
    ticket_date: Any,
    window: str | None,
    now: datetime | date | None = None,
    start: Any = None,
    end: Any = None,
) -> bool:
    """True if a single ticket date falls inside the window."""
    bounds = window_bounds(window, now, start, end)
    if bounds is None:
        return True
    d = to_date(ticket_date)
    if d is None:
        return False
    first, last = bounds
    if first is not None and d < first:
        return False
    if last is not None and d > last:
        return False
    return True


def _between(dates: pd.Series, first: date | None, last: date | None) -> pd.Series:
    mask = pd.Series(True, index=dates.index)
    if first is not None:
        mask &= dates >= pd.Timestamp(first)
    if last is not None:
        mask &= dates <= pd.Timestamp(last)
    return mask


def window_mask(
    dates: pd.Series,
    window: str | None,
    now: datetime | date | None = None,
    start: Any = None,
    end: Any = None,
) -> pd.Series:
    """Vectorised in_window over a Series of midnight Timestamps."""
    bounds = window_bounds(window, now, start, end)
    if bounds is None:
        return pd.Series(True, index=dates.index)
    return _between(dates, *bounds)


def matches_search(ticket: dict, query: str | None, category: str = "all") -> bool:
    """Case-insensitive substring search over id, plate and/or location."""
    if not query:
        return True
    if category not in SEARCH_CATEGORIES:
        raise ValueError(f"Unknown search category: {category!r}")
    needle = query.lower()
    fields = _search_fields(category)
    return any(needle in str(ticket.get(f, "")).lower() for f in fields)


def _search_fields(category: str) -> list[str]:
    if category == "ticket":
        return ["id"]
    if category == "plate":
        return ["plate_number"]
    if category == "location":
        return ["location"]
    return ["id", "plate_number", "location"]


def search_mask(fact_ticket: pd.DataFrame, query: str | None, category: str = "all") -> pd.Series:
    """Vectorised matches_search."""
    if not query:
        return pd.Series(True, index=fact_ticket.index)
    if category not in SEARCH_CATEGORIES:
        raise ValueError(f"Unknown search category: {category!r}")
    needle = query.lower()
    mask = pd.Series(False, index=fact_ticket.index)
    for field in _search_fields(category):
        mask |= fact_ticket[field].astype(str).str.lower().str.contains(needle, regex=False)
    return mask


def location_mask(fact_ticket: pd.DataFrame, location_filter: str | None = "ALL") -> pd.Series:
    """Restrict to one division ('AFD A') or an estate group ('NASAL')."""
    if not location_filter or location_filter.upper() == "ALL":
        return pd.Series(True, index=fact_ticket.index)

    upper = fact_ticket["location"].astype(str).str.upper()
    labels = LOCATION_GROUPS.get(location_filter.upper(), [location_filter])
    mask = pd.Series(False, index=fact_ticket.index)
    for label in labels:
        mask |= upper.str.contains(label.upper(), regex=False)
    return mask


def filter_tickets(
    fact_ticket: pd.DataFrame,
    window: str | None = "all",
    now: datetime | date | None = None,
    start: Any = None,
    end: Any = None,
    query: str | None = None,
    category: str = "all",
    location_filter: str | None = "ALL",
) -> pd.DataFrame:
    """Apply window, search and location predicates (ANDed).

    Returns a new DataFrame; the input is not modified.
    """
    if fact_ticket.empty:
        return fact_ticket.copy()

    mask = (
        window_mask(fact_ticket["date"], window, now, start, end)
        & search_mask(fact_ticket, query, category)
        & location_mask(fact_ticket, location_filter)
    )
    filtered = fact_ticket[mask].reset_index(drop=True)
    logger.info(
        "Filtered %d of %d tickets (window=%s, query=%r, location=%s)",
        len(filtered), len(fact_ticket), window, query, location_filter,
    )
    return filtered


def filter_previous_period(
    fact_ticket: pd.DataFrame,
    window: str | None,
    now: datetime | date | None = None,
) -> pd.DataFrame:
    """Tickets of the comparison period; empty when the window has none."""
    bounds = previous_window_bounds(window, now)
    if bounds is None or fact_ticket.empty:
        return fact_ticket.iloc[0:0].copy()
    return fact_ticket[_between(fact_ticket["date"], *bounds)].reset_index(drop=True)
