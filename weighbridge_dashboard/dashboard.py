"""
Dashboard-ready output functions.

These are the primary entry points for a Streamlit/Dash front end.
Each function returns plain dicts or DataFrames suitable for rendering
cards, charts, and tables. Nothing is cached here; every call derives its
views from the tickets it is given.
"""

import logging
from datetime import date, datetime
from typing import Any, Iterable

import pandas as pd

from .config import LOCATION_GROUPS
from .factors import build_factor_correlation
from .filters import filter_previous_period, filter_tickets, reference_date, window_mask
from .forecast import build_forecast
from .kpis import compare_periods, compute_kpis
from .locations import build_location_benchmark, location_analytics
from .quality import grade_quality
from .transforms import (
    build_daily_trend,
    build_fact_ticket,
    build_location_totals,
    build_peak_hours,
    build_sparklines,
)
from .vehicles import build_vehicle_leaderboard
from .weather import build_insight_context, build_weather_frame, join_weather

logger = logging.getLogger(__name__)


def get_dashboard_overview(
    tickets: Iterable | pd.DataFrame,
    window: str | None = "all",
    now: datetime | date | None = None,
    start: Any = None,
    end: Any = None,
    query: str | None = None,
    category: str = "all",
    location_filter: str | None = "ALL",
    selected_location: str | None = None,
    weather_logs: Iterable | pd.DataFrame | None = None,
    jitter_pct: float = 0.0,
    seed: int | None = None,
    factor_lag_days: int = 0,
    factor_x: str = "rainfall_mm",
    factor_y: str = "net_weight",
) -> dict:
    """Single entry point a Streamlit app would call to populate every page.

    Parameters
    ----------
    tickets : Full ticket history (Ticket objects, dicts or a DataFrame).
    window : One of config.TIME_WINDOWS.
    now : Reference "today"; defaults to the local clock.
    start, end : Inclusive bounds for the ``custom`` window.
    query, category : Free-text search and the field it applies to.
    location_filter : 'ALL', an estate group, or one division.
    selected_location : Location drilled into on the location page.
    weather_logs : Optional weather records joined onto the forecast chart.
    jitter_pct, seed : Forecast perturbation, off by default.
    factor_lag_days, factor_x, factor_y : Lag in days applied to ``factor_x``
        and the pair fitted by the factor analysis (config.FACTOR_METRICS keys).

    Returns
    -------
    {
        "total_tickets": int,
        "filtered_tickets": int,
        "filtered": DataFrame,
        "kpis": dict,
        "comparison": DataFrame | None,   # None for custom/all windows
        "trend": DataFrame,
        "location_totals": DataFrame,
        "peak_hours": DataFrame,
        "sparklines": DataFrame,
        "quality": dict,
        "vehicles": DataFrame,
        "location": dict | None,
        "benchmark": DataFrame,
        "forecast": dict,                 # chart carries weather columns
        "insight_context": dict,
        "factors": dict,                  # daily metrics, correlation matrix, fit
    }
    """
    fact = build_fact_ticket(tickets)
    filtered = filter_tickets(fact, window, now, start, end, query, category, location_filter)

    has_previous = window in ("today", "week", "month")
    previous = filter_previous_period(fact, window, now) if has_previous else None

    kpis = compute_kpis(filtered, window, now, start, end)
    forecast = build_forecast(fact, jitter_pct=jitter_pct, seed=seed)
    forecast["chart"] = join_weather(forecast["chart"], weather_logs)

    # factor analysis only sees observed weather inside the same window
    weather = build_weather_frame(weather_logs)
    factor_weather = weather[
        window_mask(weather["date"], window, now, start, end)
        & (weather["date"] <= pd.Timestamp(reference_date(now)))
    ]

    overview = {
        "total_tickets": len(fact),
        "filtered_tickets": len(filtered),
        "filtered": filtered,
        "kpis": kpis,
        "comparison": compare_periods(filtered, previous) if has_previous else None,
        "trend": build_daily_trend(filtered),
        "location_totals": build_location_totals(filtered),
        "peak_hours": build_peak_hours(filtered),
        "sparklines": build_sparklines(fact),
        "quality": grade_quality(filtered, previous),
        "vehicles": build_vehicle_leaderboard(fact, filtered, previous),
        "location": location_analytics(fact, selected_location),
        "benchmark": build_location_benchmark(filtered),
        "forecast": forecast,
        "insight_context": build_insight_context(kpis, forecast, weather_logs, now),
        "factors": build_factor_correlation(
            filtered, factor_weather, factor_lag_days, factor_x, factor_y,
        ),
    }
    logger.info(
        "Dashboard overview: %d of %d tickets in window '%s'",
        overview["filtered_tickets"], overview["total_tickets"], window,
    )
    return overview


def get_available_locations(fact_ticket: pd.DataFrame) -> list[str]:
    """Return sorted list of distinct ticket locations for UI dropdowns."""
    if fact_ticket.empty:
        return []
    locations = fact_ticket["location"].dropna()
    return sorted(locations[locations != ""].unique().tolist())


def get_location_filter_options(fact_ticket: pd.DataFrame) -> list[str]:
    """'ALL', the estate groups, then every division seen in the data."""
    return ["ALL", *LOCATION_GROUPS.keys(), *get_available_locations(fact_ticket)]
