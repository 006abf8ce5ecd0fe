"""
Per-location analytics: single-location drill-down over the full history,
historical ratio lookup, and the cross-location benchmark table.
"""

import logging

import pandas as pd

from .config import (
    BENCHMARK_COMPONENT_POINTS,
    BENCHMARK_RATIO_FULL_SCORE,
    BENCHMARK_VOLUME_FULL_SCORE_KG,
    GRADE_A_MIN_RATIO,
    TREND_HISTORY_DAYS,
)
from .kpis import dwell_series
from .quality import ratio_series
from .transforms import build_daily_trend, short_location_name

logger = logging.getLogger(__name__)


def location_analytics(
    all_tickets: pd.DataFrame,
    location: str | None,
    history_days: int = TREND_HISTORY_DAYS,
) -> dict | None:
    """Drill-down for one location, independent of the active window.

    Parameters
    ----------
    all_tickets : Full fact_ticket history.
    location : Exact location value; None/empty means nothing selected.

    Returns
    -------
    None when no location is selected, else
    {
        "name": str,
        "total_net_weight": float,
        "total_bunch_count": float,
        "trip_count": int,
        "avg_ratio": float,
        "trend": DataFrame(date, total),  # last ``history_days`` dates, ascending
    }
    """
    if not location:
        return None

    loc_data = all_tickets[all_tickets["location"] == location]
    total_net = float(loc_data["net_weight"].sum())
    total_bunch = float(loc_data["bunch_count"].sum())

    trend = build_daily_trend(loc_data).tail(history_days).reset_index(drop=True)

    if loc_data.empty:
        logger.warning("No tickets for location '%s'", location)

    return {
        "name": location,
        "total_net_weight": total_net,
        "total_bunch_count": total_bunch,
        "trip_count": int(len(loc_data)),
        "avg_ratio": total_net / total_bunch if total_bunch > 0 else 0.0,
        "trend": trend,
    }


def location_avg_ratio(all_tickets: pd.DataFrame) -> dict[str, float]:
    """Historical kg-per-bunch by location, used to pre-fill harvest estimates."""
    if all_tickets.empty:
        return {}
    located = all_tickets[all_tickets["location"] != ""]
    totals = located.groupby("location")[["net_weight", "bunch_count"]].sum()
    ratios = ratio_series(totals["net_weight"], totals["bunch_count"])
    return {loc: float(r) for loc, r in ratios.items()}


def build_location_benchmark(fact_ticket: pd.DataFrame) -> pd.DataFrame:
    """Rank locations in a filtered window by a 100-point composite score.

    Score components (25 points each)
    ---------------------------------
    - volume: net weight, full marks at 100 t
    - quality: total-based ratio, full marks at 25 kg/bunch
    - consistency: share of the window's active dates the location delivered
    - excellence: share of its tickets graded A

    Returns
    -------
    DataFrame with columns:
        name, full_name, total_net_weight, total_bunch_count, avg_ratio,
        trip_count, avg_dwell_minutes, consistency, grade_a_pct, score
    """
    columns = [
        "name", "full_name", "total_net_weight", "total_bunch_count", "avg_ratio",
        "trip_count", "avg_dwell_minutes", "consistency", "grade_a_pct", "score",
    ]
    if fact_ticket.empty:
        return pd.DataFrame(columns=columns)

    df = fact_ticket.copy()
    df["full_name"] = df["location"].replace("", "Unknown")
    df["ratio"] = ratio_series(df["net_weight"], df["bunch_count"])
    df["is_grade_a"] = df["ratio"] >= GRADE_A_MIN_RATIO
    df["dwell"] = dwell_series(df)

    days_in_period = df["date"].nunique() or 1

    bench = (
        df.groupby("full_name")
        .agg(
            total_net_weight=("net_weight", "sum"),
            total_bunch_count=("bunch_count", "sum"),
            trip_count=("id", "count"),
            avg_dwell_minutes=("dwell", "mean"),
            active_days=("date", "nunique"),
            grade_a_count=("is_grade_a", "sum"),
        )
        .reset_index()
    )
    bench["avg_dwell_minutes"] = bench["avg_dwell_minutes"].fillna(0.0)
    bench["avg_ratio"] = ratio_series(bench["total_net_weight"], bench["total_bunch_count"])
    bench["consistency"] = bench["active_days"] / days_in_period * 100
    bench["grade_a_pct"] = bench["grade_a_count"] / bench["trip_count"] * 100

    points = BENCHMARK_COMPONENT_POINTS
    volume_score = (bench["total_net_weight"] / BENCHMARK_VOLUME_FULL_SCORE_KG * points).clip(upper=points)
    ratio_score = (bench["avg_ratio"] / BENCHMARK_RATIO_FULL_SCORE * points).clip(upper=points)
    bench["score"] = (
        volume_score
        + ratio_score
        + bench["consistency"] * points / 100
        + bench["grade_a_pct"] * points / 100
    )
    bench.insert(0, "name", bench["full_name"].map(short_location_name))

    result = (
        bench[columns]
        .sort_values("score", ascending=False, kind="mergesort")
        .reset_index(drop=True)
    )
    logger.info("Built location benchmark with %d rows", len(result))
    return result
