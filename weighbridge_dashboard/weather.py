"""
Weather overlay for the forecast chart and the numeric context handed to
the narrative-insight generator.

Weather records come from an external feed; a date without a record gets
a neutral value instead of failing the join.
"""

import logging
from datetime import date, datetime
from typing import Iterable

import pandas as pd

from .config import (
    HEAVY_RAIN_MIN_MM,
    INSIGHT_WEATHER_DAYS_AFTER,
    INSIGHT_WEATHER_DAYS_BEFORE,
    WEATHER_CONDITIONS,
    WEATHER_NEUTRAL_CONDITION,
)
from .filters import reference_date
from .loaders.utils import normalise_date
from .models import WeatherLog

logger = logging.getLogger(__name__)


def classify_rainfall(rainfall_mm: float | None) -> str:
    """Condition for feeds that only report rainfall in mm."""
    if rainfall_mm is None or pd.isna(rainfall_mm) or rainfall_mm <= 0:
        return "clear"
    if rainfall_mm > HEAVY_RAIN_MIN_MM:
        return "heavy_rain"
    return "light_rain"


def build_weather_frame(weather_logs: Iterable | pd.DataFrame | None) -> pd.DataFrame:
    """Normalise weather records into DataFrame(date, rainfall_mm, condition).

    Unknown condition strings are re-derived from rainfall; duplicate dates
    keep the last record.
    """
    if weather_logs is None:
        weather_logs = []
    if isinstance(weather_logs, pd.DataFrame):
        df = weather_logs.copy()
    else:
        rows = []
        for log in weather_logs:
            if isinstance(log, WeatherLog):
                rows.append({"date": log.date, "rainfall_mm": log.rainfall_mm, "condition": log.condition})
            else:
                rows.append(dict(log))
        df = pd.DataFrame(rows)

    if df.empty or "date" not in df.columns:
        return pd.DataFrame({
            "date": pd.Series(dtype="datetime64[ns]"),
            "rainfall_mm": pd.Series(dtype="float64"),
            "condition": pd.Series(dtype="object"),
        })

    df["date"] = (
        pd.to_datetime(df["date"].map(normalise_date).astype(object))
        .astype("datetime64[ns]")
    )
    df = df.dropna(subset=["date"])
    if "rainfall_mm" not in df.columns:
        df["rainfall_mm"] = 0.0
    if "condition" not in df.columns:
        df["condition"] = None
    df["rainfall_mm"] = pd.to_numeric(df["rainfall_mm"], errors="coerce").fillna(0.0)

    known = df["condition"].isin(WEATHER_CONDITIONS)
    if (~known).any():
        df.loc[~known, "condition"] = df.loc[~known, "rainfall_mm"].map(classify_rainfall)

    df = df.drop_duplicates("date", keep="last")
    return df[["date", "rainfall_mm", "condition"]].reset_index(drop=True)


def join_weather(chart: pd.DataFrame, weather_logs: Iterable | pd.DataFrame | None) -> pd.DataFrame:
    """Left-join weather onto a dated chart frame.

    Dates without a record get condition ``unknown`` and 0 mm rainfall.
    """
    weather = build_weather_frame(weather_logs)
    joined = chart.merge(weather, on="date", how="left")
    missing = joined["condition"].isna()
    if missing.any():
        logger.debug("No weather record for %d chart dates", int(missing.sum()))
    joined["condition"] = joined["condition"].fillna(WEATHER_NEUTRAL_CONDITION)
    joined["rainfall_mm"] = joined["rainfall_mm"].fillna(0.0)
    return joined


def build_insight_context(
    kpis: dict,
    forecast: dict,
    weather_logs: Iterable | pd.DataFrame | None = None,
    today: datetime | date | None = None,
    recent_days: int = 7,
) -> dict:
    """Numeric context for the narrative-insight generator.

    Returns
    -------
    {
        "kpis": dict,
        "recent_trend": [{"date": "YYYY-MM-DD", "actual": float}, ...],
        "weather": [{"date": ..., "condition": ..., "rainfall_mm": ...}, ...],
        "total_projected": int,
    }
    ``weather`` covers 7 days before to 3 days after ``today``.
    """
    chart = forecast.get("chart")
    recent = []
    if chart is not None and not chart.empty:
        actuals = chart.dropna(subset=["actual"]).tail(recent_days)
        recent = [
            {"date": d.strftime("%Y-%m-%d"), "actual": float(v)}
            for d, v in zip(actuals["date"], actuals["actual"])
        ]

    ref = pd.Timestamp(reference_date(today))
    weather = build_weather_frame(weather_logs)
    offset = (weather["date"] - ref).dt.days
    in_range = weather[
        (offset >= -INSIGHT_WEATHER_DAYS_BEFORE) & (offset <= INSIGHT_WEATHER_DAYS_AFTER)
    ]
    weather_rows = [
        {
            "date": row.date.strftime("%Y-%m-%d"),
            "condition": row.condition,
            "rainfall_mm": float(row.rainfall_mm),
        }
        for row in in_range.itertuples(index=False)
    ]

    return {
        "kpis": dict(kpis),
        "recent_trend": recent,
        "weather": weather_rows,
        "total_projected": int(forecast.get("total_projected", 0)),
    }
