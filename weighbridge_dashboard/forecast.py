"""
Short-horizon supply forecast.

The projection is the mean of the most recent daily totals scaled by a
weekday modifier (Sundays run at half volume). An optional symmetric
perturbation can be switched on with ``jitter_pct``; it is drawn from a
seeded numpy Generator so a given seed always yields the same chart.
"""

import logging

import numpy as np
import pandas as pd

from .config import (
    FORECAST_BASELINE_DAYS,
    FORECAST_HORIZON_DAYS,
    TREND_HISTORY_DAYS,
    WEEKDAY_MODIFIERS,
)
from .kpis import round_half_up
from .transforms import build_daily_trend

logger = logging.getLogger(__name__)

CHART_COLUMNS = ["date", "actual", "predicted"]


def _empty_chart() -> pd.DataFrame:
    return pd.DataFrame({
        "date": pd.Series(dtype="datetime64[ns]"),
        "actual": pd.Series(dtype="float64"),
        "predicted": pd.Series(dtype="float64"),
    })


def build_forecast(
    all_tickets: pd.DataFrame,
    history_days: int = TREND_HISTORY_DAYS,
    horizon_days: int = FORECAST_HORIZON_DAYS,
    baseline_days: int = FORECAST_BASELINE_DAYS,
    jitter_pct: float = 0.0,
    seed: int | None = None,
    weekday_modifiers: dict[int, float] | None = None,
) -> dict:
    """Recent daily history stitched to a projection of the next days.

    Parameters
    ----------
    all_tickets : Full fact_ticket history (not window-filtered).
    history_days : Distinct dates of history kept on the chart.
    horizon_days : Days projected past the last historical date.
    baseline_days : Trailing daily totals averaged into the baseline.
    jitter_pct : Half-width of the multiplicative perturbation
                 (0.10 -> factor drawn from [0.9, 1.1]). 0 disables it.
    seed : Seed for the perturbation generator.

    Returns
    -------
    {
        "chart": DataFrame(date, actual, predicted),
        "history": DataFrame(date, total),
        "baseline": float,
        "total_projected": int,
    }
    The last historical row carries predicted == actual so a plotted line
    is continuous. Empty history gives an empty chart and zero totals.
    """
    modifiers = WEEKDAY_MODIFIERS if weekday_modifiers is None else weekday_modifiers

    daily = build_daily_trend(all_tickets)
    history = daily.tail(history_days).reset_index(drop=True)
    if history.empty:
        logger.warning("No ticket history, returning empty forecast")
        return {"chart": _empty_chart(), "history": history, "baseline": 0.0, "total_projected": 0}

    # the baseline window is independent of how much history is charted
    baseline = float(daily["total"].tail(baseline_days).mean())
    rng = np.random.default_rng(seed) if jitter_pct > 0 else None

    chart = pd.DataFrame({
        "date": history["date"],
        "actual": history["total"].astype(float),
        "predicted": np.nan,
    })
    chart.loc[chart.index[-1], "predicted"] = chart["actual"].iloc[-1]

    last_date = history["date"].iloc[-1]
    projected = []
    for i in range(1, horizon_days + 1):
        day = last_date + pd.Timedelta(days=i)
        factor = modifiers.get(day.weekday(), 1.0)
        if rng is not None:
            factor *= rng.uniform(1 - jitter_pct, 1 + jitter_pct)
        projected.append({
            "date": day,
            "actual": np.nan,
            "predicted": float(round_half_up(baseline * factor)),
        })

    future = pd.DataFrame(projected, columns=CHART_COLUMNS)
    chart = pd.concat([chart, future], ignore_index=True)
    total_projected = int(future["predicted"].sum())

    logger.info(
        "Forecast: baseline %.0f kg/day, %d kg over next %d days",
        baseline, total_projected, horizon_days,
    )
    return {
        "chart": chart[CHART_COLUMNS],
        "history": history,
        "baseline": baseline,
        "total_projected": total_projected,
    }
