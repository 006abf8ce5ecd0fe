"""
Factor analysis: how daily intake moves with weather and yard conditions.

Tickets are rolled up to one row per date (net weight, bunches, kg per
bunch, mean dwell) and weather rainfall is joined on. Pearson correlations
are taken over that daily frame, optionally with the driver metric lagged
by a number of days, and days far off the fitted line are flagged.
"""

import logging
from typing import Iterable

import pandas as pd

from .config import FACTOR_METRICS, FACTOR_OUTLIER_SIGMA
from .kpis import dwell_series
from .quality import ratio_series
from .weather import build_weather_frame

logger = logging.getLogger(__name__)

DAILY_COLUMNS = ["date", "trip_count", *FACTOR_METRICS]


def build_factor_frame(
    fact_ticket: pd.DataFrame,
    weather_logs: Iterable | pd.DataFrame | None = None,
) -> pd.DataFrame:
    """One row per date with every factor metric.

    Returns
    -------
    DataFrame with columns:
        date, trip_count, net_weight, bunch_count, ratio, dwell_minutes,
        rainfall_mm

    Weather-only dates are kept with zero intake. Dates with neither intake
    nor rain are dropped.
    """
    if fact_ticket.empty:
        daily = pd.DataFrame({"date": pd.Series(dtype="datetime64[ns]")})
    else:
        df = fact_ticket.assign(dwell_minutes=dwell_series(fact_ticket))
        daily = (
            df.groupby("date", sort=True)
            .agg(
                trip_count=("id", "count"),
                net_weight=("net_weight", "sum"),
                bunch_count=("bunch_count", "sum"),
                dwell_minutes=("dwell_minutes", "mean"),
            )
            .reset_index()
        )

    weather = build_weather_frame(weather_logs)[["date", "rainfall_mm"]]
    daily = daily.merge(weather, on="date", how="outer").sort_values("date")

    for col in ("trip_count", "net_weight", "bunch_count", "dwell_minutes", "rainfall_mm"):
        if col not in daily.columns:
            daily[col] = 0.0
        daily[col] = daily[col].astype(float).fillna(0.0)
    daily["trip_count"] = daily["trip_count"].astype(int)
    daily["ratio"] = ratio_series(daily["net_weight"], daily["bunch_count"])

    daily = daily[(daily["net_weight"] > 0) | (daily["rainfall_mm"] > 0)]
    return daily[DAILY_COLUMNS].reset_index(drop=True)


def apply_lag(daily: pd.DataFrame, metric: str, lag_days: int) -> pd.DataFrame:
    """Replace ``metric`` on each date with its value ``lag_days`` earlier.

    Dates whose lagged source date is missing from the frame are dropped.
    A negative lag looks forward instead.
    """
    if lag_days == 0 or daily.empty:
        return daily.copy()
    source = daily.set_index("date")[metric]
    lagged = (daily["date"] - pd.Timedelta(days=lag_days)).map(source)
    out = daily.assign(**{metric: lagged})
    return out.dropna(subset=[metric]).reset_index(drop=True)


def correlation_matrix(daily: pd.DataFrame) -> pd.DataFrame:
    """Pearson r between every pair of factor metrics.

    A metric with no variance correlates 0 with everything, itself included.
    """
    metrics = list(FACTOR_METRICS)
    if len(daily) < 2:
        return pd.DataFrame(0.0, index=metrics, columns=metrics)
    return daily[metrics].corr(method="pearson").fillna(0.0)


def fit_factor(daily: pd.DataFrame, x: str, y: str) -> dict:
    """Least-squares line of ``y`` on ``x`` with residual outliers marked.

    Returns
    -------
    {
        "r": float, "slope": float, "intercept": float, "std_dev": float,
        "points": DataFrame(date, x, y, residual, is_outlier),
    }
    ``std_dev`` is the population std dev of the absolute residuals; a day
    is an outlier when its residual is above ``FACTOR_OUTLIER_SIGMA`` times
    that.
    """
    points = daily[["date", x, y]].copy()
    if len(points) < 2:
        points["residual"] = 0.0
        points["is_outlier"] = False
        return {"r": 0.0, "slope": 0.0, "intercept": 0.0, "std_dev": 0.0, "points": points}

    xs = points[x].astype(float)
    ys = points[y].astype(float)
    var_x = xs.var(ddof=0)
    slope = float(xs.cov(ys, ddof=0) / var_x) if var_x > 0 else 0.0
    intercept = float(ys.mean() - slope * xs.mean())
    r = xs.corr(ys)

    residuals = (ys - (slope * xs + intercept)).abs()
    std_dev = float(residuals.std(ddof=0))
    threshold = FACTOR_OUTLIER_SIGMA * std_dev
    points["residual"] = residuals
    points["is_outlier"] = (residuals > threshold) & (residuals > 0)

    return {
        "r": 0.0 if pd.isna(r) else float(r),
        "slope": slope,
        "intercept": intercept,
        "std_dev": std_dev,
        "points": points,
    }


def build_factor_correlation(
    fact_ticket: pd.DataFrame,
    weather_logs: Iterable | pd.DataFrame | None = None,
    lag_days: int = 0,
    x: str = "rainfall_mm",
    y: str = "net_weight",
) -> dict:
    """Daily factor frame, its correlation matrix and the x/y fit.

    Parameters
    ----------
    fact_ticket : Tickets to analyse (usually already window-filtered).
    weather_logs : Weather records supplying rainfall.
    lag_days : Days by which ``x`` is lagged, so each date's ``y`` is
               paired with ``x`` from ``lag_days`` earlier.
    x, y : Keys of config.FACTOR_METRICS.

    Returns
    -------
    {
        "daily": DataFrame,      # lag already applied to x
        "matrix": DataFrame,
        "fit": dict,             # see fit_factor()
        "lag_days": int,
    }
    """
    for metric in (x, y):
        if metric not in FACTOR_METRICS:
            raise ValueError(f"Unknown factor metric: {metric!r}")

    daily = apply_lag(build_factor_frame(fact_ticket, weather_logs), x, lag_days)
    fit = fit_factor(daily, x, y)
    logger.debug(
        "Factor fit %s~%s lag %d: r=%.3f over %d days",
        y, x, lag_days, fit["r"], len(daily),
    )
    return {
        "daily": daily,
        "matrix": correlation_matrix(daily),
        "fit": fit,
        "lag_days": lag_days,
    }
