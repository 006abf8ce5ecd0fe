"""
KPI computation functions — pure functions with no side effects.

Provides dwell-time calculation, the dynamic receiving target, headline
KPI aggregation, and period-over-period comparison with RAG
classification.
"""

import calendar
import logging
from datetime import date, datetime
from typing import Any

import numpy as np
import pandas as pd

from .config import (
    BASE_DAILY_TARGET_KG,
    KPI_REGISTRY,
    MAX_VALID_DWELL_MINUTES,
    MINUTES_PER_DAY,
    WORK_DAYS_PER_WEEK,
)
from .filters import reference_date, to_date

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(np.floor(value + 0.5))


# ---------------------------------------------------------------------------
# Dwell time
# ---------------------------------------------------------------------------

def parse_clock(value: Any) -> int | None:
    """Minutes since midnight for an "HH:MM" string, or None."""
    if value is None or not isinstance(value, str):
        return None
    parts = value.strip().split(":")
    if len(parts) < 2:
        return None
    try:
        hours, minutes = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    return hours * 60 + minutes


def calc_dwell_minutes(time_in: Any, time_out: Any) -> float | None:
    """Minutes between time_in and time_out, wrapping past midnight.

    Returns None when either time is missing or unparseable.
    """
    start = parse_clock(time_in)
    finish = parse_clock(time_out)
    if start is None or finish is None:
        return None
    diff = finish - start
    if diff < 0:
        diff += MINUTES_PER_DAY
    return float(diff)


def is_valid_dwell(minutes: float | None) -> bool:
    """Dwell samples outside (0, 300) minutes are entry errors, not visits."""
    return minutes is not None and 0 < minutes < MAX_VALID_DWELL_MINUTES


def dwell_series(fact_ticket: pd.DataFrame) -> pd.Series:
    """Per-ticket dwell minutes; NaN where missing or outside the valid range."""
    if fact_ticket.empty:
        return pd.Series(dtype="float64")
    samples = [
        calc_dwell_minutes(t_in, t_out)
        for t_in, t_out in zip(fact_ticket["time_in"], fact_ticket["time_out"])
    ]
    return pd.Series(
        [m if is_valid_dwell(m) else np.nan for m in samples],
        index=fact_ticket.index,
        dtype="float64",
    )


def average_dwell_minutes(fact_ticket: pd.DataFrame) -> int:
    """Mean valid dwell, rounded to whole minutes; 0 when there are none."""
    valid = dwell_series(fact_ticket).dropna()
    if valid.empty:
        return 0
    return round_half_up(valid.mean())


# ---------------------------------------------------------------------------
# Target
# ---------------------------------------------------------------------------

def implied_day_count(
    window: str | None,
    now: datetime | date | None = None,
    start: Any = None,
    end: Any = None,
) -> int:
    """Working days a window represents for target purposes.

    today/all/unspecified -> 1, week -> 6 (six-day work week),
    month -> days in the reference month, custom -> inclusive day span
    (minimum 1).
    """
    if window == "week":
        return WORK_DAYS_PER_WEEK
    if window == "month":
        today = reference_date(now)
        return calendar.monthrange(today.year, today.month)[1]
    if window == "custom":
        start_date, end_date = to_date(start), to_date(end)
        if start_date is None or end_date is None:
            return 1
        return max((end_date - start_date).days + 1, 1)
    return 1


def calc_dynamic_target(
    window: str | None,
    now: datetime | date | None = None,
    start: Any = None,
    end: Any = None,
    base_daily_target: float = BASE_DAILY_TARGET_KG,
) -> float:
    """Receiving target in kg for the active window."""
    return base_daily_target * implied_day_count(window, now, start, end)


# ---------------------------------------------------------------------------
# Headline KPIs
# ---------------------------------------------------------------------------

def compute_kpis(
    fact_ticket: pd.DataFrame,
    window: str | None = None,
    now: datetime | date | None = None,
    start: Any = None,
    end: Any = None,
    base_daily_target: float = BASE_DAILY_TARGET_KG,
) -> dict:
    """Headline KPIs for an already filtered ticket set.

    Returns
    -------
    {
        "total_net_weight": float,
        "total_bunch_count": float,
        "trip_count": int,
        "avg_ratio": float,          # total net / total bunches, 0 if none
        "current_target": float,
        "target_pct": float,         # capped at 100
        "avg_dwell_minutes": int,
    }
    """
    total_net = float(fact_ticket["net_weight"].sum()) if not fact_ticket.empty else 0.0
    total_bunch = float(fact_ticket["bunch_count"].sum()) if not fact_ticket.empty else 0.0
    avg_ratio = total_net / total_bunch if total_bunch > 0 else 0.0

    target = calc_dynamic_target(window, now, start, end, base_daily_target)
    target_pct = min(total_net / target * 100, 100.0) if target > 0 else 0.0

    kpis = {
        "total_net_weight": total_net,
        "total_bunch_count": total_bunch,
        "trip_count": int(len(fact_ticket)),
        "avg_ratio": avg_ratio,
        "current_target": target,
        "target_pct": target_pct,
        "avg_dwell_minutes": average_dwell_minutes(fact_ticket),
    }
    logger.info(
        "KPIs over %d tickets: %.0f kg of %.0f kg target",
        kpis["trip_count"], total_net, target,
    )
    return kpis


# ---------------------------------------------------------------------------
# Period comparison
# ---------------------------------------------------------------------------

def calc_variance(actual: float, budget: float) -> tuple[float, float | None]:
    """Return (absolute_variance, pct_variance).

    pct_variance is None if budget == 0.
    """
    absolute = actual - budget
    if budget == 0:
        return absolute, None
    pct = (absolute / budget) * 100
    return absolute, pct


def classify_performance(
    actual: float,
    budget: float,
    direction: str,
    amber_band_pct: float = 5.0,
) -> str:
    """Return 'green', 'amber', or 'red' RAG classification.

    Logic
    -----
    - direction='higher_is_better':
        green  if actual >= budget
        amber  if actual >= budget * (1 - amber_band_pct/100)
        red    otherwise

    - direction='lower_is_better':
        green  if actual <= budget
        amber  if actual <= budget * (1 + amber_band_pct/100)
        red    otherwise
    """
    if pd.isna(actual) or pd.isna(budget):
        return "grey"

    if budget == 0:
        return "grey"

    if direction == "higher_is_better":
        if actual >= budget:
            return "green"
        threshold = budget * (1 - amber_band_pct / 100)
        if actual >= threshold:
            return "amber"
        return "red"
    else:  # lower_is_better
        if actual <= budget:
            return "green"
        threshold = budget * (1 + amber_band_pct / 100)
        if actual <= threshold:
            return "amber"
        return "red"


def compare_periods(period_a: pd.DataFrame, period_b: pd.DataFrame) -> pd.DataFrame:
    """Compare headline KPIs of period A (current) against period B (baseline).

    Returns
    -------
    DataFrame with one row per KPI_REGISTRY entry and columns:
        kpi_name, period_a, period_b, delta, delta_pct, unit, direction, rag
    ``delta_pct`` is 0 when period B is 0.
    """
    stats_a = compute_kpis(period_a)
    stats_b = compute_kpis(period_b)

    rows = []
    for kpi_name, registry in KPI_REGISTRY.items():
        a = stats_a[kpi_name]
        b = stats_b[kpi_name]
        delta, delta_pct = calc_variance(a, b)
        direction = registry.get("direction", "higher_is_better")
        rows.append({
            "kpi_name": kpi_name,
            "period_a": a,
            "period_b": b,
            "delta": delta,
            "delta_pct": delta_pct if delta_pct is not None else 0.0,
            "unit": registry.get("unit", ""),
            "direction": direction,
            "rag": classify_performance(a, b, direction, registry.get("amber_band", 5.0)),
        })

    df = pd.DataFrame(rows)
    logger.info("Compared %d KPIs across periods", len(df))
    return df
