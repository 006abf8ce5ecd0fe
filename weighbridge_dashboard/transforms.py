"""
Data transforms: normalise raw ticket feeds into the fact_ticket table
and derive the chart-ready series built on it.
"""

import logging
import re
from typing import Iterable

import numpy as np
import pandas as pd

from .config import (
    PEAK_HOUR_RANGE,
    SPARKLINE_DAYS,
    TICKET_COLUMNS,
    TICKET_FIELD_ALIASES,
)
from .loaders.utils import normalise_date
from .models import Ticket
from .quality import ratio_series

logger = logging.getLogger(__name__)

_AFD_PATTERN = re.compile(r"AFD\s+([A-Z0-9]+)", re.IGNORECASE)


def _empty_fact_ticket() -> pd.DataFrame:
    df = pd.DataFrame({col: pd.Series(dtype="object") for col in TICKET_COLUMNS})
    df["date"] = pd.Series(dtype="datetime64[ns]")
    df["net_weight"] = pd.Series(dtype="float64")
    df["bunch_count"] = pd.Series(dtype="float64")
    return df


def build_fact_ticket(records: Iterable | pd.DataFrame) -> pd.DataFrame:
    """Normalise a ticket feed into the fact_ticket DataFrame.

    Parameters
    ----------
    records : Ticket objects, dicts (snake_case or source field names), or
              a DataFrame. Order is irrelevant.

    Returns
    -------
    fact_ticket DataFrame with columns:
        id, date, time_in, time_out, plate_number, location,
        net_weight, bunch_count

    ``date`` is a tz-naive midnight Timestamp. Rows whose date cannot be
    parsed are dropped; a repeated id keeps its first occurrence.
    """
    if isinstance(records, pd.DataFrame):
        df = records.copy()
    else:
        rows = []
        for record in records:
            if isinstance(record, Ticket):
                rows.append(record.to_dict())
            else:
                rows.append(dict(record))
        df = pd.DataFrame(rows)

    if df.empty:
        return _empty_fact_ticket()

    df = df.rename(columns=TICKET_FIELD_ALIASES)
    for col in TICKET_COLUMNS:
        if col not in df.columns:
            df[col] = None

    df["id"] = df["id"].astype(str).str.strip()
    # per value, so one feed may mix plain dates, date-times and D/M/Y
    dates = df["date"].map(normalise_date).astype(object)
    df["date"] = pd.to_datetime(dates).astype("datetime64[ns]")

    for col in ("time_in", "time_out", "plate_number", "location"):
        df[col] = df[col].fillna("").astype(str)
    for col in ("net_weight", "bunch_count"):
        df[col] = (
            pd.to_numeric(df[col], errors="coerce")
            .replace([np.inf, -np.inf], np.nan)
            .fillna(0.0)
            .clip(lower=0)
            .astype(float)
        )

    bad_dates = df["date"].isna()
    if bad_dates.any():
        logger.warning("Dropping %d tickets with unparseable dates", int(bad_dates.sum()))
        df = df[~bad_dates]

    dupes = df["id"].duplicated(keep="first")
    if dupes.any():
        logger.warning("Dropping %d tickets with duplicate ids", int(dupes.sum()))
        df = df[~dupes]

    return df[TICKET_COLUMNS].reset_index(drop=True)


def short_location_name(location: str, max_len: int = 10) -> str:
    """Display label for a location: 'AFD X' when it names a division."""
    if not location:
        return "Unknown"
    match = _AFD_PATTERN.search(location)
    if match:
        return f"AFD {match.group(1).upper()}"
    return location[:max_len]


def build_daily_trend(fact_ticket: pd.DataFrame) -> pd.DataFrame:
    """Summed net weight per calendar date, ascending.

    Returns
    -------
    DataFrame with columns: date, total
    """
    if fact_ticket.empty:
        return pd.DataFrame({
            "date": pd.Series(dtype="datetime64[ns]"),
            "total": pd.Series(dtype="float64"),
        })

    trend = (
        fact_ticket.groupby("date", sort=True)["net_weight"]
        .sum()
        .reset_index()
        .rename(columns={"net_weight": "total"})
    )
    return trend


def build_location_totals(fact_ticket: pd.DataFrame) -> pd.DataFrame:
    """Net weight per location, largest supplier first.

    Returns
    -------
    DataFrame with columns: name, full_name, value
    """
    if fact_ticket.empty:
        return pd.DataFrame(columns=["name", "full_name", "value"])

    df = fact_ticket.copy()
    df["full_name"] = df["location"].replace("", "Unknown")
    totals = (
        df.groupby("full_name")["net_weight"]
        .sum()
        .reset_index()
        .rename(columns={"net_weight": "value"})
    )
    totals.insert(0, "name", totals["full_name"].map(short_location_name))
    return totals.sort_values("value", ascending=False, kind="mergesort").reset_index(drop=True)


def build_peak_hours(fact_ticket: pd.DataFrame) -> pd.DataFrame:
    """Arrivals per time-in hour over the fixed 07:00-22:00 range.

    Returns
    -------
    DataFrame with columns: hour ("HH:00"), count
    """
    counts: dict[int, int] = {}
    if not fact_ticket.empty:
        hours = pd.to_numeric(
            fact_ticket["time_in"].str.split(":").str[0], errors="coerce"
        ).dropna()
        hours = hours[(hours >= 0) & (hours < 24)].astype(int)
        counts = hours.value_counts().to_dict()

    return pd.DataFrame({
        "hour": [f"{h:02d}:00" for h in PEAK_HOUR_RANGE],
        "count": [int(counts.get(h, 0)) for h in PEAK_HOUR_RANGE],
    })


def build_sparklines(all_tickets: pd.DataFrame, days: int = SPARKLINE_DAYS) -> pd.DataFrame:
    """Per-date totals for the most recent ``days`` distinct dates (full history).

    Returns
    -------
    DataFrame with columns: date, net_weight, bunch_count, trip_count, ratio
    """
    columns = ["date", "net_weight", "bunch_count", "trip_count", "ratio"]
    if all_tickets.empty:
        return pd.DataFrame(columns=columns)

    daily = (
        all_tickets.groupby("date", sort=True)
        .agg(
            net_weight=("net_weight", "sum"),
            bunch_count=("bunch_count", "sum"),
            trip_count=("id", "count"),
        )
        .tail(days)
        .reset_index()
    )
    daily["ratio"] = ratio_series(daily["net_weight"], daily["bunch_count"]).round(2)
    return daily[columns]
