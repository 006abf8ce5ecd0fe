"""
Vehicle leaderboard: per-plate totals for the active window enriched with
lifetime loyalty streak and tier.

Two passes, in this order:
    1. Global pass over the full history -> streak, lifetime trips, tier.
       The active window never affects these.
    2. Filtered pass over the window's tickets -> trips, net weight,
       last visit, running average dwell.
Plates with no ticket in the window are left out even if they have
history.
"""

import logging
from typing import Iterable

import pandas as pd

from .config import TIER_LEGEND_MIN_TRIPS, TIER_PRO_MIN_TRIPS
from .kpis import calc_dwell_minutes, is_valid_dwell

logger = logging.getLogger(__name__)

LEADERBOARD_COLUMNS = [
    "plate_number",
    "trip_count",
    "total_net_weight",
    "avg_dwell_minutes",
    "last_visit",
    "current_streak",
    "tier",
    "lifetime_trips",
    "prev_total_net_weight",
    "prev_trip_count",
    "tickets",
]


def calc_streak(dates: Iterable) -> int:
    """Consecutive-day streak ending at the most recent date.

    Distinct dates are walked newest to oldest; the streak grows while
    each step back is exactly one calendar day.
    """
    unique = sorted({pd.Timestamp(d).normalize() for d in dates}, reverse=True)
    if not unique:
        return 0

    streak = 1
    current = unique[0]
    for older in unique[1:]:
        if (current - older).days == 1:
            streak += 1
            current = older
        else:
            break
    return streak


def classify_tier(trip_count: int) -> str:
    """Lifetime-volume tier: Legend (>= 20), Pro (>= 8), else Rookie."""
    if trip_count >= TIER_LEGEND_MIN_TRIPS:
        return "Legend"
    if trip_count >= TIER_PRO_MIN_TRIPS:
        return "Pro"
    return "Rookie"


def build_global_vehicle_stats(all_tickets: pd.DataFrame) -> pd.DataFrame:
    """Lifetime streak and tier per plate over the unfiltered history.

    Returns
    -------
    DataFrame with columns: plate_number, lifetime_trips, current_streak, tier
    """
    if all_tickets.empty:
        return pd.DataFrame(columns=["plate_number", "lifetime_trips", "current_streak", "tier"])

    rows = []
    for plate, group in all_tickets.groupby("plate_number", sort=False):
        lifetime_trips = len(group)
        rows.append({
            "plate_number": plate,
            "lifetime_trips": lifetime_trips,
            "current_streak": calc_streak(group["date"]),
            "tier": classify_tier(lifetime_trips),
        })

    df = pd.DataFrame(rows)
    logger.info("Built global stats for %d vehicles", len(df))
    return df


def build_vehicle_leaderboard(
    all_tickets: pd.DataFrame,
    filtered: pd.DataFrame,
    previous: pd.DataFrame | None = None,
) -> pd.DataFrame:
    """Per-plate leaderboard for the filtered window, heaviest first.

    Parameters
    ----------
    all_tickets : Full fact_ticket history (global pass).
    filtered : Tickets inside the active window (filtered pass).
    previous : Tickets of the comparison period, if any.

    Returns
    -------
    DataFrame with columns:
        plate_number, trip_count, total_net_weight, avg_dwell_minutes,
        last_visit, current_streak, tier, lifetime_trips,
        prev_total_net_weight, prev_trip_count, tickets
    ``tickets`` holds the plate's filtered rows as a list of record dicts.
    """
    if filtered.empty:
        return pd.DataFrame(columns=LEADERBOARD_COLUMNS)

    global_stats = build_global_vehicle_stats(all_tickets).set_index("plate_number")

    prev_totals: dict[str, tuple[float, int]] = {}
    if previous is not None and not previous.empty:
        grouped = previous.groupby("plate_number")["net_weight"].agg(["sum", "count"])
        for plate, row in grouped.iterrows():
            prev_totals[plate] = (float(row["sum"]), int(row["count"]))

    stats: dict[str, dict] = {}
    for idx, ticket in filtered.iterrows():
        plate = ticket["plate_number"]
        v = stats.get(plate)
        if v is None:
            v = stats[plate] = {
                "plate_number": plate,
                "trip_count": 0,
                "total_net_weight": 0.0,
                "avg_dwell_minutes": 0.0,
                "dwell_samples": 0,
                "last_visit": ticket["date"],
                "rows": [],
            }

        v["trip_count"] += 1
        v["total_net_weight"] += ticket["net_weight"]
        v["rows"].append(idx)
        if ticket["date"] > v["last_visit"]:
            v["last_visit"] = ticket["date"]

        dwell = calc_dwell_minutes(ticket["time_in"], ticket["time_out"])
        if is_valid_dwell(dwell):
            v["dwell_samples"] += 1
            n = v["dwell_samples"]
            v["avg_dwell_minutes"] = (v["avg_dwell_minutes"] * (n - 1) + dwell) / n

    rows = []
    for plate, v in stats.items():
        if plate in global_stats.index:
            g = global_stats.loc[plate]
            streak, tier, lifetime = int(g["current_streak"]), g["tier"], int(g["lifetime_trips"])
        else:
            # no global history for this plate
            streak, tier, lifetime = 0, classify_tier(0), 0
        prev_net, prev_trips = prev_totals.get(plate, (0.0, 0))
        rows.append({
            "plate_number": plate,
            "trip_count": v["trip_count"],
            "total_net_weight": v["total_net_weight"],
            "avg_dwell_minutes": v["avg_dwell_minutes"],
            "last_visit": v["last_visit"],
            "current_streak": streak,
            "tier": tier,
            "lifetime_trips": lifetime,
            "prev_total_net_weight": prev_net,
            "prev_trip_count": prev_trips,
            "tickets": filtered.loc[v["rows"]].to_dict("records"),
        })

    board = (
        pd.DataFrame(rows, columns=LEADERBOARD_COLUMNS)
        .sort_values("total_net_weight", ascending=False, kind="mergesort")
        .reset_index(drop=True)
    )
    logger.info("Built vehicle leaderboard with %d plates", len(board))
    return board
