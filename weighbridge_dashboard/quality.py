"""
Quality grading: per-ticket ratio (kg per bunch), grade classification,
grade distribution and location quality leaderboard.

Grades
------
    ratio >= 20        -> A
    10 <= ratio < 20   -> B
    otherwise          -> C

A ticket with zero bunches has ratio 0 and grades C; the scatter frame
marks it ``ungraded`` so it can be told apart from genuinely poor fruit.
"""

import logging

import numpy as np
import pandas as pd

from .config import (
    GRADE_A_MIN_RATIO,
    GRADE_B_MIN_RATIO,
    GRADES,
    QUALITY_LEADERBOARD_SIZE,
)

logger = logging.getLogger(__name__)


def calc_ratio(net_weight: float, bunch_count: float) -> float:
    """Return net_weight / bunch_count, or 0.0 when there are no bunches."""
    if not bunch_count:
        return 0.0
    return net_weight / bunch_count


def ratio_series(net_weight: pd.Series, bunch_count: pd.Series) -> pd.Series:
    """Vectorised calc_ratio."""
    safe = bunch_count.where(bunch_count > 0)
    return (net_weight / safe).fillna(0.0).astype(float)


def grade_ratio(ratio: float) -> str:
    if ratio >= GRADE_A_MIN_RATIO:
        return "A"
    if ratio >= GRADE_B_MIN_RATIO:
        return "B"
    return "C"


def grade_series(ratios: pd.Series) -> pd.Series:
    """Vectorised grade_ratio."""
    grades = np.select(
        [ratios >= GRADE_A_MIN_RATIO, ratios >= GRADE_B_MIN_RATIO],
        ["A", "B"],
        default="C",
    )
    return pd.Series(grades, index=ratios.index, dtype="object")


def build_quality_scatter(fact_ticket: pd.DataFrame) -> pd.DataFrame:
    """Per-ticket quality records for the weight/ratio scatter plot.

    Returns
    -------
    DataFrame with columns:
        id, plate_number, location, net_weight, ratio, grade, ungraded
    ``ratio`` is rounded to 2 dp; the grade is taken from the exact ratio.
    """
    columns = ["id", "plate_number", "location", "net_weight", "ratio", "grade", "ungraded"]
    if fact_ticket.empty:
        return pd.DataFrame(columns=columns)

    df = fact_ticket[["id", "plate_number", "location", "net_weight", "bunch_count"]].copy()
    exact = ratio_series(df["net_weight"], df["bunch_count"])
    df["ratio"] = exact.round(2)
    df["grade"] = grade_series(exact)
    df["ungraded"] = df["bunch_count"] <= 0
    return df[columns].reset_index(drop=True)


def count_grades(fact_ticket: pd.DataFrame) -> dict[str, int]:
    """Ticket count per grade; every grade key is always present."""
    counts = {grade: 0 for grade in GRADES}
    if fact_ticket.empty:
        return counts
    ratios = ratio_series(fact_ticket["net_weight"], fact_ticket["bunch_count"])
    for grade, n in grade_series(ratios).value_counts().items():
        counts[grade] = int(n)
    return counts


def location_quality_leaderboard(
    fact_ticket: pd.DataFrame,
    top_n: int = QUALITY_LEADERBOARD_SIZE,
) -> pd.DataFrame:
    """Mean per-ticket ratio by location, best first, truncated to ``top_n``.

    Returns
    -------
    DataFrame with columns: location, avg_ratio, trip_count
    """
    if fact_ticket.empty:
        return pd.DataFrame(columns=["location", "avg_ratio", "trip_count"])

    df = fact_ticket[["location"]].copy()
    df["ratio"] = ratio_series(fact_ticket["net_weight"], fact_ticket["bunch_count"])
    board = (
        df.groupby("location")
        .agg(avg_ratio=("ratio", "mean"), trip_count=("ratio", "size"))
        .reset_index()
        .sort_values("avg_ratio", ascending=False, kind="mergesort")
        .head(top_n)
        .reset_index(drop=True)
    )
    return board


def low_grade_tickets(fact_ticket: pd.DataFrame) -> pd.DataFrame:
    """Grade C tickets that actually carried bunches, lowest ratio first."""
    if fact_ticket.empty:
        return fact_ticket.assign(ratio=pd.Series(dtype="float64"))

    df = fact_ticket[fact_ticket["bunch_count"] > 0].copy()
    df["ratio"] = df["net_weight"] / df["bunch_count"]
    df = df[df["ratio"] < GRADE_B_MIN_RATIO]
    return df.sort_values("ratio", kind="mergesort").reset_index(drop=True)


def grade_quality(
    fact_ticket: pd.DataFrame,
    previous: pd.DataFrame | None = None,
) -> dict:
    """Bundle the quality views for one filtered ticket set.

    Parameters
    ----------
    fact_ticket : Filtered fact_ticket DataFrame.
    previous : Tickets of the comparison period, if any.

    Returns
    -------
    {
        "grade_counts": {"A": .., "B": .., "C": ..},
        "prev_grade_counts": {"A": .., "B": .., "C": ..},
        "location_leaderboard": DataFrame,
        "scatter": DataFrame,
        "low_grade": DataFrame,
    }
    """
    if previous is None:
        previous = fact_ticket.iloc[0:0]
    result = {
        "grade_counts": count_grades(fact_ticket),
        "prev_grade_counts": count_grades(previous),
        "location_leaderboard": location_quality_leaderboard(fact_ticket),
        "scatter": build_quality_scatter(fact_ticket),
        "low_grade": low_grade_tickets(fact_ticket),
    }
    logger.info(
        "Graded %d tickets: %s", len(fact_ticket), result["grade_counts"]
    )
    return result
