"""
Shared utilities for ticket ingestion: date normalisation, numeric
coercion, header detection.
"""

import logging
import re
from typing import Any

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

# Leading decimal number of a weighbridge cell such as "1000 kg" or "12.5t"
_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def normalise_date(val: Any) -> pd.Timestamp | None:
    """Convert a date-like value to a midnight pd.Timestamp.

    Handles Excel serial numbers (1899-12-30 epoch), datetime objects and
    ISO strings with or without a time part. Slash-separated strings are
    read day-first (D/M/Y), the weighbridge export convention. Returns None
    for unparseable values.
    """
    if val is None:
        return None
    if isinstance(val, str):
        val = val.strip()
        if not val:
            return None
        if "/" in val:
            parts = val.split("/")
            if len(parts) != 3:
                return None
            day, month, year = (p.strip() for p in parts)
            val = f"{year}-{month.zfill(2)}-{day.zfill(2)}"
    elif pd.isna(val):
        return None
    if isinstance(val, (int, float, np.integer, np.floating)) and not isinstance(val, bool):
        try:
            return pd.Timestamp("1899-12-30") + pd.Timedelta(days=int(val))
        except (ValueError, OverflowError):
            logger.warning("Could not convert serial number %s to date", val)
            return None
    try:
        ts = pd.Timestamp(val)
    except (ValueError, TypeError):
        logger.debug("Could not parse date value: %s", val)
        return None
    if pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts.normalize()


def safe_float(val: Any) -> float | None:
    """Coerce a value to a finite float, returning None otherwise.

    Strings are read up to the end of their leading number, so ``"1000 kg"``
    gives 1000.0. ``"NaN"``, ``"inf"`` and text with no leading digits give
    None.
    """
    if val is None:
        return None
    if isinstance(val, str):
        match = _LEADING_NUMBER.match(val.strip())
        if match is None:
            return None
        val = match.group(0)
    try:
        result = float(val)
    except (ValueError, TypeError):
        return None
    if not np.isfinite(result):
        return None
    return result


def safe_weight(val: Any) -> float:
    """Numeric weighbridge field; unparsable or negative input degrades to 0."""
    result = safe_float(val)
    if result is None or result < 0:
        return 0.0
    return result


def cell_text(val: Any) -> str:
    """Render a spreadsheet cell as the text a CSV export would contain."""
    if val is None:
        return ""
    if hasattr(val, "strftime") and hasattr(val, "hour"):
        # openpyxl returns datetime for date cells and time for clock cells
        if hasattr(val, "year"):
            return val.strftime("%Y-%m-%d")
        return val.strftime("%H:%M")
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    return str(val).strip()


def find_header_row(
    sheet,
    signature: set[str],
    max_rows: int = 20,
) -> int | None:
    """Scan an openpyxl sheet for the row containing signature strings.

    Returns the 1-based row index where at least two cells match values
    in `signature` (case-insensitive), or None if not found within
    `max_rows`.
    """
    wanted = {s.lower() for s in signature}
    for row_idx in range(1, max_rows + 1):
        matches = 0
        for cell in sheet[row_idx]:
            if cell.value is not None and str(cell.value).strip().lower() in wanted:
                matches += 1
        if matches >= 2:
            return row_idx
    return None
