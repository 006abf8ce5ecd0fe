"""
CSV export of tickets (backup file / re-import source).

Only field quoting is owned here; where the text ends up (download,
disk, object store) is the caller's concern.
"""

import logging
from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from .config import CSV_COLUMNS, CSV_HEADER_LABELS
from .transforms import build_fact_ticket

logger = logging.getLogger(__name__)


def quote_csv_field(value: Any, delimiter: str = ",") -> str:
    """Render one field, quoting it if it holds a delimiter, quote or newline.

    Values with leading or trailing whitespace are quoted too, since the
    reader trims unquoted text.
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        text = ""
    elif isinstance(value, float) and value.is_integer():
        text = str(int(value))
    else:
        text = str(value)

    special = delimiter in text or '"' in text or "\n" in text or "\r" in text
    if special or text != text.strip():
        return '"' + text.replace('"', '""') + '"'
    return text


def tickets_to_csv(tickets: Iterable | pd.DataFrame, delimiter: str = ",") -> str:
    """Serialise tickets to CSV text with the weighbridge header row.

    Rows are written in the order received. Dates are written as
    YYYY-MM-DD so a re-import reproduces them unchanged.
    """
    fact = build_fact_ticket(tickets)

    lines = [delimiter.join(CSV_HEADER_LABELS)]
    for row in fact.itertuples(index=False):
        record = row._asdict()
        record["date"] = record["date"].strftime("%Y-%m-%d")
        lines.append(
            delimiter.join(quote_csv_field(record[col], delimiter) for col in CSV_COLUMNS)
        )

    logger.info("Serialised %d tickets to CSV", len(fact))
    return "\n".join(lines)


def save_tickets_csv(tickets: Iterable | pd.DataFrame, path: str) -> Path:
    """Write tickets_to_csv() output to disk as UTF-8."""
    out = Path(path)
    out.write_text(tickets_to_csv(tickets), encoding="utf-8")
    logger.info("Wrote ticket backup to %s", out)
    return out
