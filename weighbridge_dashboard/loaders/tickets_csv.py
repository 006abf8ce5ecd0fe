"""
Loaders for weighbridge ticket exports (CSV text and .xlsx workbooks).

Expected column order (positional, header optional):
    ID, Tanggal, Jam Masuk, Jam Keluar, No Polisi, Netto, Janjang, Lokasi

Rows that are short, lack an id or date, or carry an invalid date are
skipped and counted; they never abort the batch. A batch with no valid
rows at all raises EmptyImportError.
"""

import logging
from pathlib import Path

import openpyxl

from ..config import (
    CSV_HEADER_LABELS,
    CSV_MIN_FIELDS,
    DEFAULT_LOCATION,
    DEFAULT_TIME,
)
from ..models import ImportResult, Ticket
from .utils import cell_text, find_header_row, normalise_date, safe_weight

logger = logging.getLogger(__name__)


class EmptyImportError(ValueError):
    """Raised when an import batch yields zero valid tickets."""

    def __init__(self, skipped: int = 0):
        self.skipped = skipped
        super().__init__(
            "No valid tickets found. Check the file follows the column order "
            f"({', '.join(CSV_HEADER_LABELS)}); {skipped} row(s) skipped."
        )


# ---------------------------------------------------------------------------
# Row-level parsing
# ---------------------------------------------------------------------------

def split_csv_line(line: str, delimiter: str = ",") -> list[str]:
    """Split one delimited line into fields.

    Two states: outside quotes a delimiter ends the field and a quote opens
    a quoted section; inside quotes a doubled quote is a literal quote and a
    lone quote closes the section. Text outside quotes is whitespace-trimmed.
    """
    fields: list[str] = []
    buf: list[str] = []
    in_quotes = False
    closed_at = None  # len(buf) when the last quoted section closed
    i = 0
    n = len(line)

    while i < n:
        char = line[i]
        if in_quotes:
            if char == '"':
                if i + 1 < n and line[i + 1] == '"':
                    buf.append('"')
                    i += 2
                    continue
                in_quotes = False
                closed_at = len(buf)
            else:
                buf.append(char)
        elif char == '"':
            if closed_at is None and not "".join(buf).strip():
                buf = []
            in_quotes = True
        elif char == delimiter:
            fields.append(_finish_field(buf, closed_at))
            buf = []
            closed_at = None
        else:
            buf.append(char)
        i += 1

    fields.append(_finish_field(buf, closed_at))
    return fields


def _finish_field(buf: list[str], closed_at: int | None) -> str:
    if closed_at is None:
        return "".join(buf).strip()
    # keep quoted content verbatim, trim only what trails the closing quote
    return "".join(buf[:closed_at]) + "".join(buf[closed_at:]).rstrip()


def iter_csv_records(text: str):
    """Yield (line_no, record) pairs, joining lines inside an open quote.

    A quoted field may contain a newline; the physical lines are glued back
    together until the quote count is even again. Records end at ``\\n`` or
    ``\\r\\n`` only; other line-break characters stay inside the field.
    """
    pending: list[str] = []
    start_no = 0
    for line_no, line in enumerate(text.split("\n"), start=1):
        if not pending:
            start_no = line_no
        pending.append(line)
        record = "\n".join(pending)
        if record.count('"') % 2 == 0:
            pending = []
            yield start_no, record.removesuffix("\r")
    if pending:
        yield start_no, "\n".join(pending)


def is_header_row(fields: list[str]) -> bool:
    """True if the first field names the ticket-id column."""
    if not fields:
        return False
    first = fields[0].strip().lower()
    return first == "id" or first == "no tiket" or "tiket" in first


def normalise_ticket_date(raw: str) -> str | None:
    """Return the ticket date as YYYY-MM-DD, or None if it is not a real date.

    D/M/Y input is rewritten to Y-M-D before validation.
    """
    ts = normalise_date(raw)
    if ts is None:
        return None
    return ts.strftime("%Y-%m-%d")


def parse_ticket_row(fields: list[str]) -> Ticket | None:
    """Build a Ticket from split fields, or None if the row must be skipped."""
    if len(fields) < CSV_MIN_FIELDS:
        return None

    ticket_id, raw_date, time_in, time_out, plate, net_raw, bunch_raw, location = (
        fields[:CSV_MIN_FIELDS]
    )
    ticket_id = ticket_id.strip()
    if not ticket_id or not raw_date.strip():
        return None

    date = normalise_ticket_date(raw_date)
    if date is None:
        logger.debug("Ticket %s: invalid date %r", ticket_id, raw_date)
        return None

    return Ticket(
        id=ticket_id,
        date=date,
        time_in=time_in.strip() or DEFAULT_TIME,
        time_out=time_out.strip() or DEFAULT_TIME,
        plate_number=plate,
        location=location if location.strip() else DEFAULT_LOCATION,
        net_weight=safe_weight(net_raw),
        bunch_count=safe_weight(bunch_raw),
    )


def _collect_rows(rows, source: str, check_header: bool = True) -> ImportResult:
    """Parse split rows into an ImportResult, de-duplicating on id.

    Only the first row is tested as a header. A repeated id keeps the
    first validated row; later ones are counted as skipped.
    """
    result = ImportResult()
    seen: set[str] = set()
    first = check_header

    for line_no, fields in rows:
        if first:
            first = False
            if is_header_row(fields):
                logger.debug("Skipping header row: %s", fields)
                result.skipped += 1
                continue

        ticket = parse_ticket_row(fields)
        if ticket is None:
            logger.debug("%s line %d skipped: %s", source, line_no, fields)
            result.skipped += 1
            continue
        if ticket.id in seen:
            logger.warning(
                "%s line %d: duplicate ticket id %s ignored", source, line_no, ticket.id
            )
            result.skipped += 1
            continue

        seen.add(ticket.id)
        result.tickets.append(ticket)

    if not result.tickets:
        logger.warning("No valid tickets in %s (%d rows skipped)", source, result.skipped)
        raise EmptyImportError(result.skipped)

    logger.info(
        "Parsed %d tickets from %s (%d rows skipped)",
        result.valid, source, result.skipped,
    )
    return result


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

def parse_tickets_csv(text: str, delimiter: str = ",") -> ImportResult:
    """Parse CSV text into tickets plus a skipped-row count.

    Blank lines are ignored entirely (not counted as skipped).

    Raises
    ------
    EmptyImportError
        If no row yields a valid ticket.
    """
    def _rows():
        for line_no, record in iter_csv_records(text):
            if not record.strip():
                continue
            yield line_no, split_csv_line(record.strip(), delimiter)

    return _collect_rows(_rows(), "csv")


def load_tickets_csv(path: str, encoding: str = "utf-8-sig") -> ImportResult:
    """Load a ticket CSV file from disk.

    ``utf-8-sig`` strips the byte-order mark spreadsheet tools prepend.
    """
    try:
        text = Path(path).read_text(encoding=encoding)
    except OSError:
        logger.exception("Failed to open ticket CSV: %s", path)
        raise
    return parse_tickets_csv(text)


# ---------------------------------------------------------------------------
# Excel
# ---------------------------------------------------------------------------

def load_tickets_excel(path: str, sheet_name: str | None = None) -> ImportResult:
    """Load tickets from a weighbridge .xlsx export.

    Assumptions
    -----------
    - Columns follow the CSV order starting at column A.
    - A header row (matched against CSV_HEADER_LABELS) may sit anywhere in
      the first 20 rows; data starts on the row after it. Without a
      recognisable header, row 1 is treated like the first CSV line.
    - Date cells may be real dates, D/M/Y text or Excel serial numbers.
    """
    try:
        wb = openpyxl.load_workbook(path, data_only=True)
    except Exception:
        logger.exception("Failed to open ticket workbook: %s", path)
        raise

    if sheet_name is None or sheet_name not in wb.sheetnames:
        if sheet_name is not None:
            logger.warning("Sheet '%s' not found, using '%s'", sheet_name, wb.sheetnames[0])
        sheet_name = wb.sheetnames[0]
    ws = wb[sheet_name]

    header_row = find_header_row(ws, set(CSV_HEADER_LABELS))
    start_row = header_row + 1 if header_row is not None else 1

    def _rows():
        for row_idx, row in enumerate(
            ws.iter_rows(min_row=start_row, values_only=True), start=start_row
        ):
            values = list(row[:CSV_MIN_FIELDS])
            if all(v is None or str(v).strip() == "" for v in values):
                continue
            fields = [cell_text(v) for v in values]
            raw_date = values[1] if len(values) > 1 else None
            if isinstance(raw_date, (int, float)) and not isinstance(raw_date, bool):
                # Serial-number date cell
                fields[1] = normalise_ticket_date(raw_date) or ""
            yield row_idx, fields

    try:
        return _collect_rows(_rows(), Path(path).name, check_header=header_row is None)
    finally:
        wb.close()
