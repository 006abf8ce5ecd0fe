"""
Unit tests for loaders/tickets_csv.py: field splitting, row validation,
batch parsing and the CSV/Excel file loaders.
"""

from datetime import datetime

import openpyxl
import pytest

from weighbridge_dashboard.config import CSV_HEADER_LABELS
from weighbridge_dashboard.kpis import compute_kpis
from weighbridge_dashboard.loaders import (
    EmptyImportError,
    load_tickets_csv,
    load_tickets_excel,
    parse_tickets_csv,
)
from weighbridge_dashboard.loaders.tickets_csv import (
    is_header_row,
    parse_ticket_row,
    split_csv_line,
)
from weighbridge_dashboard.transforms import build_fact_ticket


HEADER = ",".join(CSV_HEADER_LABELS)


def _row(*fields):
    return list(fields)


# ---------------------------------------------------------------------------
# Field splitting
# ---------------------------------------------------------------------------

class TestSplitCsvLine:
    def test_unquoted_fields_are_trimmed(self):
        assert split_csv_line(" T1 , 2024-03-01 ,x") == ["T1", "2024-03-01", "x"]

    def test_delimiter_inside_quotes(self):
        assert split_csv_line('T1,"AFD A, Blok 3",x') == ["T1", "AFD A, Blok 3", "x"]

    def test_doubled_quote_is_literal(self):
        assert split_csv_line('"say ""hi""",x') == ['say "hi"', "x"]

    def test_quoted_whitespace_is_kept(self):
        assert split_csv_line('"  padded  ",x') == ["  padded  ", "x"]

    def test_trailing_empty_field(self):
        assert split_csv_line("a,b,") == ["a", "b", ""]

    def test_custom_delimiter(self):
        assert split_csv_line("a;b,c", ";") == ["a", "b,c"]


class TestIsHeaderRow:
    @pytest.mark.parametrize("first", ["ID", "id", "No Tiket", "Nomor Tiket"])
    def test_header_labels(self, first):
        assert is_header_row([first, "Tanggal"])

    def test_ticket_id_is_not_header(self):
        assert not is_header_row(["T1", "2024-03-01"])


# ---------------------------------------------------------------------------
# Row validation
# ---------------------------------------------------------------------------

class TestParseTicketRow:
    def test_valid_row(self):
        ticket = parse_ticket_row(
            _row("T1", "2024-03-01", "08:00", "08:30", "BD 1", "1000", "40", "AFD A")
        )
        assert ticket.id == "T1"
        assert ticket.date == "2024-03-01"
        assert ticket.plate_number == "BD 1"
        assert ticket.net_weight == 1000.0
        assert ticket.bunch_count == 40.0
        assert ticket.location == "AFD A"

    def test_day_month_year_is_rewritten(self):
        ticket = parse_ticket_row(
            _row("T1", "5/3/2024", "08:00", "08:30", "BD 1", "1000", "40", "AFD A")
        )
        assert ticket.date == "2024-03-05"

    def test_impossible_date_is_skipped(self):
        row = _row("T1", "31/02/2024", "08:00", "08:30", "BD 1", "1000", "40", "AFD A")
        assert parse_ticket_row(row) is None

    def test_short_row_is_skipped(self):
        assert parse_ticket_row(_row("T1", "2024-03-01", "08:00")) is None

    def test_missing_id_is_skipped(self):
        row = _row("", "2024-03-01", "08:00", "08:30", "BD 1", "1000", "40", "AFD A")
        assert parse_ticket_row(row) is None

    def test_missing_date_is_skipped(self):
        row = _row("T1", " ", "08:00", "08:30", "BD 1", "1000", "40", "AFD A")
        assert parse_ticket_row(row) is None

    def test_defaults_for_blank_fields(self):
        ticket = parse_ticket_row(_row("T1", "2024-03-01", "", "", "", "1000", "40", ""))
        assert ticket.time_in == "00:00"
        assert ticket.time_out == "00:00"
        assert ticket.plate_number == ""
        assert ticket.location == "N/A"

    @pytest.mark.parametrize("net_raw, bunch_raw", [
        ("-5", "abc"),
        ("NaN", "inf"),
        ("-inf", "1e999"),
        ("Infinity", "nan"),
    ])
    def test_bad_numerics_degrade_to_zero(self, net_raw, bunch_raw):
        ticket = parse_ticket_row(
            _row("T1", "2024-03-01", "08:00", "08:30", "BD 1", net_raw, bunch_raw, "AFD A")
        )
        assert ticket.net_weight == 0.0
        assert ticket.bunch_count == 0.0

    def test_units_after_the_number_are_ignored(self):
        ticket = parse_ticket_row(
            _row("T1", "2024-03-01", "08:00", "08:30", "BD 1", "1000 kg", "40jjg", "AFD A")
        )
        assert ticket.net_weight == 1000.0
        assert ticket.bunch_count == 40.0

    def test_quoted_padding_is_kept(self):
        fields = split_csv_line('T1,2024-03-01,08:00,08:30," BD 1 ",1000,40," AFD A "')
        ticket = parse_ticket_row(fields)
        assert ticket.plate_number == " BD 1 "
        assert ticket.location == " AFD A "


# ---------------------------------------------------------------------------
# Batch parsing
# ---------------------------------------------------------------------------

class TestParseTicketsCsv:
    def test_header_and_bad_rows_are_counted(self):
        text = "\n".join([
            HEADER,
            "T1,2024-03-01,08:00,08:30,BD 1,1000,40,AFD A",
            "T2,1/3/2024,09:00,09:45,BD 2,500,30,AFD B",
            "short,row",
            ",2024-03-01,08:00,08:30,BD 3,100,5,AFD C",
        ])
        result = parse_tickets_csv(text)
        assert [t.id for t in result.tickets] == ["T1", "T2"]
        assert result.valid == 2
        assert result.skipped == 3

    def test_header_only_checked_on_first_row(self):
        text = "\n".join([
            "T1,2024-03-01,08:00,08:30,BD 1,1000,40,AFD A",
            "Tiket-9,2024-03-02,08:00,08:30,BD 1,900,40,AFD A",
        ])
        result = parse_tickets_csv(text)
        assert [t.id for t in result.tickets] == ["T1", "Tiket-9"]
        assert result.skipped == 0

    def test_blank_lines_are_not_counted(self):
        text = "\n\nT1,2024-03-01,08:00,08:30,BD 1,1000,40,AFD A\n\n"
        result = parse_tickets_csv(text)
        assert result.valid == 1
        assert result.skipped == 0

    def test_duplicate_id_keeps_first(self):
        text = "\n".join([
            "T1,2024-03-01,08:00,08:30,BD 1,1000,40,AFD A",
            "T1,2024-03-01,08:00,08:30,BD 1,2000,40,AFD A",
        ])
        result = parse_tickets_csv(text)
        assert result.valid == 1
        assert result.skipped == 1
        assert result.tickets[0].net_weight == 1000.0

    def test_quoted_field_may_span_lines(self):
        text = 'T1,2024-03-01,08:00,08:30,BD 1,1000,40,"AFD A\nBlok 2"'
        result = parse_tickets_csv(text)
        assert result.tickets[0].location == "AFD A\nBlok 2"

    def test_non_finite_values_do_not_reach_kpis(self):
        result = parse_tickets_csv("T1,2024-03-01,08:00,08:30,BD 1,NaN,inf,AFD A")
        ticket = result.tickets[0]
        assert (ticket.net_weight, ticket.bunch_count) == (0.0, 0.0)
        kpis = compute_kpis(build_fact_ticket(result.tickets), "all")
        assert kpis["total_bunch_count"] == 0
        assert kpis["total_net_weight"] == 0

    def test_crlf_line_endings(self):
        text = 'T1,2024-03-01,08:00,08:30,BD 1,1000,40,"AFD A\r\nBlok 2"\r\nT2,2024-03-02,08:00,08:30,BD 2,900,40,AFD B\r\n'
        result = parse_tickets_csv(text)
        assert [t.location for t in result.tickets] == ["AFD A\r\nBlok 2", "AFD B"]
        assert result.skipped == 0

    def test_no_valid_rows_raises(self):
        with pytest.raises(EmptyImportError) as exc:
            parse_tickets_csv(HEADER + "\nshort,row")
        assert exc.value.skipped == 2
        assert isinstance(exc.value, ValueError)
        assert "Tanggal" in str(exc.value)


# ---------------------------------------------------------------------------
# File loaders
# ---------------------------------------------------------------------------

class TestLoadTicketsCsv:
    def test_byte_order_mark_is_stripped(self, tmp_path):
        path = tmp_path / "tickets.csv"
        path.write_text(
            HEADER + "\nT1,2024-03-01,08:00,08:30,BD 1,1000,40,AFD A\n",
            encoding="utf-8-sig",
        )
        result = load_tickets_csv(str(path))
        assert result.valid == 1
        assert result.skipped == 1

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            load_tickets_csv(str(tmp_path / "missing.csv"))


class TestLoadTicketsExcel:
    def test_reads_date_cells_and_serial_numbers(self, tmp_path):
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.append(["Laporan Timbangan"])
        ws.append(CSV_HEADER_LABELS)
        ws.append(["T1", datetime(2024, 3, 1), "08:00", "08:30", "BD 1", 1000, 40, "AFD A"])
        ws.append(["T2", 45352, "09:00", "09:45", "BD 2", 500.0, 30, "AFD B"])
        path = tmp_path / "tickets.xlsx"
        wb.save(path)

        result = load_tickets_excel(str(path))

        assert [t.id for t in result.tickets] == ["T1", "T2"]
        assert [t.date for t in result.tickets] == ["2024-03-01", "2024-03-01"]
        assert result.tickets[1].net_weight == 500.0
        assert result.skipped == 0

    def test_unknown_sheet_falls_back_to_first(self, tmp_path):
        wb = openpyxl.Workbook()
        wb.active.append(["T1", "2024-03-01", "08:00", "08:30", "BD 1", 1000, 40, "AFD A"])
        path = tmp_path / "tickets.xlsx"
        wb.save(path)

        result = load_tickets_excel(str(path), sheet_name="Missing")
        assert result.valid == 1
