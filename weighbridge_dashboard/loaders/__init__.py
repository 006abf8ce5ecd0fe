"""Data ingestion loaders for weighbridge ticket exports."""

from .tickets_csv import EmptyImportError
from .tickets_csv import load_tickets_csv, load_tickets_excel, parse_tickets_csv

__all__ = [
    "EmptyImportError",
    "load_tickets_csv",
    "load_tickets_excel",
    "parse_tickets_csv",
]
