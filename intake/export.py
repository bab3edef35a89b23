# =============================================================================
# File: intake/export.py
# Purpose: Single-record CSV export.
# Notes:
# - Values are quoted by the csv module but cells starting with "=", "+",
#   "-" or "@" are written as-is (spreadsheet formula injection is possible).
# =============================================================================
from __future__ import annotations

import csv
import io

from .records import Record

CSV_HEADER = ["Name", "Surname", "Phone", "Residence", "Workplace", "Date"]

# Full year, 24h clock. "%x %X" only follows the user locale if the process
# calls locale.setlocale(), otherwise it is the C locale ("03/05/24 12:00:00").
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_created_at(record: Record, date_format: str = DEFAULT_DATE_FORMAT) -> str:
    """created_at in the server's local time zone, rendered with date_format."""
    return record.created_at.astimezone().strftime(date_format)


def record_to_csv(record: Record, date_format: str = DEFAULT_DATE_FORMAT) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    writer.writerow(
        [
            record.name,
            record.surname,
            record.phone,
            record.residence or "",
            record.workplace or "",
            format_created_at(record, date_format),
        ]
    )
    return buffer.getvalue()


def csv_filename(record: Record) -> str:
    return f"{record.name}_{record.surname}_data.csv"
