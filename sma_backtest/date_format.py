#!/usr/bin/env python3
"""Display formatting for opaque bar dates (Excel serials, datetimes, strings)."""

from datetime import date, datetime, timedelta

# Excel day 0; absorbs the fictitious 1900-02-29 for every serial after 60
EXCEL_EPOCH = datetime(1899, 12, 30)
DISPLAY_FORMAT = "%d-%b-%y"


def excel_serial_to_datetime(serial: float) -> datetime:
    return EXCEL_EPOCH + timedelta(days=float(serial))


def format_date(value) -> str:
    """Format a bar date as DD-Mon-YY (42054 -> '19-Feb-15').

    Strings pass through untouched; the result is for display only.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        raise TypeError(f"Unsupported date value: {value!r}")
    if isinstance(value, datetime):
        return value.strftime(DISPLAY_FORMAT)
    if isinstance(value, date):
        return value.strftime(DISPLAY_FORMAT)
    if isinstance(value, (int, float)):
        return excel_serial_to_datetime(value).strftime(DISPLAY_FORMAT)
    raise TypeError(f"Unsupported date value: {value!r}")
