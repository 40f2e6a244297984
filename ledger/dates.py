from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

import pandas as pd

from ledger.data import is_blank, is_number

logger = logging.getLogger(__name__)

MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

# Spreadsheet serial of 1970-01-01 (1900 epoch incl. the leap-year bug offset).
UNIX_EPOCH_SERIAL = 25569
SECONDS_PER_DAY = 86400


def _to_utc_naive(ts: pd.Timestamp) -> pd.Timestamp:
    if ts.tzinfo is not None:
        return ts.tz_convert("UTC").tz_localize(None)
    return ts


def coerce_date(value: object) -> Optional[pd.Timestamp]:
    """Turn a spreadsheet serial, a datetime or a date string into a UTC timestamp.

    Falsy cells (blank, zero, None) mean "no date". Anything that does not land on
    a valid calendar date yields None instead of raising.
    """
    if pd.api.types.is_bool(value) or is_blank(value):
        return None
    try:
        if is_number(value):
            serial = float(value)  # type: ignore[arg-type]
            if serial == 0:
                return None
            ts = pd.Timestamp((serial - UNIX_EPOCH_SERIAL) * SECONDS_PER_DAY, unit="s")
        elif isinstance(value, (datetime, date)):
            ts = _to_utc_naive(pd.Timestamp(value))
        else:
            ts = pd.to_datetime(str(value).strip(), errors="coerce", utc=True)
            if pd.isna(ts):
                return None
            ts = _to_utc_naive(ts)
        # Newer pandas keeps second resolution past 2262; clamp to the nanosecond range.
        if not pd.isna(ts) and (ts < pd.Timestamp.min or ts > pd.Timestamp.max):
            return None
    except (OverflowError, ValueError, TypeError, pd.errors.OutOfBoundsDatetime) as exc:
        logger.debug("unparsable date %r: %s", value, exc)
        return None
    if ts is None or pd.isna(ts):
        return None
    return ts


def format_month_label(ts: Optional[pd.Timestamp]) -> str:
    if ts is None or pd.isna(ts):
        return ""
    return f"{MONTHS[ts.month - 1]} {ts.year:04d}"


def month_label(value: object) -> str:
    """Display label like ``Mar 2025`` for any raw cell value."""
    return format_month_label(coerce_date(value))


def quarter_of(ts: pd.Timestamp) -> int:
    return (ts.month - 1) // 3 + 1


def quarter_start(ts: pd.Timestamp) -> pd.Timestamp:
    return pd.Timestamp(year=ts.year, month=(quarter_of(ts) - 1) * 3 + 1, day=1)


def quarter_end(ts: pd.Timestamp) -> pd.Timestamp:
    """Last calendar day of the quarter containing ``ts`` (midnight)."""
    start = quarter_start(ts)
    return start + pd.DateOffset(months=3) - pd.Timedelta(days=1)
