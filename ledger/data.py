from __future__ import annotations

import logging
import math
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from io import BytesIO
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterable, List, Optional, Tuple, Union

import pandas as pd

from ledger.errors import EmptyFileError, UnreadableFileError
from ledger.schema import AUDIT_COLUMNS, CANONICAL_FIELDS, CanonicalRow

logger = logging.getLogger(__name__)

EXPORT_SHEET_NAME = "ACM Ledger"
CSV_SUFFIXES = {".csv", ".txt"}

Source = Union[bytes, bytearray, BinaryIO, str, Path]


# ---------------- Cell helpers ----------------
def is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def is_number(value: object) -> bool:
    """True for finite real scalars (python or numpy), never for bools or strings."""
    if pd.api.types.is_bool(value) or not pd.api.types.is_number(value) or isinstance(value, complex):
        return False
    try:
        return math.isfinite(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return False


def to_number(value: object, default: float = 0.0) -> float:
    """Coerce a cell to float; blanks and junk become ``default``."""
    if pd.api.types.is_bool(value) or is_blank(value):
        return default
    if is_number(value):
        return float(value)  # type: ignore[arg-type]
    out = pd.to_numeric(str(value).strip(), errors="coerce")
    if pd.isna(out) or not math.isfinite(float(out)):
        return default
    return float(out)


def as_text(value: object) -> str:
    if isinstance(value, str):
        return value
    if is_blank(value):
        return ""
    if is_number(value):
        number = float(value)  # type: ignore[arg-type]
        return str(int(number)) if number.is_integer() else str(number)
    return str(value)


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


# ---------------- Reader ----------------
def _as_buffer(source: Source) -> Union[BytesIO, Path]:
    if isinstance(source, (bytes, bytearray)):
        return BytesIO(bytes(source))
    if isinstance(source, (str, Path)):
        return Path(source)
    if hasattr(source, "seek"):
        source.seek(0)
    return BytesIO(source.read())


def _suffix(source: Source, filename: Optional[str]) -> str:
    if filename:
        return Path(filename).suffix.lower()
    if isinstance(source, (str, Path)):
        return Path(source).suffix.lower()
    return ""


def drop_empty_columns(df: pd.DataFrame) -> pd.DataFrame:
    unnamed = [c for c in df.columns if str(c).startswith("Unnamed:") and df[c].isna().all()]
    return df.drop(columns=unnamed)


def read_workbook(source: Source, filename: Optional[str] = None) -> Tuple[List[str], List[Dict[str, Any]]]:
    """Decode the first sheet of an uploaded workbook into headers and header-keyed records."""
    buffer = _as_buffer(source)
    suffix = _suffix(source, filename)
    try:
        if suffix in CSV_SUFFIXES:
            df = pd.read_csv(buffer)
        else:
            df = pd.read_excel(buffer, sheet_name=0)
    except pd.errors.EmptyDataError as exc:
        raise EmptyFileError("The file appears to be empty.") from exc
    except Exception as exc:
        raise UnreadableFileError(f"Error reading Excel file: {exc}") from exc

    df = drop_empty_columns(df).dropna(how="all")
    if df.empty:
        raise EmptyFileError("The file appears to be empty.")

    headers = [str(c) for c in df.columns]
    df.columns = headers
    df = df.astype(object).where(pd.notna(df), None)
    records = df.to_dict(orient="records")
    logger.info("read %d rows x %d columns from %s", len(records), len(headers), filename or "upload")
    return headers, records


# ---------------- Export ----------------
def export_frame(rows: Iterable[CanonicalRow]) -> pd.DataFrame:
    """Flatten rows for a spreadsheet writer; ids, internal dates, grouping flags and quality are dropped."""
    columns = list(CANONICAL_FIELDS) + list(AUDIT_COLUMNS.values())
    records = []
    for row in rows:
        record = row.to_record()
        for attr, column in AUDIT_COLUMNS.items():
            record[column] = getattr(row, attr)
        records.append(record)
    return pd.DataFrame(records, columns=columns)


def export_xlsx(rows: Iterable[CanonicalRow]) -> bytes:
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        export_frame(rows).to_excel(writer, sheet_name=EXPORT_SHEET_NAME, index=False)
    return buffer.getvalue()


def export_csv(rows: Iterable[CanonicalRow]) -> bytes:
    return export_frame(rows).to_csv(index=False).encode("utf-8")


def export_filename(today: Optional[date] = None, suffix: str = "xlsx") -> str:
    today = today or date.today()
    return f"ACM_Ledger_Export_{today.isoformat()}.{suffix}"
