from datetime import date
from io import BytesIO

import numpy as np
import pandas as pd
import pytest

from ledger.data import (
    as_text,
    export_csv,
    export_filename,
    export_frame,
    export_xlsx,
    read_workbook,
    round_half_up,
    to_number,
)
from ledger.errors import EmptyFileError, UnreadableFileError
from ledger.schema import CANONICAL_FIELDS


def test_read_workbook_from_bytes(workbook_bytes, headers):
    got_headers, records = read_workbook(workbook_bytes, "acm.xlsx")
    assert got_headers == headers
    assert len(records) == 3
    assert records[0]["Plant"] == "Plant A"
    assert records[1]["Completion"] is None


def test_read_workbook_csv(tmp_path):
    path = tmp_path / "acm.csv"
    path.write_text("Plant,Chronic Issue\nPlant A,Kiln\n,\nPlant B,Belt\n", encoding="utf-8")
    headers, records = read_workbook(path)
    assert headers == ["Plant", "Chronic Issue"]
    assert [r["Plant"] for r in records] == ["Plant A", "Plant B"]


def test_read_workbook_garbage_is_unreadable():
    with pytest.raises(UnreadableFileError):
        read_workbook(b"definitely not a spreadsheet", "acm.xlsx")


def test_read_workbook_header_only_is_empty():
    buffer = BytesIO()
    pd.DataFrame(columns=["Plant", "Chronic Issue"]).to_excel(buffer, index=False)
    with pytest.raises(EmptyFileError):
        read_workbook(buffer.getvalue(), "acm.xlsx")


def test_read_workbook_empty_csv():
    with pytest.raises(EmptyFileError):
        read_workbook(b"", "acm.csv")


@pytest.mark.parametrize(
    "value, expected",
    [(None, 0.0), ("", 0.0), ("12.5", 12.5), (" 7 ", 7.0), ("n/a", 0.0), (np.int64(3), 3.0), (True, 0.0), (float("inf"), 0.0)],
)
def test_to_number(value, expected):
    assert to_number(value) == expected


def test_as_text():
    assert as_text(12.0) == "12"
    assert as_text(None) == ""
    assert as_text(float("nan")) == ""
    assert as_text(" keep ") == " keep "


def test_round_half_up():
    assert round_half_up(2.5) == 3.0
    assert round_half_up(75.5) == 76.0
    assert round_half_up(None) is None


def test_export_frame_strips_internal_fields(sample_rows):
    df = export_frame(sample_rows)
    assert list(df.columns) == list(CANONICAL_FIELDS) + ["CTO Question", "The Artifact (Grab)", "Tracking Priority"]
    assert "row_id" not in df.columns and "quality" not in df.columns
    assert df.loc[0, "Start Time"] == "Jan 2025"


def test_export_xlsx_reads_back(sample_rows):
    content = export_xlsx(sample_rows)
    sheets = pd.read_excel(BytesIO(content), sheet_name=None)
    assert list(sheets) == ["ACM Ledger"]
    assert list(sheets["ACM Ledger"]["Plant Name"]) == ["Plant A", "Plant A", "Plant B"]


def test_export_csv(sample_rows):
    text = export_csv(sample_rows).decode("utf-8")
    assert text.splitlines()[0].startswith("Plant Name,Chronic Issue,")
    assert len(text.strip().splitlines()) == 4


def test_export_filename():
    assert export_filename(date(2025, 3, 9)) == "ACM_Ledger_Export_2025-03-09.xlsx"
    assert export_filename(date(2025, 3, 9), "csv") == "ACM_Ledger_Export_2025-03-09.csv"


def test_export_then_reimport_keeps_canonical_values(sample_rows):
    from ledger.mapping import infer_mapping
    from ledger.normalize import normalize_records

    headers, records = read_workbook(export_xlsx(sample_rows), "ledger.xlsx")
    rows = normalize_records(records, infer_mapping(headers))
    assert [r.to_record() for r in rows] == [r.to_record() for r in sample_rows]


def test_legacy_xls_content_reaches_the_xls_reader():
    # OLE2 signature followed by junk: pandas routes it to xlrd, which rejects the body.
    ole2 = bytes.fromhex("d0cf11e0a1b11ae1") + b"\x00" * 504
    with pytest.raises(UnreadableFileError) as info:
        read_workbook(ole2, "legacy.xls")
    assert not isinstance(info.value.__cause__, ImportError)


def test_xlsx_bytes_with_xls_name_still_read(workbook_bytes, headers):
    got_headers, records = read_workbook(workbook_bytes, "acm.xls")
    assert got_headers == headers
    assert len(records) == 3
