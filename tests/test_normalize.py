import pandas as pd
import pytest

from ledger.mapping import infer_mapping
from ledger.normalize import (
    label_dates,
    map_class,
    normalize_completion,
    normalize_record,
    normalize_records,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("M", "Mechanical"),
        (" e ", "Electrical"),
        ("O", "Operational"),
        ("H&S", "Safety"),
        ("upwt", "UPWT"),
        ("S", "Spares"),
        ("q", "Quality"),
        ("mechanical", "Mechanical"),
        ("Hydraulic", "Hydraulic"),
        (None, ""),
        (3, "3"),
    ],
)
def test_map_class(raw, expected):
    assert map_class(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [(0.5, 50.0), (1, 100.0), (0.333, 33.0), (75, 75.0), (150, 150.0), (0.75, 75.0), ("0.5", 0.5), ("80%", 0.0), (None, 0.0), (-0.2, 0.0)],
)
def test_normalize_completion(raw, expected):
    assert normalize_completion(raw) == expected


def test_normalize_record_full_row(headers, records):
    mapping = infer_mapping(headers)
    row = normalize_record(records[0], mapping, row_id="fixed")
    assert row.row_id == "fixed"
    assert row.plant_name == "Plant A"
    assert row.class_name == "Mechanical"
    assert row.duration_loss == 120.0
    assert row.frequency == 4.0
    assert row.progress == "In Progress"
    assert row.completion == 50.0
    assert row.start_date == pd.Timestamp("2025-01-01")
    assert row.start_time == "Jan 2025"
    assert row.end_date == pd.Timestamp("2025-06-30")
    assert row.end_time == "Jun 2025"
    assert row.quality.label == "Moderate"


def test_blank_cells_degrade_to_defaults(headers, records):
    row = normalize_record(records[1], infer_mapping(headers))
    assert row.completion == 0.0
    assert row.start_date is None
    assert row.start_time == ""
    assert row.end_time == ""
    assert row.quality.label == "Vague"


def test_numeric_text_and_negative_amounts(headers, records):
    mapping = infer_mapping(headers)
    assert normalize_record(records[2], mapping).duration_loss == 30.0
    bad = dict(records[2], **{"Duration Loss (Hour per Year)": "lots", "Frequency (per year)": -3})
    row = normalize_record(bad, mapping)
    assert row.duration_loss == 0.0
    assert row.frequency == 0.0


def test_unmapped_fields_use_defaults(records):
    row = normalize_record(records[0], {"Plant Name": "Plant"})
    assert row.plant_name == "Plant A"
    assert row.chronic_issue == ""
    assert row.class_name == ""
    assert row.duration_loss == 0.0
    assert row.start_date is None
    assert row.quality.label == "Empty"


def test_text_cells_render_whole_numbers_without_decimal():
    row = normalize_record({"Plant": 101.0, "Issue": 7.5}, {"Plant Name": "Plant", "Chronic Issue": "Issue"})
    assert row.plant_name == "101"
    assert row.chronic_issue == "7.5"


def test_normalize_records_gives_unique_ids(headers, records):
    rows = normalize_records(records, infer_mapping(headers))
    assert len(rows) == 3
    assert len({r.row_id for r in rows}) == 3
    assert [r.plant_name for r in rows] == ["Plant A", "Plant A", "Plant B"]


def test_label_dates_from_raw_and_timestamp():
    out = label_dates({"start_time": "2025-02-10", "end_date": pd.Timestamp("2025-08-01"), "progress": "x"})
    assert out["start_date"] == pd.Timestamp("2025-02-10")
    assert out["start_time"] == "Feb 2025"
    assert out["end_time"] == "Aug 2025"
    assert out["progress"] == "x"
    cleared = label_dates({"end_date": None})
    assert cleared == {"end_date": None, "end_time": ""}
