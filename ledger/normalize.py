from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ledger.data import as_text, is_number, round_half_up, to_number
from ledger.dates import coerce_date, format_month_label
from ledger.quality import score_action_plan
from ledger.schema import CLASS_OPTIONS, CanonicalRow, new_row_id

logger = logging.getLogger(__name__)

CLASS_ABBREVIATIONS = {
    "O": "Operational",
    "M": "Mechanical",
    "E": "Electrical",
    "UPWT": "UPWT",
    "H&S": "Safety",
    "S": "Spares",
    "Q": "Quality",
}
_CLASS_NAMES = {c.upper(): c for c in CLASS_OPTIONS}


def map_class(value: object) -> str:
    """Expand a class code; full class names are canonicalized, anything else passes through."""
    text = as_text(value).strip()
    code = text.upper()
    if code in CLASS_ABBREVIATIONS:
        return CLASS_ABBREVIATIONS[code]
    return _CLASS_NAMES.get(code, text)


def normalize_completion(value: object) -> float:
    """Fractions (numeric cells <= 1) become percentages; other numbers pass through."""
    if is_number(value) and float(value) <= 1:  # type: ignore[arg-type]
        return max(round_half_up(float(value) * 100) or 0.0, 0.0)  # type: ignore[arg-type]
    return max(to_number(value), 0.0)


def normalize_amount(value: object) -> float:
    return max(to_number(value), 0.0)


def normalize_record(
    record: Mapping[str, Any],
    mapping: Mapping[str, Optional[str]],
    row_id: Optional[str] = None,
) -> CanonicalRow:
    """Build one CanonicalRow. Never raises: bad cells degrade to type defaults."""

    def cell(field: str) -> Any:
        header = mapping.get(field)
        if not header:
            return None
        return record.get(header)

    def mapped(field: str) -> bool:
        return bool(mapping.get(field))

    start_date = coerce_date(cell("Start Time")) if mapped("Start Time") else None
    end_date = coerce_date(cell("End Time")) if mapped("End Time") else None
    action_plan = as_text(cell("Action Plan"))

    return CanonicalRow(
        row_id=row_id or new_row_id(),
        plant_name=as_text(cell("Plant Name")),
        chronic_issue=as_text(cell("Chronic Issue")),
        failures_description=as_text(cell("Failures Description")),
        action_plan=action_plan,
        class_name=map_class(cell("Class")) if mapped("Class") else "",
        duration_loss=normalize_amount(cell("Duration Loss")),
        frequency=normalize_amount(cell("Frequency")),
        category=as_text(cell("Category")),
        progress=as_text(cell("Progress")),
        completion=normalize_completion(cell("Completion")),
        start_time=format_month_label(start_date),
        end_time=format_month_label(end_date),
        start_date=start_date,
        end_date=end_date,
        quality=score_action_plan(action_plan),
    )


def normalize_records(records: Iterable[Mapping[str, Any]], mapping: Mapping[str, Optional[str]]) -> List[CanonicalRow]:
    """Normalize a whole import. The list is only returned once every record is built."""
    rows = [normalize_record(record, mapping) for record in records]
    undated = sum(1 for r in rows if r.start_date is None)
    logger.info("normalized %d rows (%d without a start date)", len(rows), undated)
    return rows


def label_dates(changes: Dict[str, Any]) -> Dict[str, Any]:
    """Fill the internal date and display label for edited date fields.

    Accepts either raw values under ``start_time``/``end_time`` or timestamps under
    ``start_date``/``end_date``.
    """
    out = dict(changes)
    for label_key, date_key in (("start_time", "start_date"), ("end_time", "end_date")):
        if date_key in out:
            ts = coerce_date(out[date_key])
        elif label_key in out:
            ts = coerce_date(out[label_key])
        else:
            continue
        out[date_key] = ts
        out[label_key] = format_month_label(ts)
    return out
