from __future__ import annotations

from typing import Any, Iterable, List, Optional, Sequence, Tuple

from ledger.errors import UnknownRowError
from ledger.filters import FilterSelection
from ledger.normalize import label_dates, map_class, normalize_amount
from ledger.quality import score_action_plan
from ledger.schema import NOT_STARTED, UNCATEGORIZED, CanonicalRow, new_row_id

Rows = Tuple[CanonicalRow, ...]

RESET_FIELDS = {
    "action_plan": "",
    "category": UNCATEGORIZED,
    "progress": NOT_STARTED,
    "completion": 0.0,
    "start_time": "",
    "end_time": "",
    "start_date": None,
    "end_date": None,
    "audit_question": "",
    "audit_artifact": "",
    "audit_priority": "",
}


def blank_row(selection: Optional[FilterSelection] = None) -> CanonicalRow:
    """A fresh row seeded from the active plant/issue filters."""
    selection = selection or FilterSelection()
    return CanonicalRow(
        row_id=new_row_id(),
        plant_name=selection.plant or "New Plant",
        chronic_issue=selection.issue or "New Chronic Issue",
        failures_description="Technical details...",
        class_name="Mechanical",
        category=UNCATEGORIZED,
        progress=NOT_STARTED,
        quality=score_action_plan(""),
    )


def find_row(rows: Sequence[CanonicalRow], row_id: str) -> CanonicalRow:
    for row in rows:
        if row.row_id == row_id:
            return row
    raise UnknownRowError(row_id)


def _substitute(rows: Sequence[CanonicalRow], updated: CanonicalRow) -> Rows:
    find_row(rows, updated.row_id)
    return tuple(updated if r.row_id == updated.row_id else r for r in rows)


def append_row(rows: Sequence[CanonicalRow], selection: Optional[FilterSelection] = None) -> Tuple[Rows, CanonicalRow]:
    """Prepend a new row and return it alongside the new sequence."""
    row = blank_row(selection)
    return (row,) + tuple(rows), row


def reset_row(rows: Sequence[CanonicalRow], row_id: str) -> Rows:
    """Clear action/tracking data for one row; failure info and id are kept."""
    current = find_row(rows, row_id)
    reset = current.replace(**RESET_FIELDS, quality=score_action_plan(""))
    return _substitute(rows, reset)


def edit_row(rows: Sequence[CanonicalRow], row_id: str, /, **changes: Any) -> Rows:
    """Substitute an edited copy of the row at the same id, re-deriving quality and date labels."""
    current = find_row(rows, row_id)
    changes.pop("row_id", None)
    changes.pop("quality", None)
    if "class_name" in changes:
        changes["class_name"] = map_class(changes["class_name"])
    for key in ("duration_loss", "frequency", "completion"):
        if key in changes:
            changes[key] = normalize_amount(changes[key])
    updated = current.replace(**label_dates(changes))
    updated = updated.replace(quality=score_action_plan(updated.action_plan))
    return _substitute(rows, updated)


def distinct_categories(rows: Iterable[CanonicalRow]) -> List[str]:
    return sorted({r.category or UNCATEGORIZED for r in rows})
