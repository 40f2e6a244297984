from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Union

from ledger.schema import CanonicalRow


@dataclass(frozen=True)
class GroupedRow:
    row: CanonicalRow
    display_plant: str
    display_issue: str
    display_failure: str
    display_class: str
    display_duration: Optional[float]
    display_frequency: Optional[float]
    is_first_in_group: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row_id": self.row.row_id,
            "display_plant": self.display_plant,
            "display_issue": self.display_issue,
            "display_failure": self.display_failure,
            "display_class": self.display_class,
            "display_duration": self.display_duration,
            "display_frequency": self.display_frequency,
            "is_first_in_group": self.is_first_in_group,
        }


def group_rows(rows: Iterable[Union[CanonicalRow, GroupedRow]]) -> List[GroupedRow]:
    """Run-length flags for the hierarchical ledger (Plant > Issue > Description/Class).

    Single forward pass over rows that are already in display order; nothing is
    sorted here. Duration and frequency are issue-level figures, so they only
    show on the first row of each (plant, issue) run. Passing the output back in
    yields the same flags.
    """
    out: List[GroupedRow] = []
    last_plant = last_issue = last_failure = last_class = ""
    for item in rows:
        row = item.row if isinstance(item, GroupedRow) else item
        new_plant = row.plant_name != last_plant
        new_issue = new_plant or row.chronic_issue != last_issue
        new_failure = new_issue or row.failures_description != last_failure
        new_class = new_issue or row.class_name != last_class
        out.append(
            GroupedRow(
                row=row,
                display_plant=row.plant_name if new_plant else "",
                display_issue=row.chronic_issue if new_issue else "",
                display_failure=row.failures_description if new_failure else "",
                display_class=row.class_name if new_class else "",
                display_duration=row.duration_loss if new_issue else None,
                display_frequency=row.frequency if new_issue else None,
                is_first_in_group=new_issue,
            )
        )
        last_plant = row.plant_name
        last_issue = row.chronic_issue
        last_failure = row.failures_description
        last_class = row.class_name
    return out
