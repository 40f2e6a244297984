from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional

import pandas as pd

CANONICAL_FIELDS = (
    "Plant Name",
    "Chronic Issue",
    "Failures Description",
    "Action Plan",
    "Class",
    "Duration Loss",
    "Frequency",
    "Category",
    "Progress",
    "Completion",
    "Start Time",
    "End Time",
)

# Canonical column -> CanonicalRow attribute.
FIELD_ATTRS: Dict[str, str] = {
    "Plant Name": "plant_name",
    "Chronic Issue": "chronic_issue",
    "Failures Description": "failures_description",
    "Action Plan": "action_plan",
    "Class": "class_name",
    "Duration Loss": "duration_loss",
    "Frequency": "frequency",
    "Category": "category",
    "Progress": "progress",
    "Completion": "completion",
    "Start Time": "start_time",
    "End Time": "end_time",
}

# Facet key -> canonical column.
FACET_FIELDS: Dict[str, str] = {
    "plant": "Plant Name",
    "issue": "Chronic Issue",
    "class": "Class",
    "category": "Category",
}

CLASS_OPTIONS = ("Mechanical", "Electrical", "Operational", "UPWT", "Safety", "Spares", "Quality")
PROGRESS_OPTIONS = ("Not Started", "In Progress", "Completed", "Terminated", "Continuously Works")

UNCATEGORIZED = "Uncategorized"
NOT_STARTED = "Not Started"

AUDIT_COLUMNS = {
    "audit_question": "CTO Question",
    "audit_artifact": "The Artifact (Grab)",
    "audit_priority": "Tracking Priority",
}


@dataclass(frozen=True)
class QualityAssessment:
    score: int
    label: str
    color: str


def new_row_id() -> str:
    return f"row-{uuid.uuid4().hex}"


@dataclass(frozen=True)
class CanonicalRow:
    row_id: str
    plant_name: str = ""
    chronic_issue: str = ""
    failures_description: str = ""
    action_plan: str = ""
    class_name: str = ""
    duration_loss: float = 0.0
    frequency: float = 0.0
    category: str = ""
    progress: str = ""
    completion: float = 0.0
    start_time: str = ""
    end_time: str = ""
    start_date: Optional[pd.Timestamp] = None
    end_date: Optional[pd.Timestamp] = None
    quality: Optional[QualityAssessment] = None
    audit_question: str = ""
    audit_artifact: str = ""
    audit_priority: str = ""

    def get(self, name: str) -> Any:
        """Read a value by its canonical column name."""
        return getattr(self, FIELD_ATTRS[name])

    def replace(self, **changes: Any) -> "CanonicalRow":
        return replace(self, **changes)

    def to_record(self) -> Dict[str, Any]:
        return {name: self.get(name) for name in CANONICAL_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        """Full JSON-friendly view including id, internal dates and derived fields."""
        out = asdict(self)
        for key in ("start_date", "end_date"):
            out[key] = out[key].isoformat() if out[key] is not None else None
        return out
