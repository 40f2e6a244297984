# Shared pytest fixtures
from __future__ import annotations

import json
from types import SimpleNamespace
from typing import List

import pandas as pd
import pytest

from ledger.config import Settings
from ledger.schema import CanonicalRow
from ledger.quality import score_action_plan

HEADERS = [
    "Plant",
    "Chronic Issue",
    "Failure Description",
    "Action Plan",
    "Class",
    "Duration Loss (Hour per Year)",
    "Frequency (per year)",
    "Category",
    "Status",
    "Completion",
    "Start Time",
    "End Time",
]


class FakeModels:
    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    def generate_content(self, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return SimpleNamespace(text=response)


class FakeClient:
    """Stand-in for ``google.genai.Client`` returning canned JSON text."""

    def __init__(self, *responses):
        self.models = FakeModels(responses)


ANALYSIS_JSON = json.dumps(
    {
        "summary": "Kiln 1 dominates downtime.",
        "metrics": [{"label": "Downtime", "value": "120 hrs", "change": "+5%", "isPositive": False}],
        "charts": [{"id": "c1", "type": "bar", "title": "Loss", "xAxis": "Plant Name", "yAxis": "Duration Loss"}],
    }
)

AUDIT_JSON = json.dumps(
    {
        "overallScore": 62,
        "executiveVerdict": "Plans are mostly procedural.",
        "ceoBrief": "Fix the kiln.",
        "redFlags": ["No spare bearings"],
        "audits": [
            {
                "actionTitle": "Kiln Vibration",
                "sourceActionPlan": "Replace the worn bearing assembly and calibrate sensors",
                "ctoChallengeQuery": "Where is the vibration baseline?",
                "strategicAnchor": "Vibration trend report",
                "worthTracking": "High Priority",
                "qualityRating": "Concrete",
                "trackability": "Weekly vibration export",
                "impactCategory": "Maintenance ROI",
                "ytdStatus": "On-Track",
                "recommendation": "Add condition monitoring",
                "justification": "Named components and a measurable fix.",
                "ceoTalkingPoint": "Kiln uptime depends on this overhaul.",
                "riskLevel": "High",
            },
            {
                "actionTitle": "Belt Slip",
                "sourceActionPlan": "check belts",
                "ctoChallengeQuery": "Who checks?",
                "strategicAnchor": "Checklist",
                "worthTracking": "Routine",
            },
        ],
    }
)


@pytest.fixture()
def settings() -> Settings:
    return Settings(gemini_api_key="test-key", snippet_rows=5)


@pytest.fixture()
def headers() -> List[str]:
    return list(HEADERS)


@pytest.fixture()
def records() -> List[dict]:
    return [
        {
            "Plant": "Plant A",
            "Chronic Issue": "Kiln Vibration",
            "Failure Description": "Bearing wear",
            "Action Plan": "Replace the worn bearing assembly and calibrate sensors",
            "Class": "M",
            "Duration Loss (Hour per Year)": 120,
            "Frequency (per year)": 4,
            "Category": "Reliability",
            "Status": "In Progress",
            "Completion": 0.5,
            "Start Time": 45658,
            "End Time": "2025-06-30",
        },
        {
            "Plant": "Plant A",
            "Chronic Issue": "Kiln Vibration",
            "Failure Description": "Bearing wear",
            "Action Plan": "monitor",
            "Class": "M",
            "Duration Loss (Hour per Year)": 120,
            "Frequency (per year)": 4,
            "Category": "Reliability",
            "Status": "Not Started",
            "Completion": None,
            "Start Time": None,
            "End Time": None,
        },
        {
            "Plant": "Plant B",
            "Chronic Issue": "Belt Slip",
            "Failure Description": "Conveyor belt slipping",
            "Action Plan": "check belts",
            "Class": "E",
            "Duration Loss (Hour per Year)": "30",
            "Frequency (per year)": 10,
            "Category": "Process",
            "Status": "Completed",
            "Completion": 100,
            "Start Time": "2024-11-01",
            "End Time": "2025-01-15",
        },
    ]


@pytest.fixture()
def workbook_bytes(headers, records) -> bytes:
    from io import BytesIO

    buffer = BytesIO()
    pd.DataFrame(records, columns=headers).to_excel(buffer, index=False, engine="openpyxl")
    return buffer.getvalue()


def make_row(row_id: str, **fields) -> CanonicalRow:
    row = CanonicalRow(row_id=row_id, **fields)
    return row.replace(quality=score_action_plan(row.action_plan))


@pytest.fixture()
def sample_rows() -> List[CanonicalRow]:
    return [
        make_row(
            "r1",
            plant_name="Plant A",
            chronic_issue="Kiln Vibration",
            failures_description="Bearing wear",
            action_plan="Replace the worn bearing assembly and calibrate sensors",
            class_name="Mechanical",
            duration_loss=120.0,
            frequency=4.0,
            category="Reliability",
            progress="In Progress",
            completion=50.0,
            start_time="Jan 2025",
            start_date=pd.Timestamp("2025-01-01"),
            end_time="Jun 2025",
            end_date=pd.Timestamp("2025-06-30"),
        ),
        make_row(
            "r2",
            plant_name="Plant A",
            chronic_issue="Kiln Vibration",
            failures_description="Bearing wear",
            action_plan="monitor",
            class_name="Mechanical",
            duration_loss=120.0,
            frequency=4.0,
            category="Reliability",
            progress="Not Started",
        ),
        make_row(
            "r3",
            plant_name="Plant B",
            chronic_issue="Belt Slip",
            failures_description="Conveyor belt slipping",
            action_plan="check belts",
            class_name="Electrical",
            duration_loss=30.0,
            frequency=10.0,
            category="Process",
            progress="Completed",
            completion=100.0,
            start_time="Nov 2024",
            start_date=pd.Timestamp("2024-11-01"),
            end_time="Jan 2025",
            end_date=pd.Timestamp("2025-01-15"),
        ),
    ]
