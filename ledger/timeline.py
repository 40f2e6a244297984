from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from ledger.dates import quarter_end, quarter_of, quarter_start
from ledger.schema import CanonicalRow

QUARTER_WIDTH = 160.0
QUARTER_DAYS = 91.25
MIN_BAR_WIDTH = 24.0
LABEL_GUTTER = 450.0

STATUS_COLORS = (
    ("terminated", "#ef4444"),
    ("not started", "#94a3b8"),
    ("in progress", "#eab308"),
    ("completed", "#22c55e"),
    ("continuously", "#3b82f6"),
)
DEFAULT_STATUS_COLOR = "#6366f1"


def status_color(progress: Optional[str]) -> str:
    p = (progress or "").lower()
    for token, color in STATUS_COLORS:
        if token in p:
            return color
    return DEFAULT_STATUS_COLOR


@dataclass(frozen=True)
class QuarterBucket:
    label: str
    start: pd.Timestamp


@dataclass(frozen=True)
class TimelineLayout:
    quarters: List[QuarterBucket] = field(default_factory=list)
    start: Optional[pd.Timestamp] = None
    quarter_width: float = QUARTER_WIDTH
    now: Optional[pd.Timestamp] = None

    @property
    def width(self) -> float:
        return LABEL_GUTTER + len(self.quarters) * self.quarter_width

    def position(self, when: Optional[pd.Timestamp]) -> float:
        """Pixel offset of ``when`` from the first quarter; not clipped to the span."""
        if when is None or pd.isna(when) or self.start is None:
            return 0.0
        quarter_ms = QUARTER_DAYS * 24 * 60 * 60 * 1000
        offset_ms = (pd.Timestamp(when) - self.start).total_seconds() * 1000
        return offset_ms / quarter_ms * self.quarter_width

    def bar(self, row: CanonicalRow) -> Dict[str, Any]:
        start_x = self.position(row.start_date)
        end_x = self.position(row.end_date if row.end_date is not None else self.now)
        return {
            "row_id": row.row_id,
            "left": start_x,
            "width": max(end_x - start_x, MIN_BAR_WIDTH),
            "color": status_color(row.progress),
            "completion": row.completion,
        }

    def to_dict(self, rows: Sequence[CanonicalRow] = ()) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat() if self.start is not None else None,
            "quarter_width": self.quarter_width,
            "width": self.width,
            "quarters": [{"label": q.label, "start": q.start.isoformat()} for q in self.quarters],
            "bars": [self.bar(r) for r in rows],
        }


def build_timeline(
    rows: Sequence[CanonicalRow],
    now: Optional[pd.Timestamp] = None,
    quarter_width: float = QUARTER_WIDTH,
) -> TimelineLayout:
    """Quarter buckets covering the rows' start/end span; open-ended rows run to ``now``."""
    now = pd.Timestamp(now) if now is not None else pd.Timestamp.now(tz="UTC").tz_localize(None)
    if not rows:
        return TimelineLayout(quarter_width=quarter_width, now=now)

    starts = [r.start_date for r in rows if r.start_date is not None]
    ends = [r.end_date if r.end_date is not None else now for r in rows]
    min_date = min(starts) if starts else now
    max_date = max(max(ends), min_date)

    span_start = quarter_start(min_date)
    span_end = quarter_end(max_date)
    quarters: List[QuarterBucket] = []
    current = span_start
    while current <= span_end:
        quarters.append(QuarterBucket(label=f"Q{quarter_of(current)} {current.year}", start=current))
        current = current + pd.DateOffset(months=3)
    return TimelineLayout(quarters=quarters, start=span_start, quarter_width=quarter_width, now=now)
