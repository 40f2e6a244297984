from __future__ import annotations

from typing import Any, Dict, List, Sequence

import pandas as pd

from ledger.data import round_half_up
from ledger.schema import CanonicalRow

TOP_PLANTS = 10
TOP_ISSUES = 12

QUADRANT_LABELS = {
    "critical": "High loss / low completion",
    "healthy": "Well advanced",
    "routine": "Routine",
}

_FRAME_COLUMNS = ["plant", "issue", "category", "class_name", "duration", "frequency", "completion", "quality"]


def rows_frame(rows: Sequence[CanonicalRow]) -> pd.DataFrame:
    """Tabular view of the fields the dashboard aggregates; bad numerics become 0."""
    df = pd.DataFrame(
        [
            {
                "plant": r.plant_name,
                "issue": r.chronic_issue,
                "category": r.category,
                "class_name": r.class_name,
                "duration": r.duration_loss,
                "frequency": r.frequency,
                "completion": r.completion,
                "quality": r.quality.score if r.quality is not None else 0,
            }
            for r in rows
        ],
        columns=_FRAME_COLUMNS,
    )
    for col in ["duration", "frequency", "completion", "quality"]:
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0).astype(float)
    for col in ["plant", "issue", "category", "class_name"]:
        df[col] = df[col].fillna("").astype(str)
    return df


def _fmt_number(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.3f}".rstrip("0").rstrip(".")


def _named_values(series: pd.Series) -> List[Dict[str, Any]]:
    return [{"name": str(k), "value": float(v)} for k, v in series.items()]


def _top_category(df: pd.DataFrame) -> str:
    cats = df[df["category"] != ""]
    if cats.empty:
        return "N/A"
    counts = cats.groupby("category", sort=False).size().sort_values(ascending=False, kind="stable")
    return str(counts.index[0])


def plant_stats(df: pd.DataFrame) -> pd.DataFrame:
    plants = df[df["plant"] != ""]
    if plants.empty:
        return pd.DataFrame(columns=["plant", "duration", "frequency", "completion", "count"])
    return (
        plants.groupby("plant", sort=False)
        .agg(
            duration=("duration", "sum"),
            frequency=("frequency", "sum"),
            completion=("completion", "mean"),
            count=("plant", "size"),
        )
        .reset_index()
    )


def _sum_by(df: pd.DataFrame, key: str) -> pd.Series:
    present = df[df[key] != ""]
    if present.empty:
        return pd.Series(dtype=float)
    return present.groupby(key, sort=False)["duration"].sum()


def _top(stats: pd.DataFrame, column: str, n: int) -> List[Dict[str, Any]]:
    if stats.empty:
        return []
    ranked = stats.sort_values(column, ascending=False, kind="stable").head(n)
    return [{"name": str(r["plant"]), "value": float(r[column])} for _, r in ranked.iterrows()]


def heatmap_points(stats: pd.DataFrame) -> List[Dict[str, Any]]:
    return [
        {
            "name": str(r["plant"]),
            "x": float(r["duration"]),
            "y": float(round_half_up(r["completion"]) or 0.0),
            "size": float(r["frequency"]),
        }
        for _, r in stats.iterrows()
    ]


def composed_points(df: pd.DataFrame, n: int = TOP_ISSUES) -> List[Dict[str, Any]]:
    """Summed loss/frequency per (plant, issue), heaviest loss first."""
    if df.empty:
        return []
    pairs = (
        df.groupby(["plant", "issue"], sort=False)[["duration", "frequency"]]
        .sum()
        .reset_index()
        .sort_values("duration", ascending=False, kind="stable")
        .head(n)
    )
    return [
        {
            "plant": str(r["plant"]),
            "name": str(r["issue"]),
            "duration": float(r["duration"]),
            "frequency": float(r["frequency"]),
        }
        for _, r in pairs.iterrows()
    ]


def classify_quadrant(x: float, y: float, max_x: float) -> str:
    if max_x > 0 and x > 0.5 * max_x and y < 30:
        return "critical"
    if y > 70:
        return "healthy"
    return "routine"


def compute_dashboard(
    rows: Sequence[CanonicalRow],
    *,
    top_plants: int = TOP_PLANTS,
    top_issues: int = TOP_ISSUES,
) -> Dict[str, Any]:
    df = rows_frame(rows)
    count = int(len(df))

    duration_sum = float(df["duration"].sum()) if count else 0.0
    frequency_sum = float(df["frequency"].sum()) if count else 0.0
    quality_index = int(round_half_up(df["quality"].mean()) or 0) if count else 0
    avg_completion = int(round_half_up(df["completion"].mean()) or 0) if count else 0
    top_category = _top_category(df)

    stats = plant_stats(df)
    return {
        "row_count": count,
        "kpis": {
            "duration_loss": duration_sum,
            "quality_index": quality_index,
            "frequency": frequency_sum,
            "top_category": top_category,
            "avg_completion": avg_completion,
        },
        "metrics": [
            {"label": "Aggregate Duration Loss", "value": duration_sum, "display": f"{_fmt_number(duration_sum)} hrs"},
            {"label": "Plan Quality Index", "value": quality_index, "display": f"{quality_index}%"},
            {"label": "Total Failure Events", "value": frequency_sum, "display": _fmt_number(frequency_sum)},
            {"label": "Primary Category", "value": top_category, "display": top_category},
        ],
        "plant_stats": [
            {
                "name": str(r["plant"]),
                "duration": float(r["duration"]),
                "frequency": float(r["frequency"]),
                "completion": float(r["completion"]),
                "count": int(r["count"]),
            }
            for _, r in stats.iterrows()
        ],
        "plant_data": _top(stats, "duration", top_plants),
        "frequency_data": _top(stats, "frequency", top_plants),
        "category_data": _named_values(_sum_by(df, "category")),
        "class_data": _named_values(_sum_by(df, "class_name")),
        "heatmap_data": heatmap_points(stats),
        "composed_data": composed_points(df, top_issues),
    }
