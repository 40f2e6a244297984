from __future__ import annotations

from typing import Any, Dict, List

import altair as alt
import pandas as pd

from ledger.aggregate import QUADRANT_LABELS, classify_quadrant

alt.data_transformers.disable_max_rows()

QUADRANT_COLORS = {"critical": "#ef4444", "healthy": "#10b981", "routine": "#6366f1"}


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def _bar(data: List[Dict[str, Any]], title: str, color: str, fmt: str = ",.0f") -> alt.Chart:
    df = pd.DataFrame(data, columns=["name", "value"])
    return (
        alt.Chart(df)
        .mark_bar(color=color, cornerRadiusEnd=4)
        .encode(
            x=alt.X("value:Q", title=title, axis=alt.Axis(format="~s")),
            y=alt.Y("name:N", sort="-x", title=None),
            tooltip=["name", alt.Tooltip("value:Q", title=title, format=fmt)],
        )
        .properties(height=280)
    )


def plant_loss_chart(payload: Dict[str, Any]) -> alt.Chart:
    return _bar(payload.get("plant_data", []), "Duration Loss (hrs)", "#2563eb")


def frequency_chart(payload: Dict[str, Any]) -> alt.Chart:
    return _bar(payload.get("frequency_data", []), "Failure Events", "#f59e0b")


def _donut(data: List[Dict[str, Any]], title: str) -> alt.Chart:
    df = pd.DataFrame(data, columns=["name", "value"])
    return (
        alt.Chart(df)
        .mark_arc(innerRadius=60)
        .encode(
            theta=alt.Theta("value:Q"),
            color=alt.Color("name:N", title=title),
            tooltip=["name", alt.Tooltip("value:Q", title="Duration Loss", format=",.0f")],
        )
        .properties(height=280)
    )


def category_chart(payload: Dict[str, Any]) -> alt.Chart:
    return _donut(payload.get("category_data", []), "Category")


def class_chart(payload: Dict[str, Any]) -> alt.Chart:
    return _donut(payload.get("class_data", []), "Class")


def heatmap_frame(payload: Dict[str, Any]) -> pd.DataFrame:
    """Heatmap points with their risk quadrant, derived at render time."""
    df = pd.DataFrame(payload.get("heatmap_data", []), columns=["name", "x", "y", "size"])
    max_x = float(df["x"].max()) if not df.empty else 0.0
    df["quadrant"] = [QUADRANT_LABELS[classify_quadrant(x, y, max_x)] for x, y in zip(df["x"], df["y"])]
    return df


def heatmap_chart(payload: Dict[str, Any]) -> alt.Chart:
    df = heatmap_frame(payload)
    domain = [QUADRANT_LABELS[k] for k in QUADRANT_COLORS]
    points = (
        alt.Chart(df)
        .mark_circle(opacity=0.75)
        .encode(
            x=alt.X("x:Q", title="Total Duration Loss (hrs)"),
            y=alt.Y("y:Q", title="Avg Completion (%)", scale=alt.Scale(domain=[0, 100])),
            size=alt.Size("size:Q", title="Frequency"),
            color=alt.Color("quadrant:N", scale=alt.Scale(domain=domain, range=list(QUADRANT_COLORS.values()))),
            tooltip=["name", alt.Tooltip("x:Q", title="Loss", format=",.0f"), "y", "size", "quadrant"],
        )
    )
    rules = alt.Chart(pd.DataFrame({"y": [30, 70]})).mark_rule(strokeDash=[4, 4], color="#94a3b8").encode(y="y:Q")
    return alt.layer(points, rules).properties(height=320)


def composed_chart(payload: Dict[str, Any]) -> alt.Chart:
    df = pd.DataFrame(payload.get("composed_data", []), columns=["plant", "name", "duration", "frequency"])
    df["label"] = df["plant"] + " - " + df["name"]
    base = alt.Chart(df).encode(x=alt.X("label:N", sort=None, title=None, axis=alt.Axis(labelAngle=-30)))
    bars = base.mark_bar(color="#2563eb").encode(
        y=alt.Y("duration:Q", title="Duration Loss (hrs)"),
        tooltip=["plant", "name", alt.Tooltip("duration:Q", format=",.0f"), alt.Tooltip("frequency:Q", format=",")],
    )
    line = base.mark_line(point=True, color="#f59e0b").encode(
        y=alt.Y("frequency:Q", title="Frequency", axis=alt.Axis(orient="right")),
    )
    return alt.layer(bars, line).resolve_scale(y="independent").properties(height=320)


CHART_BUILDERS = {
    "plant_loss": plant_loss_chart,
    "frequency": frequency_chart,
    "category": category_chart,
    "class": class_chart,
    "heatmap": heatmap_chart,
    "composed": composed_chart,
}


def dashboard_charts(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {name: to_vega_spec(build(payload)) for name, build in CHART_BUILDERS.items()}
