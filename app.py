import altair as alt
import pandas as pd
import streamlit as st
from contextlib import contextmanager
from typing import List, Optional

from ledger import session as pipeline
from ledger.aggregate import compute_dashboard
from ledger.ai import filter_audits
from ledger.charts import (
    category_chart,
    class_chart,
    composed_chart,
    frequency_chart,
    heatmap_chart,
    plant_loss_chart,
)
from ledger.config import load_settings
from ledger.data import export_filename, export_xlsx
from ledger.errors import LedgerError, LedgerImportError
from ledger.filters import FACETS, FilterSelection, cascade_choices, ledger_order, selection_from_state, selection_summary
from ledger.grouping import group_rows
from ledger.mapping import mapping_report
from ledger.schema import CANONICAL_FIELDS, CLASS_OPTIONS, PROGRESS_OPTIONS, CanonicalRow
from ledger.store import distinct_categories
from ledger.timeline import build_timeline

alt.data_transformers.disable_max_rows()

FACET_LABELS = {"plant": "Plant", "issue": "Chronic Issue", "class": "Class", "category": "Category"}
ALL = "All"
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
AUDIT_DETAILS = (
    ("Executive insight", "ceo_talking_point"),
    ("Verification strategy", "trackability"),
    ("Technical rating", "quality_rating"),
    ("Justification", "justification"),
)


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(selection: FilterSelection) -> str:
    summary = selection_summary(selection)
    labels = {"plant": "Plant", "issue": "Issue", "class_name": "Class", "category": "Category"}
    return "".join(f"<span class='chip'>{labels[k]}: {v}</span>" for k, v in summary.items())


def get_session() -> pipeline.LedgerSession:
    if "ledger_session" not in st.session_state:
        st.session_state["ledger_session"] = pipeline.LedgerSession()
    return st.session_state["ledger_session"]


def set_session(session: pipeline.LedgerSession):
    st.session_state["ledger_session"] = session


def row_label(row: CanonicalRow) -> str:
    plan = row.action_plan[:40] or "(no action plan)"
    return f"{row.plant_name} / {row.chronic_issue} / {plan}"


# ---------- Steps ----------
def render_upload():
    st.subheader("1. Upload ACM export")
    uploaded = st.file_uploader("Excel or CSV file", type=["xlsx", "xls", "csv"])
    if uploaded is None:
        st.info("Upload the ACM failure/maintenance export to start.")
        return
    try:
        set_session(pipeline.load_file(uploaded.getvalue(), uploaded.name))
    except LedgerImportError as exc:
        st.error(str(exc))
        return
    st.rerun()


def render_mapping(session: pipeline.LedgerSession):
    st.subheader("2. Review column mapping")
    st.caption(f"{session.filename}: {len(session.records)} rows, {len(session.headers)} columns")
    if session.error:
        st.error(session.error)

    options = [""] + list(session.headers)
    overrides = {}
    cols = st.columns(3)
    for i, field in enumerate(CANONICAL_FIELDS):
        current = session.mapping.get(field) or ""
        overrides[field] = cols[i % 3].selectbox(
            field,
            options=options,
            index=options.index(current) if current in options else 0,
            format_func=lambda h: h or "(not mapped)",
            key=f"map_{field}",
        )

    report = mapping_report(overrides)
    if report["unmapped"]:
        st.warning(f"Unmapped fields use defaults: {', '.join(report['unmapped'])}")

    c1, c2 = st.columns([1, 5])
    if c1.button("Analyze", type="primary"):
        session = pipeline.update_mapping(session, overrides)
        with st.spinner("Normalizing rows and requesting AI analysis..."):
            set_session(pipeline.start_analysis(session, settings=load_settings()))
        st.rerun()
    if c2.button("Start over"):
        set_session(pipeline.LedgerSession())
        st.rerun()


def render_sidebar(session: pipeline.LedgerSession) -> FilterSelection:
    selection = selection_from_state(st.session_state, blank=ALL)
    options = cascade_choices(selection, session.rows)
    with st.sidebar:
        st.markdown("### Filters")
        # Every facet's options honour all the other chosen facets.
        for facet in FACETS:
            st.selectbox(FACET_LABELS[facet], options=[ALL] + options[facet], key=f"facet_{facet}")
        st.markdown("---")
        rows = session.filtered(selection)
        st.download_button(
            "Export Excel",
            data=export_xlsx(rows),
            file_name=export_filename(),
            mime=XLSX_MIME,
            disabled=not rows,
        )
        if st.button("New upload"):
            set_session(pipeline.LedgerSession())
            st.rerun()
    return selection


def render_ledger(session: pipeline.LedgerSession, selection: FilterSelection):
    rows = ledger_order(session.filtered(selection))
    c1, c2 = st.columns([5, 1])
    c1.caption(f"{len(rows)} of {len(session.rows)} rows")
    if c2.button("Add row"):
        set_session(pipeline.add_row(session, selection)[0])
        st.rerun()
    if not rows:
        st.info("No rows match the current filters.")
        return

    table = pd.DataFrame(
        [
            {
                "Plant": g.display_plant,
                "Chronic Issue": g.display_issue,
                "Failures Description": g.display_failure,
                "Class": g.display_class,
                "Duration Loss": g.display_duration,
                "Frequency": g.display_frequency,
                "Action Plan": g.row.action_plan,
                "Quality": f"{g.row.quality.label} ({g.row.quality.score})" if g.row.quality else "",
                "Category": g.row.category,
                "Progress": g.row.progress,
                "Completion": g.row.completion,
                "Start": g.row.start_time,
                "End": g.row.end_time,
                "CTO Question": g.row.audit_question,
                "Tracking Priority": g.row.audit_priority,
            }
            for g in group_rows(rows)
        ]
    )
    st.dataframe(
        table,
        use_container_width=True,
        hide_index=True,
        column_config={"Completion": st.column_config.ProgressColumn("Completion", min_value=0, max_value=100, format="%d%%")},
    )

    with card("Edit action"):
        by_id = {r.row_id: r for r in rows}
        row_id = st.selectbox("Row", options=list(by_id), format_func=lambda rid: row_label(by_id[rid]))
        render_row_form(session, by_id[row_id])


def render_row_form(session: pipeline.LedgerSession, row: CanonicalRow):
    categories = distinct_categories(session.rows)
    with st.form(f"edit_{row.row_id}"):
        c1, c2 = st.columns(2)
        plant = c1.text_input("Plant Name", row.plant_name)
        issue = c2.text_input("Chronic Issue", row.chronic_issue)
        failure = st.text_area("Failures Description", row.failures_description)
        plan = st.text_area("Action Plan", row.action_plan)
        c3, c4, c5 = st.columns(3)
        class_options = list(CLASS_OPTIONS) if row.class_name in CLASS_OPTIONS else [row.class_name] + list(CLASS_OPTIONS)
        class_name = c3.selectbox("Class", class_options, index=class_options.index(row.class_name))
        category = c4.selectbox("Category", categories, index=categories.index(row.category) if row.category in categories else 0)
        progress_options = list(PROGRESS_OPTIONS) if row.progress in PROGRESS_OPTIONS else [row.progress] + list(PROGRESS_OPTIONS)
        progress = c5.selectbox("Progress", progress_options, index=progress_options.index(row.progress))
        c6, c7, c8, c9, c10 = st.columns(5)
        duration = c6.number_input("Duration Loss", min_value=0.0, value=float(row.duration_loss))
        frequency = c7.number_input("Frequency", min_value=0.0, value=float(row.frequency))
        completion = c8.slider("Completion", 0, 100, int(min(row.completion, 100)))
        start = c9.date_input("Start", value=row.start_date.date() if row.start_date is not None else None)
        end = c10.date_input("End", value=row.end_date.date() if row.end_date is not None else None)
        save, reset = st.columns(2)
        saved = save.form_submit_button("Save", type="primary")
        cleared = reset.form_submit_button("Reset action")

    try:
        if saved:
            session = pipeline.edit_row(
                session,
                row.row_id,
                plant_name=plant,
                chronic_issue=issue,
                failures_description=failure,
                action_plan=plan,
                class_name=class_name,
                category=category,
                progress=progress,
                duration_loss=duration,
                frequency=frequency,
                completion=completion,
                start_date=start,
                end_date=end,
            )
        elif cleared:
            session = pipeline.reset_row(session, row.row_id)
        else:
            return
    except LedgerError as exc:
        st.error(str(exc))
        return
    set_session(session)
    st.rerun()


def render_reporting(session: pipeline.LedgerSession, selection: FilterSelection):
    if session.analysis is not None:
        with card("AI summary"):
            st.write(session.analysis.summary)

    settings = load_settings()
    payload = compute_dashboard(session.filtered(selection), top_plants=settings.top_plants, top_issues=settings.top_issues)
    cols = st.columns(len(payload["metrics"]))
    for col, metric in zip(cols, payload["metrics"]):
        col.metric(metric["label"], metric["display"])
    if not payload["row_count"]:
        st.info("No rows match the current filters.")
        return

    c1, c2 = st.columns(2)
    with c1:
        st.markdown("**Duration loss by plant**")
        st.altair_chart(plant_loss_chart(payload), use_container_width=True)
    with c2:
        st.markdown("**Failure events by plant**")
        st.altair_chart(frequency_chart(payload), use_container_width=True)
    c3, c4 = st.columns(2)
    with c3:
        st.markdown("**Loss by category**")
        st.altair_chart(category_chart(payload), use_container_width=True)
    with c4:
        st.markdown("**Loss by class**")
        st.altair_chart(class_chart(payload), use_container_width=True)
    st.markdown("**Risk heatmap**")
    st.altair_chart(heatmap_chart(payload), use_container_width=True)
    st.markdown("**Top chronic issues**")
    st.altair_chart(composed_chart(payload), use_container_width=True)
    st.dataframe(pd.DataFrame(payload["plant_stats"]), use_container_width=True, hide_index=True)


def timeline_chart(rows: List[CanonicalRow], quarter_width: float) -> Optional[alt.Chart]:
    layout = build_timeline(rows, quarter_width=quarter_width)
    if not layout.quarters:
        return None
    bars = pd.DataFrame(
        [
            {
                "row": row_label(row),
                "left": bar["left"],
                "right": bar["left"] + bar["width"],
                "color": bar["color"],
                "progress": row.progress,
                "completion": row.completion,
            }
            for row, bar in ((r, layout.bar(r)) for r in rows)
        ]
    )
    quarters = pd.DataFrame(
        [{"label": q.label, "x": i * layout.quarter_width} for i, q in enumerate(layout.quarters)]
    )
    x_scale = alt.Scale(domain=[0, len(layout.quarters) * layout.quarter_width])
    gantt = (
        alt.Chart(bars)
        .mark_bar(cornerRadius=4, size=14)
        .encode(
            x=alt.X("left:Q", scale=x_scale, axis=None),
            x2="right:Q",
            y=alt.Y("row:N", sort=None, title=None),
            color=alt.Color("color:N", scale=None),
            tooltip=["row", "progress", "completion"],
        )
    )
    grid = alt.Chart(quarters).mark_rule(color="#e5e7eb").encode(x=alt.X("x:Q", scale=x_scale))
    labels = alt.Chart(quarters).mark_text(align="left", dx=4, dy=-6, color="#6b7280").encode(
        x=alt.X("x:Q", scale=x_scale), text="label:N"
    )
    return alt.layer(grid, gantt, labels).properties(height=max(24 * len(rows), 120))


def render_timeline(session: pipeline.LedgerSession, selection: FilterSelection):
    rows = ledger_order(session.filtered(selection))
    chart = timeline_chart(rows, load_settings().quarter_width)
    if chart is None:
        st.info("No rows match the current filters.")
        return
    st.altair_chart(chart, use_container_width=True)


def render_audit(session: pipeline.LedgerSession, selection: FilterSelection):
    if not selection.plant:
        st.info("Please select at least a Plant for AI analysis.")
        return
    if st.button(f"Run CTO audit for {selection.plant}", type="primary"):
        try:
            with st.spinner("Auditing action plans..."):
                set_session(pipeline.run_audit(session, selection, settings=load_settings()))
        except LedgerError as exc:
            st.error(f"Audit failed: {exc}")
            return
        st.rerun()

    audit = session.audit
    if audit is None:
        return
    c1, c2 = st.columns([1, 4])
    c1.metric("Overall score", f"{audit.overall_score:.0f}")
    with c2:
        st.markdown(f"**Executive verdict:** {audit.executive_summary}")
        if audit.ceo_brief:
            st.markdown(f"**CEO brief:** {audit.ceo_brief}")
    if audit.red_flags:
        with card("Red flags"):
            for flag in audit.red_flags:
                st.markdown(f"- {flag}")
    for item in filter_audits(audit.audits, selection.issue):
        marker = "[!]" if item.is_high_priority else "[ ]"
        with st.expander(f"{marker} {item.action_title} ({item.tracking_priority or 'n/a'})"):
            st.markdown(f"**Action plan:** {item.source_action_plan}")
            st.markdown(f"**CTO question:** {item.challenge_question}")
            st.markdown(f"**Artifact to request:** {item.evidence_artifact}")
            if item.recommendation:
                st.markdown(f"**Recommendation:** {item.recommendation}")
            tags = [t for t in (item.impact_category, item.risk_level and f"Risk: {item.risk_level}", item.ytd_status and f"Status: {item.ytd_status}") if t]
            if tags:
                st.caption(" | ".join(tags))
            for label, attr in AUDIT_DETAILS:
                value = getattr(item, attr)
                if value:
                    st.markdown(f"**{label}:** {value}")


# ---------- UI setup ----------
st.set_page_config(page_title="ACM Failure & Maintenance Ledger", layout="wide")
inject_base_styles()
st.title("ACM Failure & Maintenance Ledger")
st.caption("Upload an ACM export, confirm the column mapping, then track chronic issues and action plans.")

current = get_session()
if current.step == pipeline.STEP_UPLOAD:
    render_upload()
    st.stop()
if current.step == pipeline.STEP_MAP:
    render_mapping(current)
    st.stop()

active = render_sidebar(current)
st.markdown(f"<div class='chip-row'>{format_filter_summary(active)}</div>", unsafe_allow_html=True)
tab_ledger, tab_reporting, tab_timeline, tab_audit = st.tabs(["Ledger", "Reporting", "Timeline", "AI Audit"])
with tab_ledger:
    render_ledger(current, active)
with tab_reporting:
    render_reporting(current, active)
with tab_timeline:
    render_timeline(current, active)
with tab_audit:
    render_audit(current, active)
