from __future__ import annotations

import logging
import math
from typing import Literal

import numpy as np
import pandas as pd
from fastapi import FastAPI, File, Query, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import FilterSelectionModel, LedgerRequestModel, MappingUpdateModel, RowEditModel
from ledger import session as pipeline
from ledger.aggregate import compute_dashboard
from ledger.ai import filter_audits
from ledger.charts import dashboard_charts
from ledger.config import load_settings
from ledger.data import export_csv, export_filename, export_xlsx
from ledger.errors import (
    AnalysisFailure,
    InvalidMappingError,
    LedgerImportError,
    SessionStateError,
    UnknownRowError,
)
from ledger.filters import FilterSelection, facet_options, ledger_order, normalize_selection
from ledger.grouping import group_rows
from ledger.mapping import mapping_report
from ledger.timeline import build_timeline

app = FastAPI(title="ACM Ledger API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Single in-process session; no persistence between restarts.
app.state.session = pipeline.LedgerSession()
app.state.ai_client = None
app.state.settings = load_settings()

_STATUS_BY_ERROR = (
    (LedgerImportError, 400),
    (InvalidMappingError, 400),
    (UnknownRowError, 404),
    (SessionStateError, 409),
    (AnalysisFailure, 502),
    (ValueError, 400),
)


def _selection(model: FilterSelectionModel) -> FilterSelection:
    return normalize_selection(model.model_dump())


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _failure(name: str, exc: Exception) -> JSONResponse:
    status = 500
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status = code
            break
    if status == 500:
        logger.exception("%s failed", name)
    else:
        logger.warning("%s rejected: %s", name, exc)
    message = exc.args[0] if isinstance(exc, KeyError) and exc.args else str(exc)
    return JSONResponse(status_code=status, content={"error": str(message), "type": type(exc).__name__})


def _mapping_payload(session: pipeline.LedgerSession) -> dict:
    return {"step": session.step, "headers": list(session.headers), "mapping": session.mapping, **mapping_report(session.mapping)}


@app.post("/upload")
async def upload(file: UploadFile = File(...)):
    try:
        content = await file.read()
        app.state.session = pipeline.load_file(content, file.filename)
        session = app.state.session
        return _json({**_mapping_payload(session), "filename": session.filename, "row_count": len(session.records)})
    except Exception as exc:
        return _failure("upload", exc)


@app.get("/mapping")
def get_mapping():
    return _json(_mapping_payload(app.state.session))


@app.put("/mapping")
def put_mapping(update: MappingUpdateModel):
    try:
        app.state.session = pipeline.update_mapping(app.state.session, update.mapping)
        return _json(_mapping_payload(app.state.session))
    except Exception as exc:
        return _failure("put_mapping", exc)


@app.post("/analyze")
def analyze():
    try:
        session = pipeline.start_analysis(app.state.session, client=app.state.ai_client, settings=app.state.settings)
        app.state.session = session
        if session.error:
            return JSONResponse(status_code=502, content={"error": session.error, "step": session.step})
        return _json(
            {
                "step": session.step,
                "row_count": len(session.rows),
                "analysis": session.analysis.model_dump(by_alias=True) if session.analysis else None,
            }
        )
    except Exception as exc:
        return _failure("analyze", exc)


@app.post("/meta/options")
def meta_options(filters: FilterSelectionModel):
    try:
        rows = app.state.session.require_rows()
        return _json(facet_options(_selection(filters), rows))
    except Exception as exc:
        return _failure("meta_options", exc)


@app.post("/ledger")
def ledger(request: LedgerRequestModel):
    try:
        session = app.state.session
        session.require_rows()
        selection = _selection(request.filters)
        rows = session.filtered(selection)
        if request.sort:
            rows = ledger_order(rows)
        grouped = [{**g.row.to_dict(), **g.to_dict()} for g in group_rows(rows)]
        return _json({"filters": selection.as_dict(), "rows": grouped})
    except Exception as exc:
        return _failure("ledger", exc)


@app.post("/dashboard")
def dashboard(filters: FilterSelectionModel):
    try:
        session = app.state.session
        session.require_rows()
        selection = _selection(filters)
        settings = app.state.settings
        payload = compute_dashboard(
            session.filtered(selection), top_plants=settings.top_plants, top_issues=settings.top_issues
        )
        analysis = session.analysis.model_dump(by_alias=True) if session.analysis else None
        return _json({"filters": selection.as_dict(), **payload, "charts": dashboard_charts(payload), "analysis": analysis})
    except Exception as exc:
        return _failure("dashboard", exc)


@app.post("/timeline")
def timeline(filters: FilterSelectionModel):
    try:
        session = app.state.session
        session.require_rows()
        rows = session.filtered(_selection(filters))
        return _json(build_timeline(rows, quarter_width=app.state.settings.quarter_width).to_dict(rows))
    except Exception as exc:
        return _failure("timeline", exc)


@app.post("/rows")
def add_row(filters: FilterSelectionModel):
    try:
        app.state.session, row = pipeline.add_row(app.state.session, _selection(filters))
        return _json(row.to_dict())
    except Exception as exc:
        return _failure("add_row", exc)


@app.put("/rows/{row_id}")
def edit_row(row_id: str, edit: RowEditModel):
    try:
        session = pipeline.edit_row(app.state.session, row_id, **edit.model_dump(exclude_none=True))
        app.state.session = session
        return _json(next(r for r in session.rows if r.row_id == row_id).to_dict())
    except Exception as exc:
        return _failure("edit_row", exc)


@app.post("/rows/{row_id}/reset")
def reset_row(row_id: str):
    try:
        session = pipeline.reset_row(app.state.session, row_id)
        app.state.session = session
        return _json(next(r for r in session.rows if r.row_id == row_id).to_dict())
    except Exception as exc:
        return _failure("reset_row", exc)


@app.post("/audit")
def audit(filters: FilterSelectionModel):
    try:
        selection = _selection(filters)
        session = pipeline.run_audit(app.state.session, selection, client=app.state.ai_client, settings=app.state.settings)
        app.state.session = session
        result = session.audit
        return _json(
            {
                "overallScore": result.overall_score,
                "executiveVerdict": result.executive_summary,
                "ceoBrief": result.ceo_brief,
                "redFlags": result.red_flags,
                "audits": [a.model_dump(by_alias=True) for a in filter_audits(result.audits, selection.issue)],
            }
        )
    except Exception as exc:
        return _failure("audit", exc)


@app.post("/export")
def export(filters: FilterSelectionModel, fmt: Literal["xlsx", "csv"] = Query(default="xlsx")):
    try:
        session = app.state.session
        session.require_rows()
        rows = session.filtered(_selection(filters))
        filename = export_filename(suffix=fmt)
        if fmt == "csv":
            content, media_type = export_csv(rows), "text/csv"
        else:
            content = export_xlsx(rows)
            media_type = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        return Response(content=content, media_type=media_type, headers={"Content-Disposition": f"attachment; filename={filename}"})
    except Exception as exc:
        return _failure("export", exc)


@app.post("/reset")
def reset_session():
    app.state.session = pipeline.LedgerSession()
    return _json({"step": app.state.session.step})
