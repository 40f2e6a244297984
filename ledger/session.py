from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ledger import ai, store
from ledger.config import Settings
from ledger.data import Source, read_workbook
from ledger.errors import AnalysisFailure, LedgerImportError, SessionStateError
from ledger.filters import FilterSelection, filtered_rows
from ledger.mapping import ColumnMapping, apply_overrides, infer_mapping
from ledger.normalize import normalize_records
from ledger.schema import CanonicalRow

logger = logging.getLogger(__name__)

STEP_UPLOAD = "upload"
STEP_MAP = "map"
STEP_ANALYZE = "analyze"

ANALYSIS_FAILED = "Analysis failed."


@dataclass(frozen=True)
class LedgerSession:
    """One upload → mapping → analysis run. Every transition returns a new session."""

    step: str = STEP_UPLOAD
    filename: Optional[str] = None
    headers: Tuple[str, ...] = ()
    records: Tuple[Dict[str, Any], ...] = ()
    mapping: ColumnMapping = field(default_factory=dict)
    rows: Tuple[CanonicalRow, ...] = ()
    analysis: Optional[ai.AnalysisResult] = None
    audit: Optional[ai.AuditResult] = None
    error: Optional[str] = None

    def filtered(self, selection: FilterSelection) -> List[CanonicalRow]:
        return filtered_rows(selection, self.rows)

    def require_rows(self) -> Tuple[CanonicalRow, ...]:
        if self.step != STEP_ANALYZE:
            raise SessionStateError("No analyzed ledger; upload and analyze a file first.")
        return self.rows


def load_file(source: Source, filename: Optional[str] = None) -> LedgerSession:
    """Start a new session from an upload with an inferred default mapping.

    Import errors propagate; the caller keeps its previous session.
    """
    try:
        headers, records = read_workbook(source, filename)
    except LedgerImportError as exc:
        logger.warning("import of %s failed: %s", filename, exc)
        raise
    return LedgerSession(
        step=STEP_MAP,
        filename=filename,
        headers=tuple(headers),
        records=tuple(records),
        mapping=infer_mapping(headers),
    )


def _require_upload(session: LedgerSession) -> None:
    if session.step == STEP_UPLOAD:
        raise SessionStateError("Upload a file first.")


def update_mapping(session: LedgerSession, overrides: Mapping[str, Optional[str]]) -> LedgerSession:
    _require_upload(session)
    mapping = apply_overrides(session.mapping, overrides, session.headers)
    return replace(session, mapping=mapping, error=None)


def start_analysis(
    session: LedgerSession,
    *,
    client: Any = None,
    settings: Optional[Settings] = None,
) -> LedgerSession:
    """Normalize every record, then ask the analysis collaborator for a summary.

    On failure the session rolls back to mapping review with no rows exposed.
    """
    _require_upload(session)
    rows = tuple(normalize_records(session.records, session.mapping))
    try:
        result = ai.analyze_rows(rows, session.filename, client=client, settings=settings)
    except AnalysisFailure:
        return replace(session, step=STEP_MAP, rows=(), analysis=None, audit=None, error=ANALYSIS_FAILED)
    return replace(session, step=STEP_ANALYZE, rows=rows, analysis=result, audit=None, error=None)


def run_audit(
    session: LedgerSession,
    selection: FilterSelection,
    *,
    client: Any = None,
    settings: Optional[Settings] = None,
) -> LedgerSession:
    """Audit the selected plant's rows and merge annotations back by (issue, action plan)."""
    rows = session.require_rows()
    if not selection.plant:
        raise ValueError("Please select at least a Plant for AI analysis.")
    plant_rows = [r for r in rows if r.plant_name == selection.plant]
    result = ai.audit_plant(selection.plant, plant_rows, client=client, settings=settings)
    return replace(session, rows=tuple(ai.merge_audit(session.rows, result)), audit=result)


def add_row(session: LedgerSession, selection: Optional[FilterSelection] = None) -> Tuple[LedgerSession, CanonicalRow]:
    rows, row = store.append_row(session.require_rows(), selection)
    return replace(session, rows=rows), row


def reset_row(session: LedgerSession, row_id: str) -> LedgerSession:
    return replace(session, rows=store.reset_row(session.require_rows(), row_id))


def edit_row(session: LedgerSession, row_id: str, /, **changes: Any) -> LedgerSession:
    return replace(session, rows=store.edit_row(session.require_rows(), row_id, **changes))
