from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar, Union

from google import genai
from pydantic import BaseModel, ConfigDict, Field

from ledger.config import DEFAULT_SOURCE_NAME, Settings, load_settings
from ledger.errors import AnalysisFailure
from ledger.schema import CanonicalRow

logger = logging.getLogger(__name__)

HIGH_PRIORITY = "High Priority"
ROUTINE = "Routine"

ModelT = TypeVar("ModelT", bound=BaseModel)


# ---------------- Response models ----------------
class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Metric(_Payload):
    label: str
    value: Union[str, float]
    change: Optional[str] = None
    is_positive: Optional[bool] = Field(default=None, alias="isPositive")


class ChartDescriptor(_Payload):
    id: str
    type: str
    title: str
    x_field: str = Field(alias="xAxis")
    y_field: str = Field(alias="yAxis")


class AnalysisResult(_Payload):
    summary: str
    metrics: List[Metric] = Field(default_factory=list)
    charts: List[ChartDescriptor] = Field(default_factory=list)


class ActionAudit(_Payload):
    action_title: str = Field(default="", alias="actionTitle")
    source_action_plan: str = Field(default="", alias="sourceActionPlan")
    challenge_question: str = Field(default="", alias="ctoChallengeQuery")
    evidence_artifact: str = Field(default="", alias="strategicAnchor")
    tracking_priority: str = Field(default="", alias="worthTracking")
    quality_rating: Optional[str] = Field(default=None, alias="qualityRating")
    trackability: Optional[str] = None
    impact_category: Optional[str] = Field(default=None, alias="impactCategory")
    ytd_status: Optional[str] = Field(default=None, alias="ytdStatus")
    recommendation: Optional[str] = None
    justification: Optional[str] = None
    ceo_talking_point: Optional[str] = Field(default=None, alias="ceoTalkingPoint")
    risk_level: Optional[str] = Field(default=None, alias="riskLevel")

    @property
    def is_high_priority(self) -> bool:
        return self.tracking_priority.strip().lower() == HIGH_PRIORITY.lower()


class AuditResult(_Payload):
    overall_score: float = Field(alias="overallScore")
    executive_summary: str = Field(alias="executiveVerdict")
    ceo_brief: Optional[str] = Field(default=None, alias="ceoBrief")
    red_flags: List[str] = Field(default_factory=list, alias="redFlags")
    audits: List[ActionAudit] = Field(default_factory=list)


# ---------------- Prompts ----------------
ANALYSIS_PROMPT = """Analyze the following industrial operational data from "{source}" and generate a professional dashboard JSON.
The data includes fields like Plant Name, Chronic Issue, Failures Description, Action Plan, Class, Duration Loss, Frequency, Category, Progress, Completion, Start Time, and End Time.

Data snippet:
{snippet}

Return ONLY a JSON object with keys:
- summary: executive summary of bottlenecks, major downtime causes (Duration Loss) and resolution progress
- metrics: array of {{label, value, change?, isPositive?}} (4 KPIs)
- charts: array of {{id, type (bar|line|pie|area), title, xAxis, yAxis}} using the field names above
"""

AUDIT_PROMPT = """As a member of the corporate CTO team, audit the following action plans for the plant "{plant}".
Today's reference date is {today}.

Actions Data:
{actions}

Analyze based on:
1. Quality: concrete engineering action versus vague filler.
2. Remote trackability: can the CTO team monitor it from HQ?
3. Strategic category: Capex, Opex or maintenance ROI.
4. YTD review: overdue versus on track, against the reference date.
5. CEO alignment: a talking point on how the plant CEO should view each action.
6. Red flags: systemic risks that need upper management visibility.

Return ONLY a JSON object with keys:
- overallScore (0-100)
- executiveVerdict (CTO tone)
- ceoBrief (3 sentences for the plant CEO)
- redFlags (array of systemic risks)
- audits: array of {{actionTitle (the Chronic Issue), sourceActionPlan (the Action Plan text, verbatim),
  qualityRating, trackability, impactCategory, ytdStatus, recommendation, justification, ceoTalkingPoint,
  ctoChallengeQuery, strategicAnchor (the evidence artifact to request), worthTracking ("{high}" or "{routine}"),
  riskLevel (Low, Medium or High)}}
"""


# ---------------- Helpers ----------------
def row_payload(row: CanonicalRow) -> Dict[str, Any]:
    payload = row.to_record()
    payload["Quality"] = row.quality.label if row.quality is not None else ""
    return payload


def rows_snippet(rows: Sequence[CanonicalRow], limit: int = 20) -> str:
    return json.dumps([row_payload(r) for r in list(rows)[:limit]], indent=2)


def get_client(settings: Settings) -> genai.Client:
    if not settings.gemini_api_key:
        raise AnalysisFailure("GEMINI_API_KEY is not configured")
    return genai.Client(api_key=settings.gemini_api_key)


def _generate(client: Any, model: str, prompt: str, schema: Type[ModelT]) -> ModelT:
    try:
        resp = client.models.generate_content(
            model=model,
            contents=prompt,
            config={"response_mime_type": "application/json", "response_schema": schema, "temperature": 0},
        )
        raw = (resp.text or "").strip()
        return schema.model_validate_json(raw or "{}")
    except Exception as exc:
        logger.warning("%s call to %s failed: %s", schema.__name__, model, exc)
        raise AnalysisFailure(f"{schema.__name__} failed") from exc


# ---------------- Collaborators ----------------
def analyze_rows(
    rows: Sequence[CanonicalRow],
    source_name: Optional[str] = None,
    *,
    client: Any = None,
    settings: Optional[Settings] = None,
) -> AnalysisResult:
    settings = settings or load_settings()
    client = client or get_client(settings)
    prompt = ANALYSIS_PROMPT.format(
        source=source_name or DEFAULT_SOURCE_NAME,
        snippet=rows_snippet(rows, settings.snippet_rows),
    )
    logger.info("requesting analysis of %d rows from %s", min(len(rows), settings.snippet_rows), source_name)
    return _generate(client, settings.analysis_model, prompt, AnalysisResult)


def audit_plant(
    plant: str,
    rows: Sequence[CanonicalRow],
    *,
    client: Any = None,
    settings: Optional[Settings] = None,
    today: Optional[date] = None,
) -> AuditResult:
    settings = settings or load_settings()
    client = client or get_client(settings)
    today = today or date.today()
    prompt = AUDIT_PROMPT.format(
        plant=plant,
        today=today.strftime("%b %Y"),
        actions=json.dumps([row_payload(r) for r in rows], indent=2),
        high=HIGH_PRIORITY,
        routine=ROUTINE,
    )
    logger.info("requesting audit of %d actions for plant %s", len(rows), plant)
    return _generate(client, settings.audit_model, prompt, AuditResult)


def _match_key(issue: object, plan: object) -> tuple:
    return str(issue).lower(), str(plan).lower()


def merge_audit(rows: Sequence[CanonicalRow], audit: AuditResult) -> List[CanonicalRow]:
    """Copy audit annotations onto rows whose (issue, action plan) text matches, case-insensitively.

    The first audit entry wins for a given pair; unmatched rows are returned unchanged.
    """
    by_key: Dict[tuple, ActionAudit] = {}
    for a in audit.audits:
        by_key.setdefault(_match_key(a.action_title, a.source_action_plan), a)
    out: List[CanonicalRow] = []
    for row in rows:
        match = by_key.get(_match_key(row.chronic_issue, row.action_plan))
        if match is None:
            out.append(row)
            continue
        out.append(
            row.replace(
                audit_question=match.challenge_question,
                audit_artifact=match.evidence_artifact,
                audit_priority=match.tracking_priority,
            )
        )
    return out


def filter_audits(audits: Sequence[ActionAudit], issue: str = "") -> List[ActionAudit]:
    """Narrow audits to the selected issue (containment either way, case-insensitive)."""
    if not issue:
        return list(audits)
    needle = issue.lower()
    return [a for a in audits if a.action_title.lower() in needle or needle in a.action_title.lower()]
