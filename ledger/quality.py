from __future__ import annotations

from typing import Optional

from ledger.data import round_half_up
from ledger.schema import QualityAssessment

HIGH_VALUE_KEYWORDS = ("replace", "install", "repair", "modify", "calibrate", "purchase", "overhaul", "reinforce", "upgrade")
LOW_VALUE_KEYWORDS = ("monitor", "observe", "discuss", "check", "meeting", "review")

COLORS = {
    "Empty": "#94a3b8",
    "Vague": "#ef4444",
    "Procedural": "#f97316",
    "Moderate": "#f59e0b",
    "Technical": "#10b981",
}

BASE_SCORE = 40
HIGH_VALUE_POINTS = 15
LOW_VALUE_POINTS = 5
MAX_LENGTH_BONUS = 20


def _assessment(score: float, label: str) -> QualityAssessment:
    return QualityAssessment(score=int(round_half_up(score) or 0), label=label, color=COLORS[label])


def quality_band(score: float) -> str:
    if score > 80:
        return "Technical"
    if score > 55:
        return "Moderate"
    return "Procedural"


def raw_score(text: str) -> float:
    """Keyword/length score before banding. Each keyword counts once however often it appears."""
    lowered = text.lower()
    score = float(BASE_SCORE)
    score += HIGH_VALUE_POINTS * sum(1 for k in HIGH_VALUE_KEYWORDS if k in lowered)
    score += LOW_VALUE_POINTS * sum(1 for k in LOW_VALUE_KEYWORDS if k in lowered)
    score += min(len(text) / 10, MAX_LENGTH_BONUS)
    return min(score, 100.0)


def score_action_plan(text: Optional[str]) -> QualityAssessment:
    """Heuristic "vague-o-meter" for an action plan."""
    text = text or ""
    if len(text.strip()) < 5:
        return _assessment(10, "Empty")
    if len(text) < 15:
        return _assessment(25, "Vague")
    score = raw_score(text)
    return _assessment(score, quality_band(score))
