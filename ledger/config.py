from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_ANALYSIS_MODEL = "gemini-2.5-flash"
DEFAULT_AUDIT_MODEL = "gemini-2.5-pro"
DEFAULT_SOURCE_NAME = "ACM Export"


@dataclass(frozen=True)
class Settings:
    gemini_api_key: Optional[str] = None
    analysis_model: str = DEFAULT_ANALYSIS_MODEL
    audit_model: str = DEFAULT_AUDIT_MODEL
    snippet_rows: int = 20
    quarter_width: float = 160.0
    top_plants: int = 10
    top_issues: int = 12


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw)
    except (TypeError, ValueError):
        logger.warning("ignoring invalid %s=%r, using %s", name, raw, default)
        return default
    return value if value > 0 else default


def load_settings() -> Settings:
    # Variables already set in the environment win over .env entries.
    load_dotenv(find_dotenv(usecwd=True))
    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
        analysis_model=os.getenv("ACM_ANALYSIS_MODEL") or DEFAULT_ANALYSIS_MODEL,
        audit_model=os.getenv("ACM_AUDIT_MODEL") or DEFAULT_AUDIT_MODEL,
        snippet_rows=_env_number("ACM_SNIPPET_ROWS", 20, int),
        quarter_width=_env_number("ACM_QUARTER_WIDTH", 160.0, float),
        top_plants=_env_number("ACM_TOP_PLANTS", 10, int),
        top_issues=_env_number("ACM_TOP_ISSUES", 12, int),
    )
