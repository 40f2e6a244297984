from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from ledger.errors import InvalidMappingError
from ledger.schema import CANONICAL_FIELDS

logger = logging.getLogger(__name__)

ColumnMapping = Dict[str, Optional[str]]

SYNONYMS: Dict[str, List[str]] = {
    "Plant Name": ["plant name", "plant"],
    "Chronic Issue": ["chronic issue", "issue"],
    "Failures Description": ["failures description", "failure description", "description"],
    "Duration Loss": ["duration loss (hour per year)", "duration loss", "hour per year"],
    "Frequency": ["frequency (per year)", "frequency", "per year"],
    "Class": ["class", "type"],
    "Action Plan": ["action plan", "action"],
    "Category": ["category", "cat"],
    "Progress": ["progress", "status"],
    "Completion": ["completion", "percent complete"],
    "Start Time": ["start", "start time"],
    "End Time": ["end", "end time"],
}


def _key(text: object) -> str:
    return str(text).strip().lower()


def match_header(field: str, headers: Sequence[str]) -> Optional[str]:
    """Resolve one canonical field: exact name, then exact synonym, then synonym substring."""
    wanted = field.lower()
    for h in headers:
        if _key(h) == wanted:
            return h
    synonyms = SYNONYMS.get(field, [])
    for h in headers:
        if any(_key(h) == s for s in synonyms):
            return h
    for h in headers:
        if any(s in _key(h) for s in synonyms):
            return h
    return None


def infer_mapping(headers: Iterable[object]) -> ColumnMapping:
    header_list = [str(h) for h in headers]
    mapping: ColumnMapping = {field: match_header(field, header_list) for field in CANONICAL_FIELDS}
    report = mapping_report(mapping)
    logger.info("inferred mapping: %d mapped, unmapped=%s", len(report["mapped"]), report["unmapped"])
    return mapping


def apply_overrides(
    mapping: Mapping[str, Optional[str]],
    overrides: Mapping[str, Optional[str]],
    headers: Sequence[str],
) -> ColumnMapping:
    """Return a new mapping with user corrections applied; blank values unmap a field."""
    out: ColumnMapping = {field: mapping.get(field) for field in CANONICAL_FIELDS}
    known = set(headers)
    for field, header in overrides.items():
        if field not in out:
            raise InvalidMappingError(f"unknown canonical field: {field!r}")
        if header is None or not str(header).strip():
            out[field] = None
            continue
        if header not in known:
            raise InvalidMappingError(f"{field!r} mapped to unknown source column {header!r}")
        out[field] = header
    return out


def mapping_report(mapping: Mapping[str, Optional[str]]) -> Dict[str, List[str]]:
    return {
        "mapped": [f for f in CANONICAL_FIELDS if mapping.get(f)],
        "unmapped": [f for f in CANONICAL_FIELDS if not mapping.get(f)],
    }
