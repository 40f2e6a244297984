from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Dict, Iterable, List, Optional, Sequence

from ledger.schema import FACET_FIELDS, CanonicalRow

FACETS = tuple(FACET_FIELDS)

# Facet key -> FilterSelection attribute.
_SELECTION_ATTRS = {"plant": "plant", "issue": "issue", "class": "class_name", "category": "category"}


@dataclass(frozen=True)
class FilterSelection:
    plant: str = ""
    issue: str = ""
    class_name: str = ""
    category: str = ""

    def value(self, facet: str) -> str:
        return getattr(self, _SELECTION_ATTRS[facet])

    def with_facet(self, facet: str, value: Optional[str]) -> "FilterSelection":
        return replace(self, **{_SELECTION_ATTRS[facet]: (value or "")})

    def cleared(self, facet: Optional[str] = None) -> "FilterSelection":
        if facet is None:
            return FilterSelection()
        return self.with_facet(facet, "")

    def is_active(self) -> bool:
        return any(self.value(f) for f in FACETS)

    def as_dict(self) -> Dict[str, str]:
        return {f: self.value(f) for f in FACETS}


def normalize_selection(raw: Optional[dict]) -> FilterSelection:
    """Build a selection from request-style dicts; accepts ``class`` or ``class_name``."""
    raw = raw or {}

    def pick(*keys: str) -> str:
        for key in keys:
            value = raw.get(key)
            if value is not None:
                return str(value).strip()
        return ""

    return FilterSelection(
        plant=pick("plant"),
        issue=pick("issue"),
        class_name=pick("class", "class_name"),
        category=pick("category"),
    )


def _facet_value(row: CanonicalRow, facet: str) -> str:
    return str(row.get(FACET_FIELDS[facet]))


def _matches(row: CanonicalRow, selection: FilterSelection, skip: Optional[str] = None) -> bool:
    for facet in FACETS:
        wanted = selection.value(facet)
        if facet == skip or not wanted:
            continue
        if _facet_value(row, facet) != wanted:
            return False
    return True


def filtered_rows(selection: FilterSelection, rows: Iterable[CanonicalRow]) -> List[CanonicalRow]:
    """Rows satisfying every active facet (exact string equality), in input order."""
    return [r for r in rows if _matches(r, selection)]


def options_for(facet: str, selection: FilterSelection, rows: Iterable[CanonicalRow]) -> List[str]:
    """Distinct non-empty values of ``facet`` among rows matching every *other* active facet."""
    values = {_facet_value(r, facet) for r in rows if _matches(r, selection, skip=facet)}
    return sorted(v for v in values if v)


def facet_options(selection: FilterSelection, rows: Sequence[CanonicalRow]) -> Dict[str, List[str]]:
    return {facet: options_for(facet, selection, rows) for facet in FACETS}


def ledger_order(rows: Iterable[CanonicalRow]) -> List[CanonicalRow]:
    """Stable (Plant, Chronic Issue) ordering used for the grouped ledger display."""
    return sorted(rows, key=lambda r: (r.plant_name, r.chronic_issue))


def selection_summary(selection: FilterSelection) -> Dict[str, str]:
    return {k: (v or "All") for k, v in asdict(selection).items()}


def selection_from_state(state: Dict[str, Optional[str]], key_prefix: str = "facet_", blank: str = "") -> FilterSelection:
    """Rebuild the full selection from widget state; ``blank`` marks an unset facet."""
    selection = FilterSelection()
    for facet in FACETS:
        value = state.get(f"{key_prefix}{facet}")
        selection = selection.with_facet(facet, "" if value in (None, blank) else value)
    return selection


def cascade_choices(selection: FilterSelection, rows: Sequence[CanonicalRow]) -> Dict[str, List[str]]:
    """Options for every facet under the whole selection.

    A chosen value that other facets have since excluded stays listed so it can be cleared.
    """
    options = facet_options(selection, rows)
    for facet, values in options.items():
        current = selection.value(facet)
        if current and current not in values:
            values.insert(0, current)
    return options
