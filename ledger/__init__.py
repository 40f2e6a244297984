"""Core (UI-agnostic) ledger logic.

This package contains:
- workbook reading (XLSX/CSV -> header-keyed records) and export
- column-mapping inference and row normalization
- cascading facet filters
- dashboard aggregation, ledger grouping and timeline layout (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
- AI analysis/audit collaborators
"""
