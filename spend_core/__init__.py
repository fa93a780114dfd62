"""Core (UI-agnostic) spend dashboard logic.

This package contains:
- payload normalization (JSON rows / delimited text -> pandas)
- filter normalization, filtering and facet options
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
