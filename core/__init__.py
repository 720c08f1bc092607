"""Core (UI-agnostic) dashboard logic.

This package contains:
- data loading (CSV -> pandas) and cost coercion
- the supervisor filter
- aggregation and the overview payload (JSON-serializable)
- the per-session record store
- chart helpers (Altair -> Vega-Lite spec dict)
"""
