"""Core (UI-agnostic) candidate dashboard logic.

This package contains:
- field normalization (locations, skills, simple categorical fields)
- facet aggregation and the per-dataset facet catalog
- the filter engine and the filtered aggregate view
- data loading (XLSX -> pandas)
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
- the chat context serializer and Gemini query client
"""
