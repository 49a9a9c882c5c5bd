"""Core (UI-agnostic) BI dashboard logic.

This package contains:
- configuration and the REST backend client
- dataset loading (JSON records -> pandas) with sample-data fallback
- filter normalization
- the generic group/sum/ratio aggregation helpers
- per-view compute functions (JSON-serializable payloads)
"""
