"""HTTP (FastAPI) surface over the core compute functions."""
