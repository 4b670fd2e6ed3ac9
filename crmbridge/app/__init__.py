"""HTTP hosting surface (FastAPI)."""
