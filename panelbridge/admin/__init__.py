"""HTTP API (FastAPI): auth, panel operations, settings."""
