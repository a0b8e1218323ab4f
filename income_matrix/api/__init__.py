"""Income HTTP API (FastAPI)."""

from income_matrix.api.app import API_PREFIX, create_app

__all__ = [
    "API_PREFIX",
    "create_app",
]
