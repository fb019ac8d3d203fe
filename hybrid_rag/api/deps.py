"""
Shared FastAPI dependencies and error bodies.
"""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from hybrid_rag.pipeline.orchestrator import QueryEngine


def get_query_engine(request: Request) -> QueryEngine | None:
    """The engine built at start-up, or None while the app is still starting."""
    return getattr(request.app.state, "query_engine", None)


def error_response(status_code: int, error: str, **extra: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, **extra})
