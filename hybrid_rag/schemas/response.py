"""
External API schemas for /query and /search.

Request models accept a missing or non-string ``query`` so the routes
can answer with the documented 400 body instead of a 422.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


# ── /query (document QA) ────────────────────────────────────────────
class QueryRequest(BaseModel):
    query: Any = None


class SourceChunk(BaseModel):
    document_id: int | None = None
    text: str
    score: float


class QueryResponse(BaseModel):
    answer: str
    sources: list[SourceChunk] = Field(default_factory=list)


# ── /search (recipe hybrid search) ──────────────────────────────────
class SearchRequest(BaseModel):
    query: Any = None


class QueryInfo(BaseModel):
    """Diagnostics shown next to the results in the UI."""
    semantic: str
    filters: list[str] = Field(default_factory=list)
    sqlQuery: str = "None"
    engine: str = ""


class SearchResponse(BaseModel):
    results: list[dict[str, Any]] = Field(default_factory=list)
    queryInfo: QueryInfo


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None
