"""
Pydantic schemas for every pipeline boundary.
Each module covers one pipeline stage or the external API.
"""

from hybrid_rag.schemas.intent import Intent
from hybrid_rag.schemas.retrieval import VectorHit, FusedResult
from hybrid_rag.schemas.response import (
    QueryRequest,
    QueryResponse,
    SourceChunk,
    SearchRequest,
    SearchResponse,
    QueryInfo,
    ErrorResponse,
)

__all__ = [
    # Intent
    "Intent",
    # Retrieval
    "VectorHit",
    "FusedResult",
    # API
    "QueryRequest",
    "QueryResponse",
    "SourceChunk",
    "SearchRequest",
    "SearchResponse",
    "QueryInfo",
    "ErrorResponse",
]
