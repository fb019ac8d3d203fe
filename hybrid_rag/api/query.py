"""
Thin API route for the document-QA endpoint.

No business logic: validates the request, calls the query engine,
and maps the error taxonomy to HTTP statuses.

    POST /query  {"query": "What did we discuss about Milvus?"}
    → {"answer": "...", "sources": [{"document_id": 1, "text": "...", "score": 0.91}]}
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends

from hybrid_rag.api.deps import error_response, get_query_engine
from hybrid_rag.core.config import settings
from hybrid_rag.core.errors import QueryValidationError, ServiceNotReady
from hybrid_rag.pipeline.orchestrator import QueryEngine
from hybrid_rag.schemas.response import QueryRequest, QueryResponse
from hybrid_rag.utils.logging import get_logger

logger = get_logger("hybridrag.api.query")

router = APIRouter(tags=["Query"])


@router.post("/query", response_model=QueryResponse)
async def query_documents(
    request: QueryRequest,
    engine: QueryEngine | None = Depends(get_query_engine),
):
    """Answer a question from the ingested documents."""
    if engine is None:
        return error_response(503, "Query engine not initialized.")

    try:
        return await asyncio.wait_for(
            engine.answer_question(request.query),
            timeout=settings.request_timeout_seconds,
        )

    except QueryValidationError as e:
        return error_response(400, str(e))

    except ServiceNotReady as e:
        logger.warning("[/query] %s", e)
        return error_response(503, str(e))

    except asyncio.TimeoutError:
        logger.error("[/query] Timed out after %.0fs | query=%r", settings.request_timeout_seconds, request.query)
        return error_response(504, "Request timed out.")

    except Exception as e:
        logger.error("[/query] Error | query=%r | %s", request.query, e, exc_info=True)
        return error_response(500, "Internal server error.", details=str(e))
