"""
Thin API route for recipe hybrid search.

    POST /search  {"query": "quick high calorie snack"}
    → {"results": [...], "queryInfo": {"semantic", "filters", "sqlQuery", "engine"}}
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends

from hybrid_rag.api.deps import error_response, get_query_engine
from hybrid_rag.core.config import settings
from hybrid_rag.core.errors import QueryValidationError, ServiceNotReady
from hybrid_rag.pipeline.orchestrator import QueryEngine
from hybrid_rag.schemas.response import SearchRequest, SearchResponse
from hybrid_rag.utils.logging import get_logger

logger = get_logger("hybridrag.api.search")

router = APIRouter(tags=["Search"])


@router.post("/search", response_model=SearchResponse)
async def hybrid_search(
    request: SearchRequest,
    engine: QueryEngine | None = Depends(get_query_engine),
):
    """Vector similarity over recipe descriptions, filtered by structured intent."""
    if engine is None:
        return error_response(503, "Model not initialized")

    try:
        return await asyncio.wait_for(
            engine.search_recipes(request.query),
            timeout=settings.request_timeout_seconds,
        )

    except QueryValidationError:
        return error_response(400, "Query is required")

    except ServiceNotReady as e:
        logger.warning("[/search] %s", e)
        return error_response(503, str(e))

    except asyncio.TimeoutError:
        logger.error("[/search] Timed out | query=%r", request.query)
        return error_response(504, "Request timed out.")

    except Exception as e:
        logger.error("[/search] Error | query=%r | %s", request.query, e, exc_info=True)
        return error_response(500, "Hybrid search failed", detail=str(e))
