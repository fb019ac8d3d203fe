"""
Pipeline orchestrator: the query engine.

Two flows share the same building blocks:

  recipe search:  intent → vector search → fusion → rows
  document QA:    vector search → threshold → context → answer

Stages run strictly in sequence (each consumes the previous output).
Every service handle is injected, so tests can substitute fakes.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from hybrid_rag.core.config import Settings
from hybrid_rag.core.errors import QueryValidationError
from hybrid_rag.pipeline.context_builder import ContextBuilder
from hybrid_rag.pipeline.fusion import ResultFusion, apply_threshold
from hybrid_rag.pipeline.intent import IntentExtractor
from hybrid_rag.pipeline.predicates import build_sql_preview
from hybrid_rag.pipeline.response_generator import AnswerGenerator, NOT_FOUND_ANSWER
from hybrid_rag.pipeline.retrieval import VectorSearchClient
from hybrid_rag.schemas.response import (
    QueryInfo,
    QueryResponse,
    SearchResponse,
    SourceChunk,
)
from hybrid_rag.utils.logging import get_logger
from hybrid_rag.utils.timing import Timer

logger = get_logger("hybridrag.pipeline.orchestrator")


def validate_query(query: Any) -> str:
    """Return the trimmed query or raise QueryValidationError."""
    if not isinstance(query, str) or not query.strip():
        raise QueryValidationError('Field "query" is required and must be a non-empty string.')
    return query.strip()


@asynccontextmanager
async def _stage(name: str, query: str) -> AsyncIterator[Timer]:
    """Time a stage and log any failure with its name and the query."""
    async with Timer(name) as t:
        try:
            yield t
        except Exception as e:
            logger.error("[PIPELINE] Stage %s failed | query=%r | %s", name, query, e)
            raise
    logger.info("[PIPELINE] %s done (%.1fms)", name, t.elapsed_ms)


class QueryEngine:
    def __init__(
        self,
        *,
        extractor: IntentExtractor,
        recipe_search: VectorSearchClient,
        recipe_fusion: ResultFusion,
        chunk_search: VectorSearchClient,
        context_builder: ContextBuilder,
        generator: AnswerGenerator,
        similarity_threshold: float = 0.25,
        overfetch_limit: int = 20,
        result_cap: int = 6,
        document_top_k: int = 5,
        engine_label: str = "",
    ):
        self.extractor = extractor
        self.recipe_search = recipe_search
        self.recipe_fusion = recipe_fusion
        self.chunk_search = chunk_search
        self.context_builder = context_builder
        self.generator = generator
        self.similarity_threshold = similarity_threshold
        self.overfetch_limit = overfetch_limit
        self.result_cap = result_cap
        self.document_top_k = document_top_k
        self.engine_label = engine_label

    @classmethod
    def from_settings(
        cls,
        cfg: Settings,
        *,
        recipe_search: VectorSearchClient,
        recipe_fusion: ResultFusion,
        chunk_search: VectorSearchClient,
        generator: AnswerGenerator,
    ) -> "QueryEngine":
        return cls(
            extractor=IntentExtractor(),
            recipe_search=recipe_search,
            recipe_fusion=recipe_fusion,
            chunk_search=chunk_search,
            context_builder=ContextBuilder(cfg.context_max_chars),
            generator=generator,
            similarity_threshold=cfg.similarity_threshold,
            overfetch_limit=cfg.search_overfetch_limit,
            result_cap=cfg.search_result_cap,
            document_top_k=cfg.document_top_k,
            engine_label=cfg.search_engine_label,
        )

    # ── Recipe hybrid search ────────────────────────────────────────
    async def search_recipes(self, query: Any) -> SearchResponse:
        q = validate_query(query)

        async with _stage("intent", q):
            intent = self.extractor.extract(q)

        logger.info("[SEARCH] original   : %r", q)
        logger.info("[SEARCH] → vector   : %r", intent.semantic_query)
        logger.info("[SEARCH] → relational: %s", build_sql_preview(intent.filters))
        logger.info("[SEARCH] matched kw : %s", intent.matched_keywords)

        async with _stage("vector_search", q):
            hits = await self.recipe_search.search(intent.semantic_query, self.overfetch_limit)

        async with _stage("fusion", q):
            fused = await self.recipe_fusion.fuse(hits, intent.filters, self.result_cap)

        return SearchResponse(
            results=[f.as_row() for f in fused],
            queryInfo=QueryInfo(
                semantic=intent.semantic_query,
                filters=intent.filters,
                sqlQuery=build_sql_preview(intent.filters),
                engine=self.engine_label,
            ),
        )

    # ── Document question answering ─────────────────────────────────
    async def answer_question(self, query: Any) -> QueryResponse:
        q = validate_query(query)

        async with _stage("chunk_retrieval", q):
            hits = await self.chunk_search.search(q, self.document_top_k)
            relevant = apply_threshold(hits, self.similarity_threshold)

        if not relevant:
            logger.info("[QUERY] No chunk above threshold for %r", q)
            return QueryResponse(answer=NOT_FOUND_ANSWER, sources=[])

        async with _stage("context", q):
            context = self.context_builder.build([h.payload.get("text", "") for h in relevant])

        async with _stage("generation", q):
            answer = await self.generator.generate(q, context)

        return QueryResponse(
            answer=answer,
            sources=[
                SourceChunk(
                    document_id=h.payload.get("document_id"),
                    text=h.payload.get("text", ""),
                    score=h.score,
                )
                for h in relevant
            ],
        )
