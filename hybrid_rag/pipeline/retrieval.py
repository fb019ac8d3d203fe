"""
Retrieval stage: query embedding + ANN search.

Returns raw hits in the index's native order.  The similarity threshold
is applied by the caller (see fusion.py) so the policy stays visible at
the orchestration layer.
"""

from __future__ import annotations

from hybrid_rag.core.errors import ServiceNotReady
from hybrid_rag.schemas.retrieval import VectorHit
from hybrid_rag.services.embedding import EmbeddingService
from hybrid_rag.services.vector_store import ChromaVectorIndex
from hybrid_rag.utils.logging import get_logger

logger = get_logger("hybridrag.pipeline.retrieval")


class VectorSearchClient:
    """Embeds a query and asks one vector collection for its nearest neighbours."""

    def __init__(self, embedder: EmbeddingService | None, index: ChromaVectorIndex | None):
        self.embedder = embedder
        self.index = index

    async def search(self, semantic_query: str, overfetch_limit: int) -> list[VectorHit]:
        """
        ``overfetch_limit`` deliberately exceeds the final result count:
        relational filtering downstream may discard some of the ids.
        """
        if self.embedder is None or not self.embedder.is_ready:
            raise ServiceNotReady("EmbeddingService", "Model not initialized")
        if self.index is None:
            raise ServiceNotReady("VectorIndex")

        vector = await self.embedder.aembed(semantic_query)
        hits = await self.index.aquery(vector, overfetch_limit)

        logger.info(
            "[RETRIEVAL] %s: %d hit(s) for %r (limit=%d)",
            self.index.collection_name, len(hits), semantic_query, overfetch_limit,
        )
        return hits
