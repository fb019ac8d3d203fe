"""
Result fusion: vector hits ⋈ relational rows.

Two-stage filter.  The ANN stage handles "semantic" constraints, the
relational stage handles "hard" constraints; neither needs to know the
other's predicate language.  The output always follows the hit order
(cosine similarity, higher = better), restricted to the ids the
relational filters kept, and is capped.

All helpers here except ``ResultFusion.fuse`` are pure.
"""

from __future__ import annotations

from typing import Any

from hybrid_rag.schemas.retrieval import FusedResult, VectorHit
from hybrid_rag.services.relational_store import RelationalStore
from hybrid_rag.utils.logging import get_logger

logger = get_logger("hybridrag.pipeline.fusion")

DEFAULT_SIMILARITY_THRESHOLD = 0.25


def apply_threshold(
    hits: list[VectorHit],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> list[VectorHit]:
    """Keep hits with ``score >= threshold`` in their original order."""
    return [h for h in hits if h.score >= threshold]


def order_by_hits(
    hits: list[VectorHit],
    records: list[dict[str, Any]],
    result_cap: int,
) -> list[FusedResult]:
    """
    Re-order ``records`` to match ``hits`` and truncate.

    Records without a matching hit and hits without a record are dropped.
    Equal scores keep the index's return order.
    """
    by_id = {r["id"]: r for r in records}
    fused: list[FusedResult] = []
    seen: set[int] = set()
    for hit in hits:
        if hit.id in seen:
            continue
        record = by_id.get(hit.id)
        if record is None:
            continue
        seen.add(hit.id)
        fused.append(FusedResult(record=record, score=hit.score))
        if len(fused) >= result_cap:
            break
    return fused


class ResultFusion:
    """Threshold → relational filter → relevance re-order → cap."""

    def __init__(
        self,
        store: RelationalStore,
        threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    ):
        self.store = store
        self.threshold = threshold

    async def fuse(
        self,
        hits: list[VectorHit],
        filters: list[str],
        result_cap: int,
    ) -> list[FusedResult]:
        surviving = apply_threshold(hits, self.threshold)
        logger.info(
            "[FUSION] %d hit(s) total, %d above threshold (>=%.2f)",
            len(hits), len(surviving), self.threshold,
        )

        if not surviving or result_cap <= 0:
            return []

        ids = [h.id for h in surviving]
        records = await self.store.fetch(ids, filters)
        fused = order_by_hits(surviving, records, result_cap)

        logger.info("[FUSION] Final results: %d (cap=%d)", len(fused), result_cap)
        return fused
