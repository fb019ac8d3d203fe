"""
Tests for result fusion: threshold, relational filter, re-order and cap.
"""

import pytest

from conftest import FakeStore, hit, recipe
from hybrid_rag.pipeline.fusion import ResultFusion, apply_threshold, order_by_hits


def test_apply_threshold_is_inclusive():
    hits = [hit(1, 0.9), hit(2, 0.25), hit(3, 0.2499)]
    assert [h.id for h in apply_threshold(hits, 0.25)] == [1, 2]


def test_order_by_hits_follows_hit_order():
    hits = [hit(3, 0.9), hit(1, 0.8), hit(2, 0.7)]
    records = [recipe(1), recipe(2), recipe(3)]
    fused = order_by_hits(hits, records, result_cap=6)
    assert [f.record["id"] for f in fused] == [3, 1, 2]
    assert [f.score for f in fused] == [0.9, 0.8, 0.7]


def test_order_by_hits_drops_unmatched_and_duplicates():
    hits = [hit(1, 0.9), hit(1, 0.9), hit(5, 0.8), hit(2, 0.7)]
    records = [recipe(2), recipe(1), recipe(99)]
    fused = order_by_hits(hits, records, result_cap=6)
    assert [f.record["id"] for f in fused] == [1, 2]


def test_as_row_flattens_score():
    fused = order_by_hits([hit(1, 0.75)], [recipe(1, "Miso Soup")], result_cap=1)
    row = fused[0].as_row()
    assert row["title"] == "Miso Soup"
    assert row["score"] == 0.75


class TestResultFusion:
    @pytest.mark.asyncio
    async def test_store_receives_only_surviving_ids_and_filters(self):
        store = FakeStore([recipe(1), recipe(2), recipe(3)])
        fusion = ResultFusion(store, threshold=0.25)
        hits = [hit(1, 0.9), hit(2, 0.3), hit(3, 0.1)]

        await fusion.fuse(hits, ["calories > 500"], result_cap=6)

        assert store.calls == [([1, 2], ["calories > 500"])]

    @pytest.mark.asyncio
    async def test_records_reordered_by_similarity(self):
        # Store returns rows in primary-key order, not relevance order
        store = FakeStore([recipe(1), recipe(2), recipe(3)])
        fusion = ResultFusion(store)
        hits = [hit(2, 0.9), hit(3, 0.8), hit(1, 0.7)]

        fused = await fusion.fuse(hits, [], result_cap=6)

        assert [f.record["id"] for f in fused] == [2, 3, 1]

    @pytest.mark.asyncio
    async def test_cap_applied_after_reorder(self):
        store = FakeStore([recipe(i) for i in range(1, 11)])
        fusion = ResultFusion(store)
        hits = [hit(i, 0.5 + i / 100) for i in range(10, 0, -1)]

        fused = await fusion.fuse(hits, [], result_cap=6)

        assert len(fused) == 6
        assert [f.record["id"] for f in fused] == [10, 9, 8, 7, 6, 5]

    @pytest.mark.asyncio
    async def test_nothing_above_threshold_skips_store(self):
        store = FakeStore([recipe(1)])
        fusion = ResultFusion(store, threshold=0.5)

        fused = await fusion.fuse([hit(1, 0.4)], ["calories > 500"], result_cap=6)

        assert fused == []
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_no_hits_skips_store(self):
        store = FakeStore()
        assert await ResultFusion(store).fuse([], [], result_cap=6) == []
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_filters_remove_everything(self):
        store = FakeStore([])
        fused = await ResultFusion(store).fuse([hit(1, 0.9)], ["calories > 5000"], result_cap=6)
        assert fused == []
        assert len(store.calls) == 1

    @pytest.mark.asyncio
    async def test_store_errors_propagate(self):
        store = FakeStore(error=RuntimeError("connection lost"))
        with pytest.raises(RuntimeError, match="connection lost"):
            await ResultFusion(store).fuse([hit(1, 0.9)], [], result_cap=6)
