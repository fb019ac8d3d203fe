import pytest

from hybrid_rag.utils.timing import Timer, timed


def test_timer_sync():
    with Timer("block") as t:
        sum(range(1000))
    assert t.elapsed_ms >= 0.0


@pytest.mark.asyncio
async def test_timed_preserves_async_result():
    @timed("double")
    async def double(x):
        return x * 2

    assert await double(21) == 42
    assert double.__name__ == "double"


def test_timed_propagates_errors():
    @timed()
    def boom():
        raise KeyError("missing")

    with pytest.raises(KeyError):
        boom()
