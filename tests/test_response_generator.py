import pytest

from conftest import FakeProvider
from hybrid_rag.core.errors import ProviderRateLimited
from hybrid_rag.pipeline.response_generator import (
    NOT_FOUND_ANSWER,
    PLACEHOLDER_HEADER,
    AnswerGenerator,
    build_prompt,
)


def test_prompt_binds_answer_to_context():
    prompt = build_prompt("Who owns the roadmap?", "Alice owns the roadmap.")
    assert "Answer ONLY using the context below" in prompt
    assert "Context:\nAlice owns the roadmap." in prompt
    assert "Question:\nWho owns the roadmap?" in prompt
    assert prompt.endswith(f"say '{NOT_FOUND_ANSWER}'")


@pytest.mark.asyncio
async def test_placeholder_without_provider():
    generator = AnswerGenerator(None)
    answer = await generator.generate("q", "chunk one\n\nchunk two")
    assert answer.startswith(PLACEHOLDER_HEADER)
    assert answer.endswith("Retrieved context:\nchunk one\n\nchunk two")
    assert generator.provider_name == "placeholder"


@pytest.mark.asyncio
async def test_provider_receives_prompt():
    provider = FakeProvider(answer="Alice.")
    generator = AnswerGenerator(provider)

    assert await generator.generate("Who?", "Alice owns it.") == "Alice."
    assert provider.prompts == [build_prompt("Who?", "Alice owns it.")]


@pytest.mark.asyncio
async def test_provider_errors_propagate():
    provider = FakeProvider(error=ProviderRateLimited("Fake", "slow down", attempts=3))
    with pytest.raises(ProviderRateLimited):
        await AnswerGenerator(provider).generate("q", "ctx")


@pytest.mark.asyncio
async def test_aclose_closes_provider():
    provider = FakeProvider()
    await AnswerGenerator(provider).aclose()
    assert provider.closed
