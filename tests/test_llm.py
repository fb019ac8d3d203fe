"""
Tests for answer-generation providers.

HTTP is served by httpx.MockTransport; the Gemini backoff uses an
injected sleep so no test actually waits.
"""

import httpx
import pytest

from hybrid_rag.core.config import Settings
from hybrid_rag.core.errors import ProviderHardError, ProviderRateLimited
from hybrid_rag.services.llm import (
    GeminiProvider,
    GroqProvider,
    OpenAIProvider,
    build_provider,
    parse_retry_after,
)


def gemini_ok(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def gemini_error(message: str) -> dict:
    return {"error": {"code": 429, "message": message, "status": "RESOURCE_EXHAUSTED"}}


def chat_completion(text: str) -> dict:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 0,
        "model": "llama-3.3-70b-versatile",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": text},
                "finish_reason": "stop",
            }
        ],
    }


class Recorder:
    """Serves canned responses in order and records each request."""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


class FakeSleep:
    def __init__(self):
        self.waits: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)


class TestParseRetryAfter:
    def test_rounds_up(self):
        assert parse_retry_after("Quota exceeded. Please retry in 12.3s.", 20.0) == 13.0

    def test_whole_seconds(self):
        assert parse_retry_after("Retry in 5s", 20.0) == 5.0

    def test_default_when_absent(self):
        assert parse_retry_after("Resource has been exhausted", 20.0) == 20.0
        assert parse_retry_after("", 7.0) == 7.0


class TestGeminiProvider:
    def make(self, recorder: Recorder, sleep: FakeSleep, **kwargs) -> GeminiProvider:
        return GeminiProvider(
            api_key="test-key",
            http_client=recorder.client(),
            sleep=sleep,
            **kwargs,
        )

    @pytest.mark.asyncio
    async def test_success(self):
        recorder = Recorder(httpx.Response(200, json=gemini_ok("  Milvus was chosen.  ")))
        provider = self.make(recorder, FakeSleep())

        answer = await provider.complete("prompt")

        assert answer == "Milvus was chosen."
        request = recorder.requests[0]
        assert request.url.path.endswith("/models/gemini-2.0-flash:generateContent")
        assert request.url.params["key"] == "test-key"

    @pytest.mark.asyncio
    async def test_rate_limit_exhausts_after_three_attempts(self):
        recorder = Recorder(*[
            httpx.Response(429, json=gemini_error("Please retry in 1.5s."))
            for _ in range(3)
        ])
        sleep = FakeSleep()
        provider = self.make(recorder, sleep, max_attempts=3)

        with pytest.raises(ProviderRateLimited) as exc_info:
            await provider.complete("prompt")

        assert len(recorder.requests) == 3
        assert sleep.waits == [2.0, 2.0]
        assert exc_info.value.attempts == 3
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_rate_limit_then_success_uses_default_wait(self):
        recorder = Recorder(
            httpx.Response(429, json=gemini_error("Resource has been exhausted")),
            httpx.Response(200, json=gemini_ok("ok")),
        )
        sleep = FakeSleep()
        provider = self.make(recorder, sleep, default_wait_seconds=20.0)

        assert await provider.complete("prompt") == "ok"
        assert sleep.waits == [20.0]

    @pytest.mark.asyncio
    async def test_hard_error_is_not_retried(self):
        recorder = Recorder(httpx.Response(500, json={"error": {"message": "backend exploded"}}))
        sleep = FakeSleep()
        provider = self.make(recorder, sleep)

        with pytest.raises(ProviderHardError) as exc_info:
            await provider.complete("prompt")

        assert exc_info.value.status_code == 500
        assert "backend exploded" in str(exc_info.value)
        assert len(recorder.requests) == 1
        assert sleep.waits == []

    @pytest.mark.asyncio
    async def test_malformed_body(self):
        recorder = Recorder(httpx.Response(200, json={"candidates": []}))
        with pytest.raises(ProviderHardError):
            await self.make(recorder, FakeSleep()).complete("prompt")


class TestOpenAICompatibleProviders:
    def make(self, recorder: Recorder) -> GroqProvider:
        return GroqProvider(
            api_key="test-key",
            model="llama-3.3-70b-versatile",
            base_url="https://api.groq.com/openai/v1",
            http_client=recorder.client(),
        )

    @pytest.mark.asyncio
    async def test_success(self):
        recorder = Recorder(httpx.Response(200, json=chat_completion(" Use Milvus. ")))
        provider = self.make(recorder)

        assert await provider.complete("prompt") == "Use Milvus."
        assert recorder.requests[0].url.path.endswith("/chat/completions")
        await provider.aclose()

    @pytest.mark.asyncio
    async def test_rate_limit_not_retried(self):
        recorder = Recorder(httpx.Response(429, json={"error": {"message": "Rate limit reached"}}))
        provider = self.make(recorder)

        with pytest.raises(ProviderRateLimited):
            await provider.complete("prompt")
        assert len(recorder.requests) == 1
        await provider.aclose()

    @pytest.mark.asyncio
    async def test_hard_error(self):
        recorder = Recorder(httpx.Response(401, json={"error": {"message": "Invalid API key"}}))
        provider = self.make(recorder)

        with pytest.raises(ProviderHardError) as exc_info:
            await provider.complete("prompt")
        assert exc_info.value.status_code == 401
        assert exc_info.value.provider == "Groq"
        await provider.aclose()


class TestBuildProvider:
    def settings(self, **keys) -> Settings:
        values = {"groq_api_key": None, "gemini_api_key": None, "openai_api_key": None}
        values.update(keys)
        return Settings(_env_file=None, **values)

    def test_groq_has_priority(self):
        provider = build_provider(self.settings(groq_api_key="g", gemini_api_key="m", openai_api_key="o"))
        assert isinstance(provider, GroqProvider)
        assert provider.model == "llama-3.3-70b-versatile"

    def test_gemini_before_openai(self):
        provider = build_provider(self.settings(gemini_api_key="m", openai_api_key="o"))
        assert isinstance(provider, GeminiProvider)
        assert provider.max_attempts == 3

    def test_openai_last(self):
        provider = build_provider(self.settings(openai_api_key="o"))
        assert isinstance(provider, OpenAIProvider)
        assert provider.model == "gpt-3.5-turbo"

    def test_none_configured(self):
        assert build_provider(self.settings()) is None
