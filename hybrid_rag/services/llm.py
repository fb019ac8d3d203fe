"""
Answer-generation providers.

Priority (decided once, from configured credentials):
  1. Groq    (GROQ_API_KEY)    OpenAI-compatible API, fast free tier
  2. Gemini  (GEMINI_API_KEY)  REST, with 429 rate-limit backoff
  3. OpenAI  (OPENAI_API_KEY)
  4. none    → the caller falls back to a deterministic placeholder

There is no runtime failover: an error from the selected provider
propagates to the caller.  SDK-level automatic retries are disabled so
the only retry policy is the explicit Gemini backoff below.
"""

from __future__ import annotations

import asyncio
import math
import re
from typing import Any, Awaitable, Callable

import httpx
import openai
from openai import AsyncOpenAI

from hybrid_rag.core.config import Settings
from hybrid_rag.core.errors import ProviderHardError, ProviderRateLimited
from hybrid_rag.utils.logging import get_logger

logger = get_logger("hybridrag.services.llm")

_RETRY_IN_RE = re.compile(r"retry\s+in\s+([\d.]+)\s*s", re.IGNORECASE)


def parse_retry_after(message: str, default: float) -> float:
    """
    Extract the server-suggested wait from a rate-limit message.

    "Please retry in 12.3s." → 13 (rounded up); no match → ``default``.
    """
    m = _RETRY_IN_RE.search(message or "")
    if not m:
        return default
    try:
        return float(math.ceil(float(m.group(1))))
    except ValueError:
        return default


class LLMProvider:
    """One chat-completion backend: a single prompt in, a single answer out."""

    name: str = "provider"
    model: str = ""

    async def complete(self, prompt: str) -> str:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


# ── OpenAI-compatible providers (Groq, OpenAI) ───────────────────────
class OpenAICompatibleProvider(LLMProvider):
    """Chat completions through the async OpenAI SDK."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str | None = None,
        max_tokens: int = 512,
        temperature: float = 0.2,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
            http_client=http_client,
        )

    async def complete(self, prompt: str) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except openai.RateLimitError as e:
            logger.warning("[%s] Rate limited: %s", self.name, e.message)
            raise ProviderRateLimited(self.name, e.message) from e
        except openai.APIStatusError as e:
            logger.error("[%s] API error %s: %s", self.name, e.status_code, e.message)
            raise ProviderHardError(self.name, e.message, status_code=e.status_code) from e
        except openai.APIError as e:
            logger.error("[%s] Request failed: %s", self.name, e)
            raise ProviderHardError(self.name, str(e)) from e

        if not response.choices or not response.choices[0].message.content:
            raise ProviderHardError(self.name, "response contained no completion")
        return response.choices[0].message.content.strip()

    async def aclose(self) -> None:
        await self._client.close()


class GroqProvider(OpenAICompatibleProvider):
    name = "Groq"


class OpenAIProvider(OpenAICompatibleProvider):
    name = "OpenAI"


# ── Gemini (REST + rate-limit backoff) ──────────────────────────────
class GeminiProvider(LLMProvider):
    """
    Gemini ``generateContent`` over httpx.

    On HTTP 429 waits for the server-suggested duration ("retry in N s")
    or ``default_wait_seconds`` and tries again, up to ``max_attempts``
    calls in total.  The wait is an ``asyncio.sleep``, so cancelling the
    request cancels the wait.
    """

    name = "Gemini"

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gemini-2.0-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        max_tokens: int = 512,
        temperature: float = 0.2,
        timeout: float = 60.0,
        max_attempts: int = 3,
        default_wait_seconds: float = 20.0,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_attempts = max(1, max_attempts)
        self.default_wait_seconds = default_wait_seconds
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._sleep = sleep

    @property
    def url(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def complete(self, prompt: str) -> str:
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_tokens,
            },
        }

        attempt = 1
        while True:
            try:
                response = await self._client.post(
                    self.url, params={"key": self.api_key}, json=body,
                )
            except httpx.HTTPError as e:
                logger.error("[Gemini] Request failed: %s", e)
                raise ProviderHardError(self.name, str(e)) from e

            if response.is_success:
                return self._parse_answer(response)

            message = _error_message(response)

            if response.status_code == 429:
                wait_s = parse_retry_after(message, self.default_wait_seconds)
                if attempt < self.max_attempts:
                    logger.warning(
                        "[Gemini] Rate limited. Retrying in %.0fs (attempt %d/%d)...",
                        wait_s, attempt, self.max_attempts,
                    )
                    await self._sleep(wait_s)
                    attempt += 1
                    continue
                logger.error("[Gemini] Rate limited after %d attempt(s): %s", attempt, message)
                raise ProviderRateLimited(
                    self.name, message, retry_after=wait_s, attempts=attempt,
                )

            logger.error("[Gemini] API error %s: %s", response.status_code, message)
            raise ProviderHardError(self.name, message, status_code=response.status_code)

    def _parse_answer(self, response: httpx.Response) -> str:
        try:
            data = response.json()
            candidate = (data.get("candidates") or [None])[0]
            if not candidate:
                raise ProviderHardError(self.name, "Gemini returned no candidates.")
            return candidate["content"]["parts"][0]["text"].strip()
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise ProviderHardError(self.name, f"malformed response: {e}") from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _error_message(response: httpx.Response) -> str:
    """Best-effort ``error.message`` from a provider error body."""
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
    return response.text or f"HTTP {response.status_code}"


# ── Provider selection ──────────────────────────────────────────────
def build_provider(
    cfg: Settings,
    http_client: httpx.AsyncClient | None = None,
) -> LLMProvider | None:
    """Return the highest-priority configured provider, or None."""
    common = {
        "max_tokens": cfg.llm_max_tokens,
        "temperature": cfg.llm_temperature,
        "timeout": cfg.llm_timeout_seconds,
        "http_client": http_client,
    }

    if cfg.groq_api_key:
        logger.info("[GENERATE] Using Groq (%s)", cfg.groq_model)
        return GroqProvider(
            api_key=cfg.groq_api_key,
            model=cfg.groq_model,
            base_url=cfg.groq_base_url,
            **common,
        )

    if cfg.gemini_api_key:
        logger.info("[GENERATE] Using Gemini (%s)", cfg.gemini_model)
        return GeminiProvider(
            api_key=cfg.gemini_api_key,
            model=cfg.gemini_model,
            base_url=cfg.gemini_base_url,
            max_attempts=cfg.rate_limit_max_attempts,
            default_wait_seconds=cfg.rate_limit_default_wait_seconds,
            **common,
        )

    if cfg.openai_api_key:
        logger.info("[GENERATE] Using OpenAI (%s)", cfg.openai_model)
        return OpenAIProvider(
            api_key=cfg.openai_api_key,
            model=cfg.openai_model,
            **common,
        )

    logger.warning("[GENERATE] No API key set; answers will echo the retrieved context.")
    return None
