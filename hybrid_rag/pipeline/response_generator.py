"""
Response synthesis: grounded prompt + provider call.

The provider is picked once from configuration (Groq → Gemini → OpenAI).
With none configured the answer is a deterministic placeholder that
echoes the retrieved context, so the document-QA flow still works
end-to-end without credentials.
"""

from __future__ import annotations

import httpx

from hybrid_rag.core.config import Settings
from hybrid_rag.services.llm import LLMProvider, build_provider
from hybrid_rag.utils.logging import get_logger

logger = get_logger("hybridrag.pipeline.response_generator")

NOT_FOUND_ANSWER = "Not found in documents."
PLACEHOLDER_HEADER = "[No LLM key configured: set GROQ_API_KEY in .env]"


def build_prompt(query: str, context: str) -> str:
    """Instruction prompt that binds the model to the supplied context."""
    return (
        "You are a helpful assistant. Answer ONLY using the context below. "
        "Be concise and specific.\n\n"
        "Context:\n"
        f"{context}"
        "\n\nQuestion:\n"
        f"{query}"
        f"\n\nIf the answer is not found in the context, say '{NOT_FOUND_ANSWER}'"
    )


def build_placeholder_answer(context: str) -> str:
    return f"{PLACEHOLDER_HEADER}\n\nRetrieved context:\n{context}"


class AnswerGenerator:
    """Generates an answer from a query and a context string."""

    def __init__(self, provider: LLMProvider | None):
        self.provider = provider

    @classmethod
    def from_settings(
        cls,
        cfg: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> "AnswerGenerator":
        return cls(build_provider(cfg, http_client=http_client))

    @property
    def provider_name(self) -> str:
        return self.provider.name if self.provider else "placeholder"

    async def generate(self, query: str, context: str) -> str:
        """
        One provider call (plus the provider's own rate-limit retries).
        Provider errors propagate; there is no failover to the next provider.
        """
        if self.provider is None:
            logger.warning("[GENERATE] No API key set, returning placeholder.")
            return build_placeholder_answer(context)

        prompt = build_prompt(query, context)
        logger.info(
            "[GENERATE] %s (%s) | prompt: %d chars",
            self.provider.name, self.provider.model, len(prompt),
        )
        answer = await self.provider.complete(prompt)
        logger.info("[GENERATE] Answer generated: %d chars", len(answer))
        return answer

    async def aclose(self) -> None:
        if self.provider is not None:
            await self.provider.aclose()
