"""
Embedding model wrapper (sentence-transformers).

One instance is created at application start-up and injected into the
search clients.  Loading the model is slow, so ``load()`` runs in an
executor while the API is already accepting requests; until it finishes
``is_ready`` is False and search requests get a 503.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any

from hybrid_rag.core.errors import ServiceNotReady
from hybrid_rag.utils.logging import get_logger

logger = get_logger("hybridrag.services.embedding")


class EmbeddingService:
    """Text → fixed-length, L2-normalised float vector."""

    def __init__(self, model_name: str = "all-MiniLM-L6-v2", dimension: int = 384):
        self.model_name = model_name
        self.dimension = dimension
        self._model: Any | None = None
        self._lock = threading.Lock()

    @property
    def is_ready(self) -> bool:
        return self._model is not None

    def load(self) -> None:
        """Load the SentenceTransformer model (blocking, idempotent)."""
        if self._model is not None:
            return
        with self._lock:
            if self._model is not None:
                return
            from sentence_transformers import SentenceTransformer

            logger.info("Loading embedding model %s...", self.model_name)
            self._model = SentenceTransformer(self.model_name)
            logger.info("[OK] Embedding model loaded: %s", self.model_name)

    def _require_model(self) -> Any:
        if self._model is None:
            raise ServiceNotReady("EmbeddingService", "Model not initialized")
        return self._model

    def embed(self, text: str) -> list[float]:
        """Embed a single string (mean-pooled, normalised)."""
        model = self._require_model()
        # show_progress_bar=False keeps tqdm away from sys.stderr
        vector = model.encode(
            text, normalize_embeddings=True, show_progress_bar=False,
        ).tolist()
        if len(vector) != self.dimension:
            raise ValueError(
                f"Embedding dimension mismatch: expected {self.dimension}, got {len(vector)}"
            )
        return vector

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed many strings on the caller's thread (ingestion scripts)."""
        model = self._require_model()
        return model.encode(
            texts, normalize_embeddings=True, show_progress_bar=False,
        ).tolist()

    async def aembed(self, text: str) -> list[float]:
        """Embed without blocking the event loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.embed, text)
