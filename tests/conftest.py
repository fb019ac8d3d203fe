"""
Shared test fixtures and in-memory fakes.

The fakes stand in for the embedding model, the vector index, the
relational store and the LLM provider, so pipeline and API tests run
without model downloads, a vector database or network access.
Relational tests use an in-memory SQLite database.
"""

from __future__ import annotations

import asyncio

import pytest

from hybrid_rag.pipeline.context_builder import ContextBuilder
from hybrid_rag.pipeline.fusion import ResultFusion
from hybrid_rag.pipeline.intent import IntentExtractor
from hybrid_rag.pipeline.orchestrator import QueryEngine
from hybrid_rag.pipeline.response_generator import AnswerGenerator
from hybrid_rag.pipeline.retrieval import VectorSearchClient
from hybrid_rag.schemas.retrieval import VectorHit
from hybrid_rag.services.llm import LLMProvider
from hybrid_rag.sqlite.database import Base, create_db_engine, create_session_factory


class FakeEmbedder:
    """Deterministic 4-dim embedding; records every text it embeds."""

    def __init__(self, ready: bool = True, fail_on: str | None = None):
        self.ready = ready
        self.fail_on = fail_on
        self.calls: list[str] = []

    @property
    def is_ready(self) -> bool:
        return self.ready

    def embed(self, text: str) -> list[float]:
        if self.fail_on and self.fail_on in text:
            raise RuntimeError(f"cannot embed {text!r}")
        self.calls.append(text)
        return [float(len(text)), 0.0, 0.0, 1.0]

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [self.embed(t) for t in texts]

    async def aembed(self, text: str) -> list[float]:
        return self.embed(text)


class FakeIndex:
    """Returns canned hits (already in descending score order)."""

    def __init__(self, hits: list[VectorHit] | None = None, collection_name: str = "fake_vectors"):
        self.hits = hits or []
        self.collection_name = collection_name
        self.queries: list[tuple[list[float], int]] = []
        self.upserts: list[dict] = []
        self.ensured = 0
        self.recreated = 0

    async def aquery(self, vector: list[float], limit: int) -> list[VectorHit]:
        self.queries.append((vector, limit))
        return list(self.hits[:limit])

    def ensure_collection(self):
        self.ensured += 1

    def recreate_collection(self):
        self.recreated += 1
        self.upserts.clear()

    def upsert(self, ids, embeddings, documents=None, metadatas=None):
        self.upserts.append({
            "ids": list(ids),
            "embeddings": list(embeddings),
            "documents": documents,
            "metadatas": metadatas,
        })


class FakeStore:
    """Returns its records for the requested ids, in its own (arbitrary) order."""

    def __init__(self, records: list[dict] | None = None, error: Exception | None = None):
        self.records = records or []
        self.error = error
        self.calls: list[tuple[list[int], list[str]]] = []

    async def fetch(self, ids, filters):
        ids = list(ids)
        self.calls.append((ids, list(filters)))
        if self.error is not None:
            raise self.error
        return [r for r in self.records if r["id"] in ids]


class FakeProvider(LLMProvider):
    name = "Fake"
    model = "fake-1"

    def __init__(self, answer: str = "Fake answer.", error: Exception | None = None, delay: float = 0.0):
        self.answer = answer
        self.error = error
        self.delay = delay
        self.prompts: list[str] = []
        self.closed = False

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.answer

    async def aclose(self) -> None:
        self.closed = True


def hit(id: int, score: float, **payload) -> VectorHit:
    return VectorHit(id=id, score=score, payload=payload)


def recipe(id: int, title: str = "", **fields) -> dict:
    row = {"id": id, "title": title or f"Recipe {id}", "calories": 300, "prep_time": 10, "category": []}
    row.update(fields)
    return row


def make_engine(
    *,
    embedder: FakeEmbedder | None = None,
    recipe_hits: list[VectorHit] | None = None,
    store: FakeStore | None = None,
    chunk_hits: list[VectorHit] | None = None,
    provider: LLMProvider | None = None,
    **kwargs,
) -> QueryEngine:
    """QueryEngine wired entirely from fakes; the fakes are reachable as attributes."""
    embedder = embedder or FakeEmbedder()
    recipe_index = FakeIndex(recipe_hits, collection_name="recipe_vectors")
    chunk_index = FakeIndex(chunk_hits, collection_name="document_chunks")
    store = store or FakeStore()
    threshold = kwargs.pop("similarity_threshold", 0.25)
    return QueryEngine(
        extractor=IntentExtractor(),
        recipe_search=VectorSearchClient(embedder, recipe_index),
        recipe_fusion=ResultFusion(store, threshold),
        chunk_search=VectorSearchClient(embedder, chunk_index),
        context_builder=ContextBuilder(kwargs.pop("context_max_chars", 6000)),
        generator=AnswerGenerator(provider),
        similarity_threshold=threshold,
        engine_label="Fake + SQLite",
        **kwargs,
    )


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def session_factory():
    """Session factory over a fresh in-memory SQLite database."""
    from hybrid_rag.sqlite import models  # noqa: F401

    db_engine = create_db_engine("sqlite://")
    Base.metadata.create_all(bind=db_engine)
    yield create_session_factory(db_engine)
    db_engine.dispose()
