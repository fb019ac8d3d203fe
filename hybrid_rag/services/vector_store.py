"""
ChromaDB vector index adapter.

Collections are created in cosine space.  Chroma reports cosine
*distance* (0 = identical); this adapter converts it to cosine
*similarity* (``1 - distance``) so every score in the pipeline is
"higher = more similar" and the similarity threshold keeps its meaning.
"""

import asyncio
from pathlib import Path
from typing import Any

import chromadb

from hybrid_rag.core.config import Settings, settings as default_settings
from hybrid_rag.schemas.retrieval import VectorHit
from hybrid_rag.utils.logging import get_logger

logger = get_logger("hybridrag.services.vector_store")

MAX_TEXT_LENGTH = 4096


def _get_persist_directory(cfg: Settings) -> str:
    """
    Resolve the directory where ChromaDB data is stored.
    Defaults to hybrid_rag/vector_db/chroma_db.
    """
    if cfg.chromadb_persist_directory:
        return cfg.chromadb_persist_directory
    base_dir = Path(__file__).resolve().parents[1]
    return str(base_dir / "vector_db" / "chroma_db")


def get_chroma_client(cfg: Settings | None = None, persistent: bool = True) -> chromadb.ClientAPI:
    """Build a ChromaDB client; ``persistent=False`` gives an in-process ephemeral one."""
    cfg = cfg or default_settings
    chroma_settings = chromadb.Settings(anonymized_telemetry=False, allow_reset=True)
    if not persistent:
        return chromadb.EphemeralClient(settings=chroma_settings)
    return chromadb.PersistentClient(path=_get_persist_directory(cfg), settings=chroma_settings)


class ChromaVectorIndex:
    """ANN search over one collection, returning hits in descending similarity."""

    def __init__(
        self,
        client: chromadb.ClientAPI,
        collection_name: str,
        output_fields: tuple[str, ...] = (),
    ):
        self.client = client
        self.collection_name = collection_name
        self.output_fields = output_fields
        self._collection = None

    def ensure_collection(self) -> Any:
        """Create the collection (cosine space) if it does not exist."""
        if self._collection is None:
            self._collection = self.client.get_or_create_collection(
                name=self.collection_name,
                metadata={"hnsw:space": "cosine"},
            )
        return self._collection

    def recreate_collection(self) -> Any:
        """Drop and recreate the collection (full re-sync)."""
        try:
            self.client.delete_collection(name=self.collection_name)
            logger.info("Dropped existing collection: %s", self.collection_name)
        except Exception as e:
            # chromadb raises different types for a missing collection across versions
            logger.info("Collection %s did not exist (%s)", self.collection_name, e)
        self._collection = None
        return self.ensure_collection()

    def upsert(
        self,
        ids: list[int],
        embeddings: list[list[float]],
        documents: list[str] | None = None,
        metadatas: list[dict[str, Any]] | None = None,
    ) -> None:
        collection = self.ensure_collection()
        kwargs: dict[str, Any] = {
            "ids": [str(i) for i in ids],
            "embeddings": embeddings,
        }
        if documents is not None:
            kwargs["documents"] = [d[:MAX_TEXT_LENGTH] for d in documents]
        if metadatas is not None:
            kwargs["metadatas"] = metadatas
        collection.upsert(**kwargs)
        logger.info("Upserted %d vector(s) into %s", len(ids), self.collection_name)

    def count(self) -> int:
        return self.ensure_collection().count()

    def query(self, vector: list[float], limit: int) -> list[VectorHit]:
        """Nearest neighbours of ``vector`` in native (descending score) order."""
        collection = self.ensure_collection()
        results = collection.query(
            query_embeddings=[vector],
            n_results=limit,
            include=["distances", "metadatas", "documents"],
        )

        if not results.get("ids") or not results["ids"][0]:
            return []

        distances = results["distances"][0] if results.get("distances") else []
        metadatas = results["metadatas"][0] if results.get("metadatas") else []
        documents = results["documents"][0] if results.get("documents") else []

        hits: list[VectorHit] = []
        for idx, raw_id in enumerate(results["ids"][0]):
            meta = dict(metadatas[idx] or {}) if idx < len(metadatas) else {}
            payload = {k: meta[k] for k in self.output_fields if k in meta}
            if "text" in self.output_fields and idx < len(documents):
                payload["text"] = documents[idx]
            distance = float(distances[idx]) if idx < len(distances) else 1.0
            hits.append(VectorHit(id=int(raw_id), score=1.0 - distance, payload=payload))
        return hits

    async def aquery(self, vector: list[float], limit: int) -> list[VectorHit]:
        """Run the synchronous Chroma query in an executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.query, vector, limit)
