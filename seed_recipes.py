"""Seed the sample recipe set and rebuild the recipe vector collection.

Usage:
  python seed_recipes.py

Safe to re-run: existing recipes are deleted and the collection is recreated.
"""

from __future__ import annotations

import sys

from hybrid_rag.core.config import settings
from hybrid_rag.services.embedding import EmbeddingService
from hybrid_rag.services.ingestion import seed_recipes
from hybrid_rag.services.vector_store import ChromaVectorIndex, get_chroma_client
from hybrid_rag.sqlite.database import SessionLocal, init_db
from hybrid_rag.utils.logging import setup_logging


def main() -> int:
    setup_logging()
    if not init_db():
        print("Database initialization failed; check DATABASE_URL.")
        return 1

    embedder = EmbeddingService(settings.embedding_model_name, settings.embedding_dimension)
    embedder.load()
    index = ChromaVectorIndex(get_chroma_client(settings), settings.recipe_collection_name)

    count = seed_recipes(SessionLocal, embedder, index)
    print(f"Seed complete: {count} recipes inserted and indexed into '{index.collection_name}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
