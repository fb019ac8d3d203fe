"""Ingest meeting notes (.txt / .md) into the document-QA indexes.

Each file may start with an optional frontmatter block:

  ---
  title: Q1 Planning Meeting
  date: 2025-10-01
  topic: Product Roadmap
  tags: planning, roadmap, q1
  ---

Missing fields are derived from the filename (title), today (date),
"General" (topic) and an empty tag list. Files whose name starts with
"_" are skipped. Safe to re-run: a file already stored with the same
title and content is skipped; an edited file is stored as a new document.

Usage:
  python ingest_documents.py [directory]     (default: ./moms)
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from hybrid_rag.core.config import settings
from hybrid_rag.services.embedding import EmbeddingService
from hybrid_rag.services.ingestion import ingest_directory
from hybrid_rag.services.vector_store import ChromaVectorIndex, get_chroma_client
from hybrid_rag.sqlite.database import SessionLocal, init_db
from hybrid_rag.utils.logging import setup_logging


def main() -> int:
    parser = argparse.ArgumentParser(description="Ingest documents for question answering.")
    parser.add_argument("directory", nargs="?", default="moms", help="Folder of .txt/.md files")
    args = parser.parse_args()

    setup_logging()
    directory = Path(args.directory)
    if not directory.is_dir():
        print(f"Folder not found: {directory.resolve()}")
        return 1

    if not init_db():
        print("Database initialization failed; check DATABASE_URL.")
        return 1

    embedder = EmbeddingService(settings.embedding_model_name, settings.embedding_dimension)
    embedder.load()
    index = ChromaVectorIndex(
        get_chroma_client(settings),
        settings.document_collection_name,
        output_fields=("document_id", "text"),
    )

    succeeded, total = ingest_directory(directory, SessionLocal, embedder, index)
    if total == 0:
        print(f"No .txt or .md files found in {directory}")
        return 1

    print(f"Done: {succeeded}/{total} file(s) ingested. Start the server with: python run.py")
    return 0 if succeeded == total else 1


if __name__ == "__main__":
    sys.exit(main())
