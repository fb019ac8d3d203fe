"""
Offline loaders for the two indexes.

  seed_recipes      → recipes table + recipe_vectors (one vector per recipe,
                      keyed by the recipe id, embedding its description)
  ingest_directory  → documents/document_chunks tables + document_chunks
                      collection (one vector per chunk, keyed by chunk id)

Both run synchronously; they are called from the root scripts, never
from a request.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy.orm import sessionmaker

from hybrid_rag.services.vector_store import ChromaVectorIndex
from hybrid_rag.sqlite.database import get_db_context
from hybrid_rag.sqlite.models import Document, DocumentChunk, Recipe
from hybrid_rag.utils.logging import get_logger
from hybrid_rag.utils.text import chunk_text, parse_frontmatter
from hybrid_rag.utils.timing import timed

logger = get_logger("hybridrag.services.ingestion")

DOCUMENT_SUFFIXES = (".txt", ".md")

SAMPLE_RECIPES: list[dict[str, Any]] = [
    {
        "title": "Peanut Butter Banana Smoothie",
        "calories": 550,
        "prep_time": 5,
        "category": ["snack", "breakfast"],
        "description": "A quick and high-calorie smoothie perfect for post-workout recovery. Very filling and ideal for busy mornings when you need an instant energy boost.",
        "ingredients": "banana, peanut butter, milk, honey",
    },
    {
        "title": "Greek Salad",
        "calories": 200,
        "prep_time": 10,
        "category": ["salad", "dinner"],
        "description": "A light dinner ideal for weight loss. Refreshing cucumbers, tomatoes, and feta with olive oil. Low calorie and incredibly filling.",
        "ingredients": "cucumber, tomato, red onion, feta cheese, kalamata olives, olive oil",
    },
    {
        "title": "Spaghetti Carbonara",
        "calories": 650,
        "prep_time": 20,
        "category": ["italian", "dinner", "comfort"],
        "description": "The ultimate comfort food for evening cravings. Rich and creamy Roman pasta with egg yolk and pecorino, deeply satisfying after a long day.",
        "ingredients": "spaghetti, eggs, pecorino romano, guanciale, black pepper",
    },
    {
        "title": "High Protein Scrambled Eggs",
        "calories": 350,
        "prep_time": 8,
        "category": ["breakfast"],
        "description": "A high protein breakfast to power your morning. Fluffy eggs packed with spinach and topped with feta for extra nutrients and taste.",
        "ingredients": "eggs, spinach, feta cheese, butter, salt, pepper",
    },
    {
        "title": "French Onion Soup",
        "calories": 400,
        "prep_time": 60,
        "category": ["french", "dinner", "comfort"],
        "description": "Warm and hearty comfort food for a cozy evening. Rich caramelized onion broth topped with crusty toasted baguette and bubbling melted Gruyere.",
        "ingredients": "onions, beef broth, baguette, gruyere cheese, butter, thyme",
    },
    {
        "title": "Quick Oats with Berries",
        "calories": 280,
        "prep_time": 5,
        "category": ["breakfast", "snack"],
        "description": "An easy meal for busy mornings. Fiber-rich oats topped with fresh antioxidant blueberries and raspberries. Quick, nutritious, and light.",
        "ingredients": "oats, blueberries, raspberries, almond milk, honey",
    },
    {
        "title": "Chicken Tikka Masala",
        "calories": 550,
        "prep_time": 45,
        "category": ["indian", "dinner"],
        "description": "A flavorful high-calorie dinner with roasted marinated chicken in a rich spiced creamy tomato sauce. Hearty and deeply aromatic.",
        "ingredients": "chicken, yogurt, tomato puree, cream, garam masala, cumin, turmeric",
    },
    {
        "title": "Miso Soup",
        "calories": 100,
        "prep_time": 10,
        "category": ["japanese", "snack"],
        "description": "An extremely low calorie light snack or starter. Traditional Japanese soup made with fermented soybean paste, silken tofu, and seaweed.",
        "ingredients": "miso paste, tofu, seaweed, green onions, dashi",
    },
    {
        "title": "Beef Stir Fry",
        "calories": 450,
        "prep_time": 15,
        "category": ["asian", "dinner"],
        "description": "A quick and high-protein dinner with lean flank steak, broccoli, and bell peppers tossed in savory soy-ginger sauce. Fast and filling.",
        "ingredients": "flank steak, broccoli, bell peppers, soy sauce, ginger, garlic, sesame oil",
    },
    {
        "title": "Avocado Toast with Eggs",
        "calories": 420,
        "prep_time": 10,
        "category": ["breakfast", "snack"],
        "description": "A trendy high-protein breakfast for busy mornings. Creamy smashed avocado on sourdough topped with a perfectly poached egg and chili flakes.",
        "ingredients": "sourdough bread, avocado, eggs, lemon, chili flakes, salt",
    },
    {
        "title": "Margarita Pizza",
        "calories": 800,
        "prep_time": 30,
        "category": ["italian", "comfort", "dinner"],
        "description": "Classic Italian comfort food for evening indulgence. A high-calorie crowd-pleaser with tomato sauce, fresh mozzarella, and fragrant basil.",
        "ingredients": "pizza dough, tomato sauce, fresh mozzarella, basil, olive oil",
    },
    {
        "title": "Protein Smoothie Bowl",
        "calories": 480,
        "prep_time": 5,
        "category": ["breakfast", "snack"],
        "description": "A quick high-calorie breakfast and post-workout snack. Thick blended banana-protein base topped with granola, seeds, and sliced fruit.",
        "ingredients": "banana, protein powder, almond milk, granola, chia seeds, strawberries",
    },
]


# ── Recipes ─────────────────────────────────────────────────────────
@timed("seed_recipes")
def seed_recipes(
    session_factory: sessionmaker,
    embedder,
    index: ChromaVectorIndex,
    recipes: list[dict[str, Any]] | None = None,
) -> int:
    """
    Replace every recipe row and rebuild the recipe collection.

    Ids are assigned 1..n so the table and the index agree on every run.
    The collection is dropped and recreated, so stale vectors never survive.
    Returns the number of recipes written.
    """
    recipes = SAMPLE_RECIPES if recipes is None else recipes

    with get_db_context(session_factory) as db:
        deleted = db.query(Recipe).delete()
        logger.info("Cleared %d existing recipe(s)", deleted)

        rows = [Recipe(id=i, **r) for i, r in enumerate(recipes, start=1)]
        db.add_all(rows)
        db.flush()
        for row in rows:
            logger.info("  Inserted: %s", row.title)

        ids = [row.id for row in rows]
        descriptions = [row.description for row in rows]
        # Vectors are written before commit; a failure rolls the rows back too
        embeddings = embedder.embed_batch(descriptions) if descriptions else []
        index.recreate_collection()
        if ids:
            index.upsert(ids, embeddings, documents=descriptions)

    logger.info("[OK] Seed complete: %d recipe(s)", len(ids))
    return len(ids)


# ── Documents ───────────────────────────────────────────────────────
def list_document_files(directory: Path) -> list[Path]:
    """Eligible files, sorted by name; names starting with ``_`` are skipped."""
    return sorted(
        p for p in directory.iterdir()
        if p.is_file()
        and p.suffix.lower() in DOCUMENT_SUFFIXES
        and not p.name.startswith("_")
    )


def ingest_file(
    path: Path,
    session_factory: sessionmaker,
    embedder,
    index: ChromaVectorIndex,
) -> int:
    """
    Store one document, its chunks, and one vector per chunk.

    A document already stored with the same title and content is skipped,
    so re-running over the same folder adds no rows or vectors.
    Returns the number of chunks indexed (0 when empty or already stored).
    """
    raw = path.read_text(encoding="utf-8")
    meta, body = parse_frontmatter(raw, path.name)

    logger.info("[INGEST] %r (%s) date=%s topic=%s tags=%s",
                meta.title, path.name, meta.date, meta.topic, meta.tags)

    if not body:
        logger.warning("[INGEST] Skipping %s: empty after frontmatter", path.name)
        return 0

    chunks = chunk_text(body)

    with get_db_context(session_factory) as db:
        existing = (
            db.query(Document)
            .filter(Document.title == meta.title, Document.content == body)
            .first()
        )
        if existing is not None:
            logger.info("[INGEST] Skipping %s: already stored as document id=%d", path.name, existing.id)
            return 0

        document = Document(
            title=meta.title,
            date=meta.date,
            topic=meta.topic,
            tags=meta.tags,
            content=body,
        )
        db.add(document)
        db.flush()

        rows = [
            DocumentChunk(document_id=document.id, chunk_index=i, text=chunk)
            for i, chunk in enumerate(chunks)
        ]
        db.add_all(rows)
        db.flush()

        embeddings = embedder.embed_batch(chunks)
        index.upsert(
            [row.id for row in rows],
            embeddings,
            documents=chunks,
            metadatas=[{"document_id": document.id} for _ in rows],
        )
        logger.info("[INGEST] Saved document id=%d with %d chunk(s)", document.id, len(rows))

    return len(chunks)


def ingest_directory(
    directory: Path,
    session_factory: sessionmaker,
    embedder,
    index: ChromaVectorIndex,
) -> tuple[int, int]:
    """
    Ingest every eligible file; a failing file is logged and skipped.

    Returns (succeeded, total).
    Raises FileNotFoundError if the directory does not exist.
    """
    if not directory.is_dir():
        raise FileNotFoundError(f"Folder not found: {directory}")

    files = list_document_files(directory)
    if not files:
        return 0, 0

    logger.info("Found %d file(s) in %s", len(files), directory)
    index.ensure_collection()

    succeeded = 0
    for path in files:
        try:
            ingest_file(path, session_factory, embedder, index)
            succeeded += 1
        except Exception as e:
            logger.error("[INGEST] Failed to ingest %s: %s", path.name, e, exc_info=True)

    logger.info("[OK] Ingestion done: %d/%d file(s)", succeeded, len(files))
    return succeeded, len(files)
