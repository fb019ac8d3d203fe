import asyncio
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hybrid_rag import __version__
from hybrid_rag.core.config import settings
from hybrid_rag.sqlite.database import SessionLocal, engine, init_db
from hybrid_rag.utils.logging import get_logger, setup_logging

from hybrid_rag.api.health import router as health_router
from hybrid_rag.api.query import router as query_router
from hybrid_rag.api.search import router as search_router

logger = get_logger("hybridrag.main")

# Set tokenizers parallelism if configured (to suppress warnings)
if settings.tokenizers_parallelism:
    os.environ["TOKENIZERS_PARALLELISM"] = settings.tokenizers_parallelism

app = FastAPI(
    title=settings.app_name,
    description="Hybrid RAG backend: vector search fused with relational filters",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify your frontend domain
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(query_router)
app.include_router(search_router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies are client errors (400), same as an empty query."""
    logger.info("Rejected request body on %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=400,
        content={"error": 'Field "query" is required and must be a non-empty string.'},
    )


def _load_embedding_model(embedder) -> None:
    """Runs in an executor; until it finishes searches answer 503."""
    try:
        embedder.load()
    except Exception as e:
        logger.error("Failed to load embedding model: %s", e, exc_info=True)


def build_query_engine(cfg, chroma_client, session_factory, embedder):
    """Wire every pipeline service from configuration."""
    from hybrid_rag.pipeline.fusion import ResultFusion
    from hybrid_rag.pipeline.orchestrator import QueryEngine
    from hybrid_rag.pipeline.response_generator import AnswerGenerator
    from hybrid_rag.pipeline.retrieval import VectorSearchClient
    from hybrid_rag.services.relational_store import RelationalStore
    from hybrid_rag.services.vector_store import ChromaVectorIndex
    from hybrid_rag.sqlite.models import Recipe

    recipe_index = ChromaVectorIndex(chroma_client, cfg.recipe_collection_name)
    chunk_index = ChromaVectorIndex(
        chroma_client,
        cfg.document_collection_name,
        output_fields=("document_id", "text"),
    )
    generator = AnswerGenerator.from_settings(cfg)
    logger.info("Answer provider: %s", generator.provider_name)

    return QueryEngine.from_settings(
        cfg,
        recipe_search=VectorSearchClient(embedder, recipe_index),
        recipe_fusion=ResultFusion(
            RelationalStore(session_factory, Recipe),
            cfg.similarity_threshold,
        ),
        chunk_search=VectorSearchClient(embedder, chunk_index),
        generator=generator,
    )


@app.on_event("startup")
async def on_startup():
    """
    Startup sequence:
    1. Initialize logging
    2. Verify the database and create tables
    3. Open ChromaDB and wire the query engine
    4. Load the embedding model in the background
    """
    setup_logging()
    logger.info("Starting Hybrid RAG Backend...")

    logger.info("Initializing relational database...")
    if not init_db():
        logger.error("Failed to initialize database connection")
        raise RuntimeError("Database initialization failed")

    logger.info("Initializing ChromaDB...")
    from hybrid_rag.services.embedding import EmbeddingService
    from hybrid_rag.services.vector_store import get_chroma_client

    chroma_client = get_chroma_client(settings)
    embedder = EmbeddingService(settings.embedding_model_name, settings.embedding_dimension)

    app.state.embedder = embedder
    app.state.query_engine = build_query_engine(settings, chroma_client, SessionLocal, embedder)

    loop = asyncio.get_running_loop()
    app.state.model_loading = loop.run_in_executor(None, _load_embedding_model, embedder)

    logger.info("[OK] Hybrid RAG Backend started on port %d", settings.port)


@app.on_event("shutdown")
async def on_shutdown():
    """Cleanup on shutdown."""
    logger.info("Shutting down Hybrid RAG Backend...")
    query_engine = getattr(app.state, "query_engine", None)
    if query_engine is not None:
        await query_engine.generator.aclose()
    engine.dispose()
    logger.info("[OK] Shutdown complete")
