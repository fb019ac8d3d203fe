from pydantic_settings import BaseSettings
import multiprocessing


class Settings(BaseSettings):
    app_name: str = "Hybrid RAG Backend"
    environment: str = "development"
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "INFO"  # DEBUG, INFO, WARNING or ERROR
    # Relational store URL (PostgreSQL in production, SQLite file by default)
    database_url: str = "sqlite:///./hybrid_rag/sqlite/app.db"
    # DB connection pool settings
    pool_size: int = max(5, multiprocessing.cpu_count())
    max_overflow: int = 20
    pool_pre_ping: bool = True
    pool_recycle: int = 3600  # Recycle connections after 1 hour
    pool_timeout: int = 30
    sqlite_timeout: int = 20
    sqlite_check_same_thread: bool = False

    # ChromaDB settings
    chromadb_persist_directory: str | None = None  # Auto-detected if None
    recipe_collection_name: str = "recipe_vectors"
    document_collection_name: str = "document_chunks"

    # Embedding model (all-MiniLM-L6-v2 → 384-dim vectors)
    embedding_model_name: str = "all-MiniLM-L6-v2"
    embedding_dimension: int = 384
    # Tokenizers parallelism setting (for huggingface tokenizers)
    tokenizers_parallelism: str | None = None

    # Retrieval tuning (cosine similarity: higher = more similar)
    similarity_threshold: float = 0.25
    search_overfetch_limit: int = 20  # ANN results requested before SQL filtering
    search_result_cap: int = 6  # Max recipes returned by /search
    document_top_k: int = 5  # Chunks retrieved for /query
    context_max_chars: int = 6000  # ~1500 tokens at ~4 chars/token
    search_engine_label: str = "ChromaDB + SQLAlchemy"

    # LLM providers, evaluated in priority order: Groq → Gemini → OpenAI
    groq_api_key: str | None = None
    gemini_api_key: str | None = None
    openai_api_key: str | None = None
    groq_model: str = "llama-3.3-70b-versatile"
    groq_base_url: str = "https://api.groq.com/openai/v1"
    gemini_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    openai_model: str = "gpt-3.5-turbo"
    llm_max_tokens: int = 512
    llm_temperature: float = 0.2
    llm_timeout_seconds: float = 60.0
    # Rate-limit backoff (Gemini): attempts include the first call
    rate_limit_max_attempts: int = 3
    rate_limit_default_wait_seconds: float = 20.0

    # Edge timeout for a whole request (covers up to 3 provider retries)
    request_timeout_seconds: float = 300.0

    class Config:
        env_file = ".env"
        extra = "ignore"  # Ignore extra environment variables that aren't in the Settings class


settings = Settings()
