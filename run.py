import uvicorn
from hybrid_rag.core.config import settings

if __name__ == "__main__":
    # Single worker: the embedding model is loaded once per process
    uvicorn.run(
        "hybrid_rag.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info" if settings.environment == "development" else "warning",
    )
