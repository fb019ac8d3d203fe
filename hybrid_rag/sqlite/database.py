from sqlalchemy import create_engine, event, Engine, text
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool
from contextlib import contextmanager

from hybrid_rag.core.config import settings
from hybrid_rag.utils.logging import get_logger

logger = get_logger("hybridrag.sqlite.database")


class Base(DeclarativeBase):
    """Base class for all ORM models."""


def _set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable WAL mode and optimize SQLite for concurrent readers."""
    cursor = dbapi_conn.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")  # Faster than FULL, safer than OFF
        cursor.execute("PRAGMA cache_size=-64000")  # 64MB cache (negative = KB)
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA temp_store=MEMORY")
    except Exception as e:
        # WAL is unavailable on some filesystems; continue without it
        logger.warning("Could not set SQLite pragmas: %s", e)
    finally:
        cursor.close()


def create_db_engine(database_url: str | None = None) -> Engine:
    """
    Build a SQLAlchemy engine for the relational store.

    In-memory SQLite gets a StaticPool so every session sees the same
    database; file SQLite and server databases use a QueuePool.
    """
    url = database_url or settings.database_url

    if url.startswith("sqlite"):
        connect_args = {
            "check_same_thread": settings.sqlite_check_same_thread,
            "timeout": settings.sqlite_timeout,
        }
        if url in ("sqlite://", "sqlite:///:memory:"):
            db_engine = create_engine(
                url,
                connect_args=connect_args,
                poolclass=StaticPool,
                echo=False,
            )
        else:
            db_engine = create_engine(
                url,
                connect_args=connect_args,
                poolclass=QueuePool,
                pool_size=max(5, settings.pool_size or 5),
                max_overflow=max(10, settings.max_overflow or 10),
                pool_pre_ping=settings.pool_pre_ping,
                echo=False,
            )
        event.listen(db_engine, "connect", _set_sqlite_pragma)
        return db_engine

    # PostgreSQL (tag-array filters need it for ARRAY @>), MySQL, etc.
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_pre_ping=settings.pool_pre_ping,
        pool_recycle=settings.pool_recycle,
        pool_timeout=settings.pool_timeout,
        echo=False,
    )


def create_session_factory(db_engine: Engine) -> sessionmaker:
    """Plain session factory; create a new Session per request/task."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=db_engine,
        expire_on_commit=False,
    )


engine = create_db_engine()
SessionLocal = create_session_factory(engine)


@contextmanager
def get_db_context(session_factory: sessionmaker | None = None):
    """
    Context manager for database sessions (scripts and background tasks).
    Commits on success, rolls back on error.
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(db_engine: Engine | None = None) -> bool:
    """
    Verify the connection and create missing tables.
    Call this during app startup.
    """
    db_engine = db_engine or engine
    try:
        with db_engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            conn.commit()
        # Import models to register them with Base
        from hybrid_rag.sqlite import models  # noqa: F401
        Base.metadata.create_all(bind=db_engine)
        logger.info("[OK] Database connection initialized successfully")
        return True
    except Exception as e:
        logger.error("[FAIL] Database connection failed: %s", e)
        return False
