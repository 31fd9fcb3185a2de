"""
Database Session Management Module
==================================

One engine per process, built from DATABASE_URL. PostgreSQL gets a
QueuePool sized from settings; SQLite (local development and tests) gets
foreign keys switched on for every connection.

Routes receive a session through the get_db dependency.
"""

from typing import Any, Dict, Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool

from backoffice.core.config import settings
from backoffice.core.logging import get_logger

# Initialize logger
logger = get_logger(__name__)


# ==========================
# Database Engine
# ==========================

def _engine_options(database_url: str) -> Dict[str, Any]:
    """Build engine keyword arguments for the configured dialect."""
    if database_url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False},
            "echo": settings.DEBUG,
        }

    return {
        "poolclass": QueuePool,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "pool_pre_ping": True,  # Validate connections before use
        "echo": settings.DEBUG,
        "connect_args": {
            "connect_timeout": 10,
            "application_name": "admin-backoffice",
        },
    }


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))


@event.listens_for(engine, "connect")
def receive_connect(dbapi_connection, connection_record):
    """Enable SQLite foreign keys and log new connections."""
    if settings.is_sqlite:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
    logger.debug("db_connect")


# ==========================
# Session Factory
# ==========================

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,  # Access objects after commit
)


# ==========================
# Dependency for FastAPI
# ==========================

def get_db() -> Generator[Session, None, None]:
    """Session for one request; rolled back if the handler raises, always closed."""
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error("db_session_error", error=str(e))
        db.rollback()
        raise
    finally:
        db.close()


# ==========================
# Database Health Check
# ==========================

def check_database_connection() -> bool:
    """Run SELECT 1; used by /health, /ready and startup."""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error("db_health_check_failed", error=str(e))
        return False
