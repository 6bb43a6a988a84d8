"""
Database configuration and session management.

Configures the SQLAlchemy engine with connection pooling for PostgreSQL
(SQLite URLs are accepted for local development and tests).
Provides FastAPI dependency for database session injection.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from anime_explorer.settings import settings

DATABASE_URL = settings.get_database_url()

Base = declarative_base()


def _engine_options(url: str) -> dict:
    """Pool options for the configured backend."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
    }


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Yield database session with automatic cleanup."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
