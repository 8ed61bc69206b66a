"""Database session management."""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from reelflow.config import settings


def build_engine(database_url: str) -> Engine:
    """Create an engine with pool options suited to the backend."""
    kwargs: dict[str, Any] = {"pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        # Worker threads share the engine
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_size"] = 5
        kwargs["max_overflow"] = 10
    return create_engine(database_url, **kwargs)


# Create engine
engine = build_engine(settings.database_url)

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


def get_session() -> Generator[Session, None, None]:
    """Get a database session (for FastAPI dependency injection)."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def session_scope(session_factory: sessionmaker[Session] | None = None) -> Generator[Session, None, None]:
    """Transactional scope over a specific session factory.

    Services take an optional factory so tests can point them at their own engine.
    """
    session = (session_factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(create_tables: bool = False) -> None:
    """Verify database connectivity, optionally creating missing tables.

    Args:
        create_tables: Create all tables from the ORM metadata. Used for local
            SQLite runs; PostgreSQL deployments use Alembic migrations.
    """
    from reelflow.db.models import Base

    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))

    if create_tables:
        Base.metadata.create_all(bind=engine)
