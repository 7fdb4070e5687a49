"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

import logging
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from ..core.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ActivityHub models."""


def _build_engine_kwargs(db_url: str) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"echo": settings.database_echo, "future": True}
    if db_url.startswith("sqlite"):
        # Request handlers run in a threadpool; SQLite connections must be shareable.
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs.update(pool_size=5, max_overflow=10, pool_pre_ping=True, pool_recycle=300)
    return kwargs


def build_engine(db_url: str | None = None) -> Engine:
    url = db_url or settings.database_url
    return create_engine(url, **_build_engine_kwargs(url))


engine = build_engine()
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def get_db() -> Generator[Session, None, None]:
    """Get database session with proper cleanup."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """Create all tables (development and tests; production uses migrations)."""
    from .. import models  # noqa: F401  register mappers

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database schema ensured")


__all__ = ["Base", "SessionLocal", "build_engine", "engine", "get_db", "init_db"]
