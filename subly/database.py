"""
Database connection and session management.
"""
from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from subly.config import settings


def _engine_options(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        # One shared connection keeps an in-memory database alive across sessions.
        if url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        return options
    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
    }


engine: Engine = create_engine(settings.database_url, echo=False, **_engine_options(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """
    Initialize database by registering models and creating tables.
    """
    from subly.models import Base

    Base.metadata.create_all(bind=engine)


def database_health() -> dict[str, Any]:
    """
    Return structured database health details.
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return {
            "ok": True,
            "dialect": engine.dialect.name,
        }
    except SQLAlchemyError as exc:
        return {
            "ok": False,
            "error": str(exc),
        }
