"""
Database session management (SQLAlchemy)
"""
from contextlib import contextmanager
from typing import Iterator

import psycopg
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from goalify.config import Settings, get_settings


class Base(DeclarativeBase):
    """
    SQLAlchemy declarative base for all ORM models
    """
    pass


# Singleton engine and session factory
_engine = None
_SessionLocal = None


def engine_options(settings: Settings) -> dict:
    """
    Keyword arguments for create_engine.

    On PostgreSQL every statement is capped at REMOTE_TIMEOUT_SECONDS, so a store call
    the task state manager already gave up on cannot keep running long afterwards.
    """
    options = {"pool_pre_ping": True, "echo": settings.DEBUG}
    if settings.get_sqlalchemy_url().startswith("postgresql"):
        timeout_ms = int(settings.REMOTE_TIMEOUT_SECONDS * 1000)
        options["connect_args"] = {"options": f"-c statement_timeout={timeout_ms}"}
    return options


def get_engine():
    """Get or create SQLAlchemy engine (singleton)"""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_engine(settings.get_sqlalchemy_url(), **engine_options(settings))
    return _engine


def get_session_factory():
    """Get or create session factory (singleton)"""
    global _SessionLocal
    if _SessionLocal is None:
        engine = get_engine()
        _SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    return _SessionLocal


@contextmanager
def session_scope(session_factory=None) -> Iterator[Session]:
    """
    Unit of work: commit on success, rollback on any error, always close.

    Usage:
        with session_scope() as db:
            db.add(row)
    """
    factory = session_factory or get_session_factory()
    db = factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def check_db_connection() -> None:
    """
    Health check - PostgreSQL reachability (raw psycopg)

    Raises:
        psycopg.OperationalError: if the database is unreachable
    """
    settings = get_settings()
    with psycopg.connect(settings.DATABASE_URL, connect_timeout=3) as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1;")
            cur.fetchone()
