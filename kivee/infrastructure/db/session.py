"""
Database access: declarative base, session factory, request-scoped sessions
and the readiness check.

Tests never touch the configured database: they bind their own in-memory
engine to `Base.metadata` and override `get_db`.
"""
from functools import lru_cache
from typing import Iterator

import psycopg
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from kivee.config import get_settings


class Base(DeclarativeBase):
    """Declarative base shared by every Kivee table"""


@lru_cache
def get_session_factory() -> sessionmaker:
    """Session factory bound to the configured database, built on first use."""
    engine = create_engine(get_settings().get_sqlalchemy_url(), pool_pre_ping=True)
    return sessionmaker(bind=engine, autoflush=False)


def get_db() -> Iterator[Session]:
    """FastAPI dependency: one session per request, closed afterwards"""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def check_db_connection() -> None:
    """
    Readiness check: SELECT 1 over a plain psycopg connection

    Raises:
        psycopg.OperationalError: the database is unreachable
    """
    dsn = get_settings().DATABASE_URL.replace("postgresql+psycopg://", "postgresql://", 1)
    with psycopg.connect(dsn, connect_timeout=3) as conn:
        conn.execute("SELECT 1")
