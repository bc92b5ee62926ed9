"""Synchronous SQLAlchemy engine and session helpers."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base class for ORM models."""


def _ensure_sqlite_dir(url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return
    if not parsed.database or parsed.database == ":memory:":
        return
    Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """Build an engine for ``url`` with the pool options the service relies on."""
    engine_kwargs: dict = {"echo": echo, "pool_pre_ping": True}
    if url.startswith("sqlite"):
        _ensure_sqlite_dir(url)
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    return create_engine(url, **engine_kwargs)


class Database:
    """Owns one engine and its session factory.

    Constructed and closed by the process entry point; request handlers only
    ever see sessions handed out by :meth:`session`.
    """

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self.engine: Engine = create_db_engine(url, echo=echo)
        self.session_factory = sessionmaker(
            bind=self.engine, autoflush=False, autocommit=False
        )

    def create_all(self) -> None:
        # Import registers the table on Base.metadata
        from postdesk.models import post  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def session(self) -> Iterator[Session]:
        """Yield a session and close it afterwards."""
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    def ping(self) -> None:
        with self.engine.connect() as connection:
            connection.execute(text("SELECT 1"))

    def dispose(self) -> None:
        logger.info("Disposing database engine")
        self.engine.dispose()


def get_database(request: Request) -> Database:
    """Return the database opened by the application lifespan."""
    return request.app.state.database


def get_db(request: Request) -> Iterator[Session]:
    """Yield a request-scoped session for dependency injection."""
    yield from get_database(request).session()
