"""Database configuration and session management.

This module defines the declarative base, the ``Database`` store handle
that owns the SQLAlchemy engine and session factory, and the session
dependency used by FastAPI routes.
"""

from typing import Any

from fastapi import Request
from loguru import logger
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, declarative_base, sessionmaker


Base = declarative_base()
"""Declarative base class for SQLAlchemy models."""


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Explicitly constructed store handle.

    One instance is created per application and torn down with
    :meth:`dispose` at shutdown. Repositories never reach for it directly;
    they receive sessions produced by :meth:`session`.
    """

    def __init__(self, url: str, **engine_kwargs: Any):
        if url.startswith("sqlite"):
            connect_args = engine_kwargs.setdefault("connect_args", {})
            connect_args.setdefault("check_same_thread", False)
        self.url = url
        self.engine = create_engine(url, future=True, **engine_kwargs)
        if url.startswith("sqlite"):
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self.session_factory = sessionmaker(
            bind=self.engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
            future=True,
        )

    def create_all(self) -> None:
        """Create every table registered on :data:`Base`."""
        # models must be imported so their tables are registered
        from . import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        """Drop every table registered on :data:`Base`."""
        Base.metadata.drop_all(bind=self.engine)

    def session(self) -> Session:
        """Open a new session; the caller closes it."""
        return self.session_factory()

    def dispose(self) -> None:
        """Close every pooled connection."""
        logger.info("Disposing database engine for {}", self.engine.url.render_as_string())
        self.engine.dispose()


def get_db(request: Request):
    """
    Provide a SQLAlchemy database session.

    This function is used as a FastAPI dependency.
    It yields a session bound to the application's store handle and
    ensures it is properly closed after the request is completed.
    """

    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()
