"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine and provides small
helpers used by the application and tests. By default the store lives in
memory (`sqlite://`): a single shared connection keeps every request and
test looking at the same data, and the store is rebuilt from the demo
seed every time the process starts. Set `DATABASE_URL` to a file URL to
keep data between restarts.

The in-memory store is meant for demos and tests. Its one connection is
shared by every session across FastAPI's threadpool, so a rollback in one
request also discards whatever another request has flushed but not yet
committed. Run concurrent writers against a file or server URL, where each
session checks out its own connection from a regular pool.
"""

import logging

from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from .config import settings

logger = logging.getLogger("gym_api.database")


def _is_memory_url(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def build_engine(url: str):
    """Create an engine for `url`, sharing one connection for in-memory SQLite."""
    if _is_memory_url(url):
        return create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if url.startswith("sqlite"):
        return create_engine(url, echo=False, connect_args={"check_same_thread": False})
    return create_engine(url, echo=False)


engine = build_engine(settings.DATABASE_URL)


def create_db_and_tables(seed: bool = False):
    """Create tables from SQLModel metadata and optionally load demo data.

    Seeding only happens on an empty store so a file database is never
    seeded twice.
    """
    SQLModel.metadata.create_all(engine)
    if seed:
        from .seed import load_demo_data, store_is_empty
        with Session(engine) as session:
            if store_is_empty(session):
                load_demo_data(session)
                logger.info("demo data loaded")


def reset_db(seed: bool = True):
    """Drop every table and rebuild the store.

    Used by the test-suite to give each test an isolated copy of the
    demo data.
    """
    SQLModel.metadata.drop_all(engine)
    create_db_and_tables(seed=seed)


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes.
    """
    with Session(engine) as session:
        yield session
