"""
Integration Test Fixtures

Runs the FastAPI application in-process against a file-backed SQLite
database. get_db and the document store are overridden, and the enqueue
helpers are patched, so no Postgres, Redis, or Celery worker is needed.

Lifespan startup (init_db) is not triggered: the TestClient is not used as
a context manager and tables are created on the test engine directly.
"""

import asyncio
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from studyforge.db.base import Base, get_db
from studyforge.services.storage import DocumentStore, get_document_store


@pytest.fixture
def api_session_maker(tmp_path) -> async_sessionmaker:
    """Session factory over a fresh SQLite database file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}", poolclass=NullPool)

    async def _create_schema():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create_schema())
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def api_store(tmp_path) -> DocumentStore:
    return DocumentStore(root=tmp_path / "uploads")


@pytest.fixture
def enqueued() -> dict[str, MagicMock]:
    """Patched enqueue helpers, keyed by job kind."""
    with patch(
        "studyforge.routers.documents.enqueue_document_processing",
        return_value="process-task",
    ) as upload_enqueue, patch(
        "studyforge.routers.processing.enqueue_document_processing",
        return_value="process-task",
    ) as trigger_enqueue, patch(
        "studyforge.routers.originality.enqueue_originality_check",
        return_value="originality-task",
    ) as originality_enqueue:
        yield {
            "upload": upload_enqueue,
            "trigger": trigger_enqueue,
            "originality": originality_enqueue,
        }


@pytest.fixture
def client(api_session_maker, api_store, enqueued) -> TestClient:
    """TestClient with database and storage dependencies overridden."""
    from studyforge.main import app

    async def _get_test_db():
        async with api_session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_document_store] = lambda: api_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def run_db(api_session_maker):
    """Run a coroutine function against a fresh session from the test database."""

    def _run(fn) -> Any:
        async def _inner():
            async with api_session_maker() as session:
                result = await fn(session)
                await session.commit()
                return result

        return asyncio.run(_inner())

    return _run
