"""
Shared Test Fixtures and Configuration

This module provides pytest fixtures used across unit and integration tests.

Settings objects are built when studyforge is first imported, so the test
environment is applied at module import time, before any test module
imports the package.
"""

import os
import tempfile
from pathlib import Path
from typing import Any, AsyncGenerator, Callable, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# ============================================================================
# Environment Configuration
# ============================================================================

_TEST_UPLOAD_DIR = Path(tempfile.gettempdir()) / "studyforge_test_uploads"

os.environ.update(
    {
        "POSTGRES_HOST": os.environ.get("POSTGRES_HOST", "localhost"),
        "POSTGRES_USER": os.environ.get("POSTGRES_TEST_USER", "testuser"),
        "POSTGRES_PASSWORD": os.environ.get("POSTGRES_TEST_PASSWORD", "testpass"),
        "POSTGRES_DB": os.environ.get("POSTGRES_TEST_DB", "testdb"),
        "GEMINI_API_KEYS": "test-key-0,test-key-1",
        "UPLOAD_DIR": str(_TEST_UPLOAD_DIR),
        "DEBUG": "false",
    }
)

from studyforge.db.base import Base  # noqa: E402
from studyforge.models.usage import LLMUsage  # noqa: E402


SAMPLE_TEXT = (
    "Transmission media carry signals between network devices. "
    "Coaxial cable has a central conductor surrounded by an insulating layer and a braided shield. "
    "Twisted pair cable twists wire pairs together to cancel electromagnetic interference. "
    "Fiber optic cable carries light pulses through glass strands over long distances. "
    "Wireless media use radio waves, microwaves, and infrared signals to move data through the air. "
    "Each medium trades off bandwidth, cost, distance, and resistance to noise differently."
)

STRICT_QUESTIONS_OUTPUT = """Q1: Which cable carries light pulses?
Type: multiple-choice
A) Coaxial cable
B) Fiber optic cable
C) Twisted pair
D) Power line
Correct Answer: B
Explanation: Fiber optic cable carries light through glass strands.
Difficulty: easy

Q2: Twisted pair cancels interference by twisting wires together.
Type: true-false
A) True
B) False
Correct Answer: A
Explanation: Twisting cancels electromagnetic interference.
Difficulty: medium

Q3: Which are wireless media?
Type: multi-select
A) Radio waves
B) Copper wire
C) Infrared
D) Glass fiber
Correct Answers: A, C
Explanation: Radio and infrared travel through the air.
Difficulty: hard
"""


# ============================================================================
# Document Fixtures
# ============================================================================


@pytest.fixture
def sample_text() -> str:
    """Educational text long enough for every generation flow."""
    return SAMPLE_TEXT


@pytest.fixture
def strict_questions_output() -> str:
    """Model output that follows the requested question format exactly."""
    return STRICT_QUESTIONS_OUTPUT


@pytest.fixture
def make_docx() -> Callable[[str], bytes]:
    """Build an in-memory Word document from paragraphs of text."""
    import io

    from docx import Document as WordDocument

    def _make(*paragraphs: str) -> bytes:
        doc = WordDocument()
        for paragraph in paragraphs:
            doc.add_paragraph(paragraph)
        buffer = io.BytesIO()
        doc.save(buffer)
        return buffer.getvalue()

    return _make


@pytest.fixture
def make_pdf() -> Callable[[str], bytes]:
    """Build an in-memory single-page PDF."""
    import fitz

    def _make(text: str) -> bytes:
        doc = fitz.open()
        page = doc.new_page()
        page.insert_textbox(fitz.Rect(36, 36, 560, 800), text, fontsize=10)
        data = doc.tobytes()
        doc.close()
        return data

    return _make


@pytest.fixture
def document_store(tmp_path):
    """Document store rooted in a per-test directory."""
    from studyforge.services.storage import DocumentStore

    return DocumentStore(root=tmp_path / "uploads")


# ============================================================================
# Generation Client Fixtures
# ============================================================================


def make_generation_client(
    responses: Optional[dict[Any, Any]] = None,
    default: Any = "",
) -> MagicMock:
    """
    Create a mock GenerationClient.

    `responses` maps GenerationOperation -> response text, or an exception
    instance to raise for that operation.
    """
    responses = responses or {}

    async def _complete(operation, prompt, **kwargs):
        result = responses.get(operation, default)
        if isinstance(result, BaseException):
            raise result
        return result, LLMUsage(operation=operation.value, model="gemini/test", total_tokens=42)

    client = MagicMock()
    client.complete = AsyncMock(side_effect=_complete)
    return client


@pytest.fixture
def generation_client_factory() -> Callable[..., MagicMock]:
    return make_generation_client


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite engine with the full schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine) -> async_sessionmaker:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session
