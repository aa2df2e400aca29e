"""Test fixtures for the chatbot RAG core."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

_KEY_VARS = ("CBRAG_CONFIG", "CBRAG_EMBEDDING_API_KEY", "GOOGLE_AI_API_KEY", "GEMINI_API_KEY")


def _reset_dependencies() -> None:
    from chatbot_rag.api import dependencies as deps
    from chatbot_rag.core.config import get_settings

    get_settings.cache_clear()
    deps.get_app_settings.cache_clear()
    if deps._DB is not None:
        deps._DB.close()
    deps._DB = None
    deps._EMBEDDER = None
    deps._PIPELINE = None
    deps._SEARCH_ENGINE = None
    deps._CONTEXT_ASSEMBLER = None


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("CBRAG_DB_PATH", str(tmp_path / "rag.db"))
    for name in _KEY_VARS:
        monkeypatch.delenv(name, raising=False)
    _reset_dependencies()
    yield
    _reset_dependencies()


@pytest.fixture
def settings(tmp_path: Path):
    from chatbot_rag.core.config import Settings

    return Settings(db_path=tmp_path / "unit.db")


@pytest.fixture
def db(settings):
    from chatbot_rag.db.sqlite import SQLiteDatabase

    database = SQLiteDatabase(settings.db_path)
    database.ensure_schema()
    yield database
    database.close()


@pytest.fixture
def documents(db):
    from chatbot_rag.db.repository import DocumentStore

    return DocumentStore(db)


@pytest.fixture
def chunks(db):
    from chatbot_rag.db.repository import ChunkStore

    return ChunkStore(db)


@pytest.fixture
def embedder():
    from chatbot_rag.ingest.embeddings import EmbeddingGenerator

    return EmbeddingGenerator()


@pytest.fixture
def pipeline(documents, chunks, embedder, settings):
    from chatbot_rag.ingest.pipeline import IngestPipeline

    return IngestPipeline(documents=documents, chunks=chunks, embedder=embedder, settings=settings)


@pytest.fixture
def search_engine(chunks, embedder, settings):
    from chatbot_rag.retrieval import SearchEngine

    return SearchEngine(chunks=chunks, embedder=embedder, settings=settings)


@pytest.fixture(scope="session")
def sample_text() -> str:
    return (
        "Our store opens at nine in the morning and closes at six in the evening.\n"
        "Returns are accepted within thirty days with the original receipt.\n"
        "Shipping is free for orders above fifty dollars."
    )
