"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Header

from chatbot_rag.core.config import Settings, get_settings
from chatbot_rag.db.repository import ChunkStore, DocumentStore
from chatbot_rag.db.sqlite import SQLiteDatabase
from chatbot_rag.ingest.embeddings import EmbeddingGenerator
from chatbot_rag.ingest.pipeline import IngestPipeline
from chatbot_rag.retrieval import ContextAssembler, SearchEngine

_DB: SQLiteDatabase | None = None
_EMBEDDER: EmbeddingGenerator | None = None
_PIPELINE: IngestPipeline | None = None
_SEARCH_ENGINE: SearchEngine | None = None
_CONTEXT_ASSEMBLER: ContextAssembler | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_database() -> SQLiteDatabase:
    global _DB
    if _DB is None:
        settings = get_app_settings()
        db = SQLiteDatabase(settings.db_path)
        db.ensure_schema()
        _DB = db
    return _DB


def get_document_store() -> DocumentStore:
    return DocumentStore(get_database())


def get_chunk_store() -> ChunkStore:
    return ChunkStore(get_database())


def get_embedder() -> EmbeddingGenerator:
    global _EMBEDDER
    if _EMBEDDER is None:
        _EMBEDDER = EmbeddingGenerator.from_settings(get_app_settings())
    return _EMBEDDER


def get_ingest_pipeline() -> IngestPipeline:
    global _PIPELINE
    if _PIPELINE is None:
        _PIPELINE = IngestPipeline(
            documents=get_document_store(),
            chunks=get_chunk_store(),
            embedder=get_embedder(),
            settings=get_app_settings(),
        )
    return _PIPELINE


def get_search_engine() -> SearchEngine:
    global _SEARCH_ENGINE
    if _SEARCH_ENGINE is None:
        _SEARCH_ENGINE = SearchEngine(
            chunks=get_chunk_store(),
            embedder=get_embedder(),
            settings=get_app_settings(),
        )
    return _SEARCH_ENGINE


def get_context_assembler() -> ContextAssembler:
    global _CONTEXT_ASSEMBLER
    if _CONTEXT_ASSEMBLER is None:
        _CONTEXT_ASSEMBLER = ContextAssembler(
            search_engine=get_search_engine(),
            settings=get_app_settings(),
        )
    return _CONTEXT_ASSEMBLER


def get_embedding_key(x_embedding_key: str | None = Header(default=None)) -> str | None:
    """Per-request embedding credential; falls back to the configured default when absent."""
    return x_embedding_key or None


async def shutdown_dependencies() -> None:
    global _DB, _EMBEDDER, _PIPELINE, _SEARCH_ENGINE, _CONTEXT_ASSEMBLER
    if _EMBEDDER is not None:
        await _EMBEDDER.close()
    if _DB is not None:
        _DB.close()
    _DB = None
    _EMBEDDER = None
    _PIPELINE = None
    _SEARCH_ENGINE = None
    _CONTEXT_ASSEMBLER = None


__all__ = [
    "get_app_settings",
    "get_database",
    "get_document_store",
    "get_chunk_store",
    "get_embedder",
    "get_ingest_pipeline",
    "get_search_engine",
    "get_context_assembler",
    "get_embedding_key",
    "shutdown_dependencies",
]
