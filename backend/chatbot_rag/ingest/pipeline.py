"""Ingest pipeline orchestration."""

from __future__ import annotations

import asyncio
import time
from collections import Counter
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Sequence

from chatbot_rag.core.config import Settings
from chatbot_rag.core.errors import DocumentNotFoundError, EmbeddingMismatchError
from chatbot_rag.core.logging import get_logger
from chatbot_rag.core.metrics import CHUNKS_STORED, INGEST_DURATION
from chatbot_rag.db.repository import ChunkStore, DocumentStore
from chatbot_rag.ingest.chunker import Span, chunk_metadata, split_spans
from chatbot_rag.ingest.embeddings import (
    LOCAL_BACKEND,
    Backend,
    Embedding,
    EmbeddingGenerator,
)
from chatbot_rag.ingest.types import IngestOutcome
from chatbot_rag.models.entities import Document, DocumentType, NewChunk

logger = get_logger(__name__)


class IngestPipeline:
    """Coordinate chunking, embeddings, and persistence for tenant documents."""

    def __init__(
        self,
        documents: DocumentStore,
        chunks: ChunkStore,
        embedder: EmbeddingGenerator,
        settings: Settings,
    ) -> None:
        self.documents = documents
        self.chunks = chunks
        self.embedder = embedder
        self.settings = settings
        # Per-document locks, dropped again once no caller holds or awaits them.
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: Counter[str] = Counter()

    async def add_document(
        self,
        tenant_id: str,
        content: str | None,
        doc_type: DocumentType = "text",
        title: str | None = None,
        file_name: str | None = None,
        metadata: dict[str, Any] | None = None,
        api_key: str | None = None,
    ) -> IngestOutcome:
        """Create a document row and ingest it straight away."""
        document = self.documents.create(
            tenant_id=tenant_id,
            content=content,
            doc_type=doc_type,
            title=title,
            file_name=file_name,
            metadata=metadata,
        )
        return await self.ingest_document(document.id, api_key=api_key)

    async def ingest_document(self, document_id: str, api_key: str | None = None) -> IngestOutcome:
        """Chunk, embed and store a document, then flag it processed/vectorized.

        Existing chunks of the document are left alone; use
        :meth:`reingest_document` to replace them.
        """
        async with self._document_lock(document_id):
            return await self._ingest(document_id, api_key)

    async def reingest_document(self, document_id: str, api_key: str | None = None) -> IngestOutcome:
        """Purge a document's chunks and ingest it again from its current content."""
        async with self._document_lock(document_id):
            removed = self.chunks.delete_for_document(document_id)
            if removed:
                logger.info("Purged %s chunks before re-ingesting %s", removed, document_id)
            return await self._ingest(document_id, api_key)

    # Internal helpers -------------------------------------------------

    @asynccontextmanager
    async def _document_lock(self, document_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(document_id, asyncio.Lock())
        self._lock_users[document_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[document_id] -= 1
            if self._lock_users[document_id] <= 0:
                del self._lock_users[document_id]
                del self._locks[document_id]

    async def _ingest(self, document_id: str, api_key: str | None) -> IngestOutcome:
        start_time = time.perf_counter()
        try:
            outcome = await self._process(document_id, api_key)
        except Exception as exc:
            INGEST_DURATION.labels(status="failed").observe(time.perf_counter() - start_time)
            logger.exception(
                "Ingest of document %s failed: %s",
                document_id,
                exc,
                extra={"ctx_document_id": document_id},
            )
            self._mark_failed(document_id)
            raise
        INGEST_DURATION.labels(status=outcome.status).observe(time.perf_counter() - start_time)
        self._update_chunk_metric()
        return outcome

    async def _process(self, document_id: str, api_key: str | None) -> IngestOutcome:
        document = self.documents.get(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)

        spans = self._split(document.content or "")
        if not spans:
            logger.info(
                "Document %s has no content to embed",
                document_id,
                extra={"ctx_tenant_id": document.tenant_id, "ctx_document_id": document_id},
            )
            self.documents.set_status(document_id, processed=True, vectorized=False)
            return IngestOutcome(document_id=document_id, tenant_id=document.tenant_id, status="empty")

        embeddings = await self._embed_spans(document, spans, api_key)
        records = [
            NewChunk(
                document_id=document.id,
                tenant_id=document.tenant_id,
                content=span.text,
                embedding=embedding.values,
                backend=embedding.backend,
                model=embedding.model,
                metadata=chunk_metadata(
                    span,
                    index=index,
                    total=len(spans),
                    source_file_name=document.file_name,
                    source_type=document.type,
                    base=document.metadata,
                ),
            )
            for index, (span, embedding) in enumerate(zip(spans, embeddings))
        ]
        self.chunks.insert_many(records)
        self.documents.set_status(document_id, processed=True, vectorized=True)

        logger.info(
            "Stored %s chunks for document %s",
            len(records),
            document_id,
            extra={"ctx_tenant_id": document.tenant_id, "ctx_document_id": document_id},
        )
        return IngestOutcome(
            document_id=document_id,
            tenant_id=document.tenant_id,
            status="vectorized",
            chunks=len(records),
            backend=embeddings[0].backend,
            model=embeddings[0].model,
        )

    def _split(self, content: str) -> list[Span]:
        return split_spans(
            content,
            self.settings.chunk_size,
            self.settings.chunk_overlap,
            min_chars=self.settings.min_chunk_chars,
            boundary_ratio=self.settings.boundary_ratio,
        )

    async def _embed_spans(
        self,
        document: Document,
        spans: Sequence[Span],
        api_key: str | None,
    ) -> list[Embedding]:
        expected_model = self._tenant_model(document)
        backend = self.embedder.backend_for_model(expected_model) if expected_model else None

        embeddings = await self._gather(spans, api_key, backend)
        if len({embedding.model for embedding in embeddings}) > 1:
            logger.warning(
                "Remote embedding failed for part of document %s; re-embedding it locally",
                document.id,
                extra={"ctx_document_id": document.id},
            )
            embeddings = await self._gather(spans, api_key, LOCAL_BACKEND)

        actual_model = embeddings[0].model
        if expected_model and actual_model != expected_model:
            raise EmbeddingMismatchError(document.tenant_id, expected_model, actual_model)
        return embeddings

    async def _gather(
        self,
        spans: Sequence[Span],
        api_key: str | None,
        backend: Backend | None,
    ) -> list[Embedding]:
        semaphore = asyncio.Semaphore(self.settings.embed_concurrency)

        async def _one(span: Span) -> Embedding:
            async with semaphore:
                return await self.embedder.embed(span.text, api_key=api_key, backend=backend)

        return list(await asyncio.gather(*(_one(span) for span in spans)))

    def _tenant_model(self, document: Document) -> str | None:
        """Model already used by the tenant's other documents, if any."""
        models = self.chunks.models_for_tenant(document.tenant_id, exclude_document_id=document.id)
        if not models:
            return None
        if len(models) > 1:
            logger.warning(
                "Tenant %s already mixes embedding models %s",
                document.tenant_id,
                sorted(models),
                extra={"ctx_tenant_id": document.tenant_id},
            )
        return models.most_common(1)[0][0]

    def _mark_failed(self, document_id: str) -> None:
        try:
            self.documents.set_status(document_id, processed=True, vectorized=False)
        except Exception as exc:
            logger.exception("Failed to record ingest failure for %s: %s", document_id, exc)

    def _update_chunk_metric(self) -> None:
        CHUNKS_STORED.set(self.chunks.count())


__all__ = ["IngestPipeline"]
