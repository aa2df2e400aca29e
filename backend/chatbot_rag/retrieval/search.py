"""Search orchestration."""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass
from typing import Any, Sequence

from chatbot_rag.core.config import Settings
from chatbot_rag.core.logging import get_logger
from chatbot_rag.core.metrics import SEARCH_LATENCY
from chatbot_rag.db.repository import ChunkStore
from chatbot_rag.ingest.embeddings import EmbeddingGenerator
from chatbot_rag.models.entities import StoredChunk, TenantStats
from chatbot_rag.retrieval.similarity import cosine_similarity

logger = get_logger(__name__)


@dataclass(slots=True)
class SearchResult:
    chunk_id: str
    document_id: str
    title: str | None
    content: str
    similarity: float
    metadata: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "chunk_id": self.chunk_id,
            "document_id": self.document_id,
            "title": self.title,
            "content": self.content,
            "similarity": self.similarity,
            "metadata": self.metadata,
        }


class SearchEngine:
    """Brute-force cosine similarity search over one tenant's chunks."""

    def __init__(
        self,
        chunks: ChunkStore,
        embedder: EmbeddingGenerator,
        settings: Settings,
    ) -> None:
        self.chunks = chunks
        self.embedder = embedder
        self.settings = settings

    async def search(
        self,
        tenant_id: str,
        query: str,
        limit: int | None = None,
        threshold: float | None = None,
        api_key: str | None = None,
    ) -> list[SearchResult]:
        start_time = time.perf_counter()
        try:
            return await self._rank(tenant_id, query, limit, threshold, api_key)
        finally:
            SEARCH_LATENCY.observe(time.perf_counter() - start_time)

    def tenant_stats(self, tenant_id: str) -> TenantStats:
        return self.chunks.tenant_stats(tenant_id)

    async def _rank(
        self,
        tenant_id: str,
        query: str,
        limit: int | None,
        threshold: float | None,
        api_key: str | None,
    ) -> list[SearchResult]:
        top_k = self.settings.search_limit if limit is None else limit
        min_score = self.settings.search_threshold if threshold is None else threshold

        rows = self.chunks.list_for_tenant(tenant_id)
        if not rows or top_k <= 0:
            return []

        backend = self.embedder.backend_for_model(_dominant_model(rows))
        query_embedding = await self.embedder.embed(query, api_key=api_key, backend=backend)

        scored: list[SearchResult] = []
        skipped = 0
        for row in rows:
            if row.model != query_embedding.model or row.dim != query_embedding.dim:
                skipped += 1
                continue
            similarity = cosine_similarity(query_embedding.values, row.embedding)
            if similarity >= min_score:
                scored.append(_to_result(row, similarity))

        if skipped:
            logger.warning(
                "Skipped %s of %s chunks for tenant %s: stored model differs from query model %s",
                skipped,
                len(rows),
                tenant_id,
                query_embedding.model,
                extra={"ctx_tenant_id": tenant_id},
            )

        scored.sort(key=lambda item: item.similarity, reverse=True)
        return scored[:top_k]


def _dominant_model(rows: Sequence[StoredChunk]) -> str:
    counts = Counter(row.model for row in rows)
    return counts.most_common(1)[0][0]


def _to_result(row: StoredChunk, similarity: float) -> SearchResult:
    return SearchResult(
        chunk_id=row.id,
        document_id=row.document_id,
        title=row.title,
        content=row.content,
        similarity=similarity,
        metadata=row.metadata,
    )


__all__ = ["SearchEngine", "SearchResult"]
