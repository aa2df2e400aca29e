"""Tests for the ingest pipeline."""

import asyncio

import httpx
import pytest
from helpers import remote_generator

from chatbot_rag.core.errors import DocumentNotFoundError, EmbeddingMismatchError
from chatbot_rag.ingest.pipeline import IngestPipeline


@pytest.mark.asyncio
async def test_long_document_is_chunked_and_stored(pipeline: IngestPipeline, documents, chunks) -> None:
    content = "A. B. C. " * 150
    outcome = await pipeline.add_document("t1", content, title="Letters")

    assert outcome.status == "vectorized"
    assert outcome.chunks >= 2
    assert outcome.backend == "local"
    stored = chunks.list_for_document(outcome.document_id)
    assert len(stored) == outcome.chunks
    for index, chunk in enumerate(stored):
        assert len(chunk.content) >= 50
        assert chunk.content in content
        assert chunk.dim == 384
        assert chunk.metadata["chunk_index"] == index
        assert chunk.metadata["total_chunks"] == outcome.chunks
        assert chunk.metadata["source_type"] == "text"

    document = documents.get(outcome.document_id)
    assert document.processed is True
    assert document.vectorized is True


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["", "   \n  ", "Too short.", None])
async def test_empty_document_is_processed_but_not_vectorized(
    pipeline: IngestPipeline, documents, chunks, content
) -> None:
    outcome = await pipeline.add_document("t1", content)

    assert outcome.status == "empty"
    assert outcome.chunks == 0
    assert chunks.list_for_document(outcome.document_id) == []
    document = documents.get(outcome.document_id)
    assert document.processed is True
    assert document.vectorized is False


@pytest.mark.asyncio
async def test_missing_document_raises(pipeline: IngestPipeline) -> None:
    with pytest.raises(DocumentNotFoundError):
        await pipeline.ingest_document("doc_missing")


@pytest.mark.asyncio
async def test_storage_failure_marks_document_and_reraises(
    pipeline: IngestPipeline, documents, chunks, monkeypatch, sample_text
) -> None:
    document = documents.create(tenant_id="t1", content=sample_text)

    def broken_insert(records):
        raise RuntimeError("disk full")

    monkeypatch.setattr(chunks, "insert_many", broken_insert)
    with pytest.raises(RuntimeError, match="disk full"):
        await pipeline.ingest_document(document.id)

    stored = documents.get(document.id)
    assert stored.processed is True
    assert stored.vectorized is False


@pytest.mark.asyncio
async def test_reingest_replaces_chunks(pipeline: IngestPipeline, chunks, sample_text) -> None:
    outcome = await pipeline.add_document("t1", sample_text)
    first_ids = {chunk.id for chunk in chunks.list_for_document(outcome.document_id)}

    again = await pipeline.reingest_document(outcome.document_id)
    second = chunks.list_for_document(outcome.document_id)
    assert again.chunks == len(second) == outcome.chunks
    assert first_ids.isdisjoint(chunk.id for chunk in second)


@pytest.mark.asyncio
async def test_concurrent_reingest_does_not_duplicate_chunks(pipeline: IngestPipeline, chunks, sample_text) -> None:
    outcome = await pipeline.add_document("t1", sample_text)
    await asyncio.gather(*(pipeline.reingest_document(outcome.document_id) for _ in range(4)))
    assert len(chunks.list_for_document(outcome.document_id)) == outcome.chunks


@pytest.mark.asyncio
async def test_deleting_document_removes_its_chunks(pipeline: IngestPipeline, documents, chunks, sample_text) -> None:
    outcome = await pipeline.add_document("t1", sample_text)
    assert documents.delete(outcome.document_id) is True
    assert chunks.list_for_document(outcome.document_id) == []
    assert chunks.list_for_tenant("t1") == []


@pytest.mark.asyncio
async def test_remote_tenant_rejects_local_vectors(documents, chunks, settings, sample_text) -> None:
    calls = {"fail": False}

    def handler(request: httpx.Request) -> httpx.Response:
        if calls["fail"]:
            return httpx.Response(503)
        return httpx.Response(200, json={"embedding": {"values": [0.5, 0.5, 0.5]}})

    embedder = remote_generator(handler)
    pipeline = IngestPipeline(documents=documents, chunks=chunks, embedder=embedder, settings=settings)
    first = await pipeline.add_document("t1", sample_text)
    assert first.model == "text-embedding-004"

    calls["fail"] = True
    second = documents.create(tenant_id="t1", content=sample_text)
    with pytest.raises(EmbeddingMismatchError):
        await pipeline.ingest_document(second.id)
    await embedder.close()

    assert chunks.list_for_document(second.id) == []
    stored = documents.get(second.id)
    assert stored.processed is True
    assert stored.vectorized is False


@pytest.mark.asyncio
async def test_local_tenant_stays_local_when_key_appears(documents, chunks, settings, sample_text) -> None:
    embedder = remote_generator(api_key=None)
    pipeline = IngestPipeline(documents=documents, chunks=chunks, embedder=embedder, settings=settings)
    first = await pipeline.add_document("t1", sample_text)
    second = await pipeline.add_document("t1", sample_text, api_key="new-key")
    await embedder.close()

    assert first.model == second.model == "local-hash-384"


@pytest.mark.asyncio
async def test_partial_remote_failure_reembeds_document_locally(documents, chunks, settings) -> None:
    seen = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["count"] += 1
        if seen["count"] == 2:
            return httpx.Response(500)
        return httpx.Response(200, json={"embedding": {"values": [0.5, 0.5, 0.5]}})

    embedder = remote_generator(handler)
    pipeline = IngestPipeline(documents=documents, chunks=chunks, embedder=embedder, settings=settings)
    outcome = await pipeline.add_document("t1", "Sentence about returns and refunds.\n" * 80)
    await embedder.close()

    assert outcome.chunks > 1
    assert {chunk.model for chunk in chunks.list_for_document(outcome.document_id)} == {"local-hash-384"}


@pytest.mark.asyncio
async def test_document_locks_released_after_ingest(pipeline: IngestPipeline, sample_text) -> None:
    outcomes = [await pipeline.add_document("t1", sample_text) for _ in range(50)]
    await asyncio.gather(*(pipeline.reingest_document(outcome.document_id) for outcome in outcomes[:5] * 3))
    assert pipeline._locks == {}
    assert not pipeline._lock_users


@pytest.mark.asyncio
async def test_document_lock_released_after_failure(pipeline: IngestPipeline) -> None:
    with pytest.raises(DocumentNotFoundError):
        await pipeline.ingest_document("doc_missing")
    assert pipeline._locks == {}
