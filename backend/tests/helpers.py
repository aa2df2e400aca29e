"""Shared helpers for the test suite."""

from __future__ import annotations

import httpx
import orjson

from chatbot_rag.db.repository import ChunkStore, DocumentStore
from chatbot_rag.ingest.embeddings import EmbeddingGenerator, RemoteEmbeddingClient
from chatbot_rag.models.entities import NewChunk

TOPIC_VECTORS = {
    "cat": [1.0, 0.0, 0.1],
    "feline": [1.0, 0.0, 0.1],
    "stock": [0.0, 1.0, 0.1],
    "market": [0.0, 1.0, 0.1],
}


def topic_handler(request: httpx.Request) -> httpx.Response:
    """Fake embedding service that maps a few keywords to fixed 3-d vectors."""
    text = orjson.loads(request.content)["content"]["parts"][0]["text"].lower()
    for keyword, vector in TOPIC_VECTORS.items():
        if keyword in text:
            return httpx.Response(200, json={"embedding": {"values": vector}})
    return httpx.Response(200, json={"embedding": {"values": [0.0, 0.0, 1.0]}})


def remote_generator(handler=topic_handler, api_key: str | None = "test-key") -> EmbeddingGenerator:
    client = RemoteEmbeddingClient(
        api_base="https://embeddings.test/v1beta",
        model="text-embedding-004",
        transport=httpx.MockTransport(handler),
    )
    return EmbeddingGenerator(remote_client=client, default_api_key=api_key)


def seed_chunk(
    documents: DocumentStore,
    chunks: ChunkStore,
    tenant_id: str,
    content: str,
    embedding: list[float],
    model: str = "local-hash-384",
    backend: str = "local",
    title: str | None = None,
    file_name: str | None = None,
) -> str:
    """Store one document holding a single pre-embedded chunk; returns the chunk id."""
    document = documents.create(tenant_id=tenant_id, content=content, title=title, file_name=file_name)
    [chunk_id] = chunks.insert_many(
        [
            NewChunk(
                document_id=document.id,
                tenant_id=tenant_id,
                content=content,
                embedding=embedding,
                backend=backend,
                model=model,
                metadata={"chunk_index": 0},
            )
        ]
    )
    return chunk_id


def one_hot(index: int, dim: int = 384) -> list[float]:
    vector = [0.0] * dim
    vector[index] = 1.0
    return vector
