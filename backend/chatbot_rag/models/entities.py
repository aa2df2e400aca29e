"""Internal dataclasses representing persisted entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

DocumentType = Literal["file", "url", "text"]


@dataclass(slots=True)
class Document:
    id: str
    tenant_id: str
    type: DocumentType
    title: str | None
    file_name: str | None
    content: str | None
    metadata: dict[str, Any]
    processed: bool
    vectorized: bool
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class NewChunk:
    """Chunk row ready to be inserted."""

    document_id: str
    tenant_id: str
    content: str
    embedding: list[float]
    backend: str
    model: str
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def dim(self) -> int:
        return len(self.embedding)


@dataclass(slots=True)
class StoredChunk:
    id: str
    document_id: str
    tenant_id: str
    content: str
    embedding: list[float]
    backend: str
    model: str
    dim: int
    metadata: dict[str, Any]
    title: str | None = None


@dataclass(slots=True)
class TenantStats:
    tenant_id: str
    total_documents: int
    vectorized_documents: int
    total_chunks: int
    models: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "total_documents": self.total_documents,
            "vectorized_documents": self.vectorized_documents,
            "total_chunks": self.total_chunks,
            "models": list(self.models),
        }


__all__ = ["Document", "DocumentType", "NewChunk", "StoredChunk", "TenantStats"]
