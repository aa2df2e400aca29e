"""Common ingestion data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

IngestStatus = Literal["vectorized", "empty"]


@dataclass(slots=True)
class ExtractedContent:
    """Text pulled out of an uploaded file."""

    text: str
    mime: str
    title: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class IngestOutcome:
    """Result of ingesting one document."""

    document_id: str
    tenant_id: str
    status: IngestStatus
    chunks: int = 0
    backend: str | None = None
    model: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "document_id": self.document_id,
            "tenant_id": self.tenant_id,
            "status": self.status,
            "chunks": self.chunks,
            "backend": self.backend,
            "model": self.model,
        }


__all__ = ["ExtractedContent", "IngestOutcome", "IngestStatus"]
