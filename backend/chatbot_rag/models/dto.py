"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class DocumentCreateRequest(BaseModel):
    type: Literal["text", "url"] = "text"
    content: str = Field(default="", description="Raw text, or the scraped page for url sources")
    title: str | None = None
    url: str | None = Field(default=None, description="Source URL for url documents")
    metadata: dict[str, Any] = Field(default_factory=dict)
    vectorize: bool = Field(default=True, description="Ingest immediately after creation")


class DocumentResponse(BaseModel):
    id: str
    tenant_id: str
    type: str
    title: str | None
    file_name: str | None
    metadata: dict[str, Any]
    processed: bool
    vectorized: bool
    created_at: datetime
    updated_at: datetime


class IngestResponse(BaseModel):
    document_id: str
    tenant_id: str
    status: Literal["vectorized", "empty", "pending"]
    chunks: int = 0
    backend: str | None = None
    model: str | None = None


class BatchUploadResponse(BaseModel):
    results: list[IngestResponse]
    skipped: list[str] = Field(default_factory=list, description="Files with too little text to ingest")
    count: int


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    limit: int | None = Field(default=None, ge=1, le=50, description="Defaults to the configured search_limit")
    threshold: float | None = Field(
        default=None, ge=-1.0, le=1.0, description="Defaults to the configured search_threshold"
    )


class SearchHit(BaseModel):
    chunk_id: str
    document_id: str
    title: str | None
    content: str
    similarity: float
    metadata: dict[str, Any]


class SearchResponse(BaseModel):
    query: str
    results: list[SearchHit]
    count: int


class ContextRequest(BaseModel):
    query: str = Field(min_length=1)
    max_chars: int | None = Field(default=None, ge=0)


class ContextResponse(BaseModel):
    context: str


class DeleteResponse(BaseModel):
    status: Literal["ok"]
    deleted: int


class TenantStatsResponse(BaseModel):
    tenant_id: str
    total_documents: int
    vectorized_documents: int
    total_chunks: int
    models: list[str]


__all__ = [
    "DocumentCreateRequest",
    "DocumentResponse",
    "IngestResponse",
    "BatchUploadResponse",
    "SearchRequest",
    "SearchHit",
    "SearchResponse",
    "ContextRequest",
    "ContextResponse",
    "DeleteResponse",
    "TenantStatsResponse",
]
