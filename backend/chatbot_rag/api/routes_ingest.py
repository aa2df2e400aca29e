"""Document ingestion API routes."""

from __future__ import annotations

from typing import Awaitable, Callable

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from chatbot_rag.api.dependencies import (
    get_app_settings,
    get_document_store,
    get_embedding_key,
    get_ingest_pipeline,
)
from chatbot_rag.core.config import Settings
from chatbot_rag.core.errors import DocumentNotFoundError, UnsupportedContentError
from chatbot_rag.db.repository import DocumentStore
from chatbot_rag.ingest.loaders import extract_text
from chatbot_rag.ingest.pipeline import IngestPipeline
from chatbot_rag.ingest.types import ExtractedContent, IngestOutcome
from chatbot_rag.models.dto import (
    BatchUploadResponse,
    DeleteResponse,
    DocumentCreateRequest,
    DocumentResponse,
    IngestResponse,
)
from chatbot_rag.models.entities import Document

router = APIRouter()

# Batch uploads skip files with less text than this.
MIN_UPLOAD_CHARS = 10


@router.post(
    "/tenants/{tenant_id}/documents",
    response_model=IngestResponse,
    status_code=201,
    summary="Create a text or url data source",
)
async def create_document(
    tenant_id: str,
    request: DocumentCreateRequest,
    documents: DocumentStore = Depends(get_document_store),
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
    api_key: str | None = Depends(get_embedding_key),
) -> IngestResponse:
    metadata = dict(request.metadata)
    if request.type == "url":
        if not request.url:
            raise HTTPException(status_code=422, detail="url data sources require a url")
        metadata.setdefault("source_url", request.url)
    document = documents.create(
        tenant_id=tenant_id,
        content=request.content,
        doc_type=request.type,
        title=request.title or request.url,
        metadata=metadata,
    )
    if not request.vectorize:
        return IngestResponse(document_id=document.id, tenant_id=tenant_id, status="pending")
    outcome = await _run_ingest(pipeline.ingest_document, document.id, api_key)
    return IngestResponse(**outcome.to_dict())


@router.post(
    "/tenants/{tenant_id}/documents/upload",
    response_model=IngestResponse,
    status_code=201,
    summary="Upload a file data source",
)
async def upload_document(
    tenant_id: str,
    file: UploadFile = File(...),
    title: str | None = Form(default=None),
    vectorize: bool = Form(default=True),
    documents: DocumentStore = Depends(get_document_store),
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
    settings: Settings = Depends(get_app_settings),
    api_key: str | None = Depends(get_embedding_key),
) -> IngestResponse:
    file_name, extracted = await _extract_upload(file, settings.max_upload_bytes)
    document = _create_file_document(documents, tenant_id, file_name, extracted, title)
    if not vectorize:
        return IngestResponse(document_id=document.id, tenant_id=tenant_id, status="pending")
    outcome = await _run_ingest(pipeline.ingest_document, document.id, api_key)
    return IngestResponse(**outcome.to_dict())


@router.post(
    "/tenants/{tenant_id}/documents/batch-upload",
    response_model=BatchUploadResponse,
    status_code=201,
    summary="Upload several files as data sources",
)
async def batch_upload_documents(
    tenant_id: str,
    files: list[UploadFile] = File(...),
    documents: DocumentStore = Depends(get_document_store),
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
    settings: Settings = Depends(get_app_settings),
    api_key: str | None = Depends(get_embedding_key),
) -> BatchUploadResponse:
    if len(files) > settings.max_upload_files:
        raise HTTPException(
            status_code=400,
            detail=f"At most {settings.max_upload_files} files can be uploaded at once",
        )
    # Every file is read and extracted before any document is created.
    extracted_files = [await _extract_upload(file, settings.max_upload_bytes) for file in files]

    results: list[IngestResponse] = []
    skipped: list[str] = []
    for file_name, extracted in extracted_files:
        if len(extracted.text.strip()) < MIN_UPLOAD_CHARS:
            skipped.append(file_name)
            continue
        document = _create_file_document(documents, tenant_id, file_name, extracted, None)
        outcome = await _run_ingest(pipeline.ingest_document, document.id, api_key)
        results.append(IngestResponse(**outcome.to_dict()))
    return BatchUploadResponse(results=results, skipped=skipped, count=len(results))


@router.delete(
    "/tenants/{tenant_id}/documents",
    response_model=DeleteResponse,
    summary="Delete every data source and chunk of a tenant",
)
async def delete_tenant_documents(
    tenant_id: str,
    documents: DocumentStore = Depends(get_document_store),
) -> DeleteResponse:
    return DeleteResponse(status="ok", deleted=documents.delete_for_tenant(tenant_id))


@router.get(
    "/tenants/{tenant_id}/documents",
    response_model=list[DocumentResponse],
    summary="List a tenant's data sources",
)
async def list_documents(
    tenant_id: str,
    documents: DocumentStore = Depends(get_document_store),
) -> list[DocumentResponse]:
    return [_to_response(document) for document in documents.list_for_tenant(tenant_id)]


@router.get("/documents/{document_id}", response_model=DocumentResponse, summary="Fetch a data source")
async def get_document(
    document_id: str,
    documents: DocumentStore = Depends(get_document_store),
) -> DocumentResponse:
    document = documents.get(document_id)
    if document is None:
        raise HTTPException(status_code=404, detail="Data source not found")
    return _to_response(document)


@router.post(
    "/documents/{document_id}/vectorize",
    response_model=IngestResponse,
    summary="Re-chunk and re-embed a data source",
)
async def vectorize_document(
    document_id: str,
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
    api_key: str | None = Depends(get_embedding_key),
) -> IngestResponse:
    outcome = await _run_ingest(pipeline.reingest_document, document_id, api_key)
    return IngestResponse(**outcome.to_dict())


@router.delete("/documents/{document_id}", response_model=DeleteResponse, summary="Delete a data source")
async def delete_document(
    document_id: str,
    documents: DocumentStore = Depends(get_document_store),
) -> DeleteResponse:
    if not documents.delete(document_id):
        raise HTTPException(status_code=404, detail="Data source not found")
    return DeleteResponse(status="ok", deleted=1)


async def _extract_upload(file: UploadFile, max_bytes: int) -> tuple[str, ExtractedContent]:
    file_name = file.filename or "upload"
    data = await file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise HTTPException(status_code=413, detail=f"{file_name} exceeds the {max_bytes} byte upload limit")
    try:
        return file_name, extract_text(file_name, data, file.content_type)
    except UnsupportedContentError as exc:
        raise HTTPException(status_code=415, detail=str(exc)) from exc


def _create_file_document(
    documents: DocumentStore,
    tenant_id: str,
    file_name: str,
    extracted: ExtractedContent,
    title: str | None,
) -> Document:
    return documents.create(
        tenant_id=tenant_id,
        content=extracted.text,
        doc_type="file",
        title=title or extracted.title,
        file_name=file_name,
        metadata={**extracted.metadata, "mime": extracted.mime},
    )


async def _run_ingest(
    operation: Callable[..., Awaitable[IngestOutcome]],
    document_id: str,
    api_key: str | None,
) -> IngestOutcome:
    try:
        return await operation(document_id, api_key=api_key)
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Data source not found") from exc
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to process data source") from exc


def _to_response(document: Document) -> DocumentResponse:
    return DocumentResponse(
        id=document.id,
        tenant_id=document.tenant_id,
        type=document.type,
        title=document.title,
        file_name=document.file_name,
        metadata=document.metadata,
        processed=document.processed,
        vectorized=document.vectorized,
        created_at=document.created_at,
        updated_at=document.updated_at,
    )


__all__ = ["router"]
