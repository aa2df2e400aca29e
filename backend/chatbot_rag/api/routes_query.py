"""Query API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from chatbot_rag.api.dependencies import get_context_assembler, get_embedding_key, get_search_engine
from chatbot_rag.core.logging import get_logger
from chatbot_rag.models.dto import ContextRequest, ContextResponse, SearchHit, SearchRequest, SearchResponse
from chatbot_rag.retrieval import ContextAssembler, SearchEngine

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/tenants/{tenant_id}/search",
    response_model=SearchResponse,
    summary="Rank a tenant's chunks against a query",
)
async def search(
    tenant_id: str,
    request: SearchRequest,
    engine: SearchEngine = Depends(get_search_engine),
    api_key: str | None = Depends(get_embedding_key),
) -> SearchResponse:
    try:
        results = await engine.search(
            tenant_id,
            request.query,
            limit=request.limit,
            threshold=request.threshold,
            api_key=api_key,
        )
    except Exception as exc:
        logger.exception("Search failed for tenant %s", tenant_id, extra={"ctx_tenant_id": tenant_id})
        raise HTTPException(status_code=500, detail="Failed to perform search") from exc
    hits = [SearchHit(**result.to_dict()) for result in results]
    return SearchResponse(query=request.query, results=hits, count=len(hits))


@router.post(
    "/tenants/{tenant_id}/context",
    response_model=ContextResponse,
    summary="Assemble prompt context for a query",
)
async def context(
    tenant_id: str,
    request: ContextRequest,
    assembler: ContextAssembler = Depends(get_context_assembler),
    api_key: str | None = Depends(get_embedding_key),
) -> ContextResponse:
    try:
        text = await assembler.assemble(tenant_id, request.query, max_chars=request.max_chars, api_key=api_key)
    except Exception as exc:
        logger.exception("Context assembly failed for tenant %s", tenant_id, extra={"ctx_tenant_id": tenant_id})
        raise HTTPException(status_code=500, detail="Failed to perform search") from exc
    return ContextResponse(context=text)


__all__ = ["router"]
