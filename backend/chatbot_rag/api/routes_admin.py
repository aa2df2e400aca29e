"""Administrative routes for the RAG service."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from chatbot_rag.api.dependencies import get_search_engine
from chatbot_rag.core.metrics import metrics_response
from chatbot_rag.models.dto import TenantStatsResponse
from chatbot_rag.retrieval import SearchEngine

router = APIRouter()


@router.get(
    "/tenants/{tenant_id}/stats",
    response_model=TenantStatsResponse,
    summary="Document and chunk counts for a tenant",
)
async def tenant_stats(
    tenant_id: str,
    engine: SearchEngine = Depends(get_search_engine),
) -> TenantStatsResponse:
    return TenantStatsResponse(**engine.tenant_stats(tenant_id).to_dict())


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


__all__ = ["router"]
