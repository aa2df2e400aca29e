"""FastAPI application setup for the chatbot RAG service."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatbot_rag.api.dependencies import (
    get_app_settings,
    get_context_assembler,
    get_database,
    get_embedder,
    get_ingest_pipeline,
    get_search_engine,
    shutdown_dependencies,
)
from chatbot_rag.api.routes_admin import router as admin_router
from chatbot_rag.api.routes_ingest import router as ingest_router
from chatbot_rag.api.routes_query import router as query_router
from chatbot_rag.core.logging import configure_logging

configure_logging()

app = FastAPI(
    title="Chatbot RAG",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ingest_router, prefix="", tags=["ingest"])
app.include_router(query_router, prefix="", tags=["query"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.on_event("startup")
async def startup() -> None:
    """Warm up core singletons on startup."""
    get_app_settings()
    get_database()
    get_embedder()
    get_ingest_pipeline()
    get_search_engine()
    get_context_assembler()


@app.on_event("shutdown")
async def shutdown() -> None:
    await shutdown_dependencies()


@app.get("/health", tags=["admin"])
def health() -> dict[str, bool]:
    """Simple liveness check."""
    return {"ok": True}
