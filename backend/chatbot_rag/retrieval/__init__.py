"""Retrieval orchestration components."""

from .context import ContextAssembler, build_context
from .search import SearchEngine, SearchResult
from .similarity import cosine_similarity

__all__ = [
    "ContextAssembler",
    "SearchEngine",
    "SearchResult",
    "build_context",
    "cosine_similarity",
]
