"""Context assembly for retrieval-augmented prompts."""

from __future__ import annotations

from typing import Sequence

from chatbot_rag.core.config import Settings
from chatbot_rag.retrieval.search import SearchEngine, SearchResult

BLOCK_SEPARATOR = "\n\n"


class ContextAssembler:
    """Builds a character-budgeted context block from ranked search results.

    An empty string means nothing relevant was found; the prompt layer then
    answers from general knowledge.
    """

    def __init__(self, search_engine: SearchEngine, settings: Settings) -> None:
        self.search_engine = search_engine
        self.settings = settings

    async def assemble(
        self,
        tenant_id: str,
        query: str,
        max_chars: int | None = None,
        api_key: str | None = None,
    ) -> str:
        budget = self.settings.context_max_chars if max_chars is None else max_chars
        results = await self.search_engine.search(
            tenant_id,
            query,
            limit=self.settings.context_limit,
            threshold=self.settings.context_threshold,
            api_key=api_key,
        )
        return build_context(results, budget)


def build_context(results: Sequence[SearchResult], max_chars: int) -> str:
    """Join whole result blocks in rank order until the next one would overflow."""
    blocks: list[str] = []
    used = 0
    for result in results:
        block = format_block(result)
        cost = len(block) + (len(BLOCK_SEPARATOR) if blocks else 0)
        if used + cost > max_chars:
            break
        blocks.append(block)
        used += cost
    return BLOCK_SEPARATOR.join(blocks)


def format_block(result: SearchResult) -> str:
    if result.title:
        return f"{result.title}: {result.content}"
    return result.content


__all__ = ["ContextAssembler", "build_context", "format_block"]
