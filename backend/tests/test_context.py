"""Tests for context assembly."""

import pytest
from helpers import one_hot, seed_chunk

from chatbot_rag.ingest.embeddings import LocalEmbeddingModel
from chatbot_rag.retrieval import ContextAssembler, SearchResult, build_context


def _result(title, content, similarity=0.9) -> SearchResult:
    return SearchResult(
        chunk_id="chk",
        document_id="doc",
        title=title,
        content=content,
        similarity=similarity,
        metadata={},
    )


def test_blocks_joined_in_rank_order() -> None:
    results = [_result("Hours", "Open nine to six."), _result(None, "Closed on holidays.")]
    assert build_context(results, 3000) == "Hours: Open nine to six.\n\nClosed on holidays."


def test_budget_keeps_whole_blocks_only() -> None:
    results = [_result(None, "a" * 40), _result(None, "b" * 40), _result(None, "c" * 10)]
    context = build_context(results, 85)
    assert context == "a" * 40 + "\n\n" + "b" * 40
    assert len(context) <= 85


def test_stops_at_first_block_that_overflows() -> None:
    results = [_result(None, "a" * 40), _result(None, "b" * 100), _result(None, "c" * 5)]
    assert build_context(results, 60) == "a" * 40


def test_first_block_larger_than_budget_gives_empty_context() -> None:
    assert build_context([_result(None, "a" * 100)], 50) == ""


def test_no_results_gives_empty_string() -> None:
    assert build_context([], 3000) == ""


@pytest.mark.asyncio
async def test_assembler_returns_empty_string_without_tenant_data(search_engine, settings) -> None:
    assembler = ContextAssembler(search_engine=search_engine, settings=settings)
    assert await assembler.assemble("nobody", "what are your opening hours?") == ""


@pytest.mark.asyncio
async def test_assembler_uses_matching_chunks(search_engine, settings, documents, chunks) -> None:
    hit = LocalEmbeddingModel().encode("hours").values.index(1.0)
    seed_chunk(documents, chunks, "t1", "We are open from nine to six.", one_hot(hit), title="Opening hours")
    seed_chunk(documents, chunks, "t1", "Unrelated text.", one_hot((hit + 1) % 384))

    assembler = ContextAssembler(search_engine=search_engine, settings=settings)
    assert await assembler.assemble("t1", "hours") == "Opening hours: We are open from nine to six."
    assert await assembler.assemble("t1", "hours", max_chars=10) == ""
