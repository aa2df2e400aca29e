"""Tests for chunker."""

import pytest

from chatbot_rag.ingest.chunker import Span, chunk_metadata, split_spans, split_text


def test_short_text_is_dropped() -> None:
    assert split_text("Too short to keep.") == []


def test_whitespace_only_yields_nothing() -> None:
    assert split_text(" \n\t " * 40) == []


def test_single_chunk_is_trimmed(sample_text: str) -> None:
    chunks = split_text(f"\n\n  {sample_text}  \n")
    assert chunks == [sample_text]


def test_cut_snaps_to_late_boundary() -> None:
    text = "a" * 800 + "." + "b" * 500
    chunks = split_text(text)
    assert chunks == ["a" * 800 + ".", "a" * 199 + "." + "b" * 500]


def test_early_boundary_is_ignored() -> None:
    text = "a" * 600 + "." + "b" * 900
    chunks = split_text(text)
    assert len(chunks[0]) == 1000
    assert chunks[0].endswith("b")


def test_hard_cut_windows_overlap() -> None:
    text = "x" * 2500
    spans = split_spans(text)
    assert [(span.start, span.end) for span in spans] == [(0, 1000), (800, 1800), (1600, 2500)]


def test_small_tail_chunk_dropped() -> None:
    text = "a" * 100 + "b" * 30
    assert split_text(text, chunk_size=100, overlap=0) == ["a" * 100]


def test_prose_chunks_respect_size_and_overlap() -> None:
    text = "".join(f"Sentence number {i} explains the refund policy in detail.\n" for i in range(80))
    spans = split_spans(text)
    assert len(spans) > 1
    for span in spans:
        assert len(span.text) <= 1000
        assert len(span.text) >= 50
        assert text[span.start : span.end] == span.text
    for previous, current in zip(spans, spans[1:]):
        assert current.start < previous.end
        assert current.start > previous.start


@pytest.mark.parametrize("chunk_size, overlap", [(0, 0), (100, 100), (100, -1)])
def test_invalid_window_rejected(chunk_size: int, overlap: int) -> None:
    with pytest.raises(ValueError):
        split_text("x" * 200, chunk_size=chunk_size, overlap=overlap)


def test_chunk_metadata_layers_over_document_metadata() -> None:
    span = Span(text="hello world", start=10, end=21)
    meta = chunk_metadata(span, index=1, total=3, source_file_name="faq.txt", source_type="file", base={"lang": "en"})
    assert meta == {
        "lang": "en",
        "chunk_index": 1,
        "total_chunks": 3,
        "chunk_size": 11,
        "start_char": 10,
        "end_char": 21,
        "source_file_name": "faq.txt",
        "source_type": "file",
    }


def _mixed_prose() -> str:
    return "".join(
        f"Item {i} ships within {i % 7 + 1} days. Returns are free for members.\n\n" if i % 3 == 0
        else f"Item {i} has a one year warranty, spare parts are sold separately. "
        for i in range(120)
    )


@pytest.mark.parametrize(
    "text",
    [
        _mixed_prose(),
        "".join(f"line {i}\n" for i in range(600)),
        "word " * 700,
        "x" * 2500,
    ],
    ids=["mixed-prose", "newline-heavy", "spaces-only", "no-boundary"],
)
def test_chunks_cover_text_with_bounded_overlap(text: str) -> None:
    overlap = 200
    spans = split_spans(text, 1000, overlap)
    stripped = text.strip()
    first_char = text.index(stripped[0])
    assert spans[0].start == first_char
    assert spans[-1].end == first_char + len(stripped)

    for previous, current in zip(spans, spans[1:]):
        assert current.start <= previous.end, "gap between consecutive chunks"
        assert previous.end - current.start <= overlap
        assert current.end > previous.end

    covered = set()
    for span in spans:
        assert text[span.start : span.end] == span.text
        covered.update(range(span.start, span.end))
    assert all(index in covered for index, char in enumerate(text) if not char.isspace())
