"""Chunking utilities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

_BOUNDARY_CHARS = (".", "\n")


@dataclass(slots=True)
class Span:
    text: str
    start: int
    end: int


def split_text(
    text: str,
    chunk_size: int = 1000,
    overlap: int = 200,
    *,
    min_chars: int = 50,
    boundary_ratio: float = 0.7,
) -> list[str]:
    """Split text into overlapping, boundary-aware chunks.

    Windows of ``chunk_size`` characters are taken from the start of the text.
    A window that stops short of the end is cut after its last period or
    newline when that boundary lies past ``boundary_ratio`` of the window. The
    next window starts ``overlap`` characters before the end of the previous
    chunk. Chunks are trimmed and those shorter than ``min_chars`` are dropped.
    """
    spans = split_spans(
        text,
        chunk_size,
        overlap,
        min_chars=min_chars,
        boundary_ratio=boundary_ratio,
    )
    return [span.text for span in spans]


def split_spans(
    text: str,
    chunk_size: int = 1000,
    overlap: int = 200,
    *,
    min_chars: int = 50,
    boundary_ratio: float = 0.7,
) -> list[Span]:
    """Same walk as :func:`split_text`, keeping each chunk's character offsets."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if overlap < 0 or overlap >= chunk_size:
        raise ValueError("overlap must be >= 0 and smaller than chunk_size")

    spans: list[Span] = []
    length = len(text)
    start = 0
    while start < length:
        end = min(start + chunk_size, length)
        if end < length:
            end = _snap_to_boundary(text, start, end, chunk_size * boundary_ratio)
        span = _trim(text, start, end)
        if span is not None and len(span.text) >= min_chars:
            spans.append(span)
        if end >= length:
            break
        start = max(end - overlap, start + 1)
    return spans


def _snap_to_boundary(text: str, start: int, end: int, min_offset: float) -> int:
    window = text[start:end]
    break_point = max(window.rfind(char) for char in _BOUNDARY_CHARS)
    if break_point > min_offset:
        return start + break_point + 1
    return end


def _trim(text: str, start: int, end: int) -> Span | None:
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    if start >= end:
        return None
    return Span(text=text[start:end], start=start, end=end)


def chunk_metadata(
    span: Span,
    index: int,
    total: int,
    source_file_name: str | None,
    source_type: str,
    base: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Metadata stored with every chunk row, layered over the document's own."""
    meta = dict(base or {})
    meta.update(
        {
            "chunk_index": index,
            "total_chunks": total,
            "chunk_size": len(span.text),
            "start_char": span.start,
            "end_char": span.end,
            "source_file_name": source_file_name,
            "source_type": source_type,
        }
    )
    return meta


__all__ = ["Span", "split_text", "split_spans", "chunk_metadata"]
