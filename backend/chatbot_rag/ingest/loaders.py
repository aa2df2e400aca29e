"""Text extraction for uploaded data-source files."""

from __future__ import annotations

import io
import json
from pathlib import PurePath

import yaml
from docx import Document as DocxDocument
from markdown_it import MarkdownIt

from chatbot_rag.core.errors import UnsupportedContentError
from chatbot_rag.ingest.types import ExtractedContent

_MD = MarkdownIt()


class BaseLoader:
    """Common loader interface."""

    suffixes: tuple[str, ...] = ()
    mime_types: tuple[str, ...] = ()

    def can_load(self, file_name: str, content_type: str | None) -> bool:
        if content_type and content_type.split(";")[0].strip().lower() in self.mime_types:
            return True
        return PurePath(file_name).suffix.lower() in self.suffixes

    def load(self, file_name: str, data: bytes) -> ExtractedContent:  # pragma: no cover - interface
        raise NotImplementedError

    @property
    def mime(self) -> str:
        return self.mime_types[0]


class TextLoader(BaseLoader):
    suffixes = (".txt", ".text", ".log", ".csv")
    mime_types = ("text/plain", "text/csv")

    def load(self, file_name: str, data: bytes) -> ExtractedContent:
        return ExtractedContent(
            text=_decode(data),
            mime=self.mime,
            title=PurePath(file_name).stem,
        )


class JsonLoader(BaseLoader):
    suffixes = (".json",)
    mime_types = ("application/json",)

    def load(self, file_name: str, data: bytes) -> ExtractedContent:
        try:
            parsed = json.loads(_decode(data))
        except json.JSONDecodeError as exc:
            raise UnsupportedContentError(f"{file_name} is not valid JSON: {exc}") from exc
        return ExtractedContent(
            text=json.dumps(parsed, indent=2, ensure_ascii=False),
            mime=self.mime,
            title=PurePath(file_name).stem,
            metadata={"type": "json"},
        )


class MarkdownLoader(BaseLoader):
    suffixes = (".md", ".markdown", ".mdx")
    mime_types = ("text/markdown",)

    def load(self, file_name: str, data: bytes) -> ExtractedContent:
        front_matter, body = _split_front_matter(_decode(data))
        metadata: dict[str, object] = {}
        if front_matter:
            metadata["front_matter"] = front_matter
        title = front_matter.get("title") if front_matter else None
        return ExtractedContent(
            text=_markdown_to_text(body),
            mime=self.mime,
            title=str(title) if title else PurePath(file_name).stem,
            metadata=metadata,
        )


class DocxLoader(BaseLoader):
    suffixes = (".docx",)
    mime_types = ("application/vnd.openxmlformats-officedocument.wordprocessingml.document",)

    def load(self, file_name: str, data: bytes) -> ExtractedContent:
        try:
            document = DocxDocument(io.BytesIO(data))
        except Exception as exc:
            raise UnsupportedContentError(f"{file_name} is not a readable DOCX file: {exc}") from exc
        paragraphs = [para.text for para in document.paragraphs if para.text.strip()]
        core = document.core_properties
        metadata: dict[str, object] = {}
        if core.category:
            metadata["category"] = core.category
        if core.author:
            metadata["author"] = core.author
        return ExtractedContent(
            text="\n".join(paragraphs),
            mime=self.mime,
            title=core.title or PurePath(file_name).stem,
            metadata=metadata,
        )


class LoaderRegistry:
    """Registry that selects an appropriate loader for an upload."""

    def __init__(self) -> None:
        self._loaders: list[BaseLoader] = [
            MarkdownLoader(),
            JsonLoader(),
            DocxLoader(),
            TextLoader(),
        ]

    def for_upload(self, file_name: str, content_type: str | None = None) -> BaseLoader | None:
        for loader in self._loaders:
            if loader.can_load(file_name, content_type):
                return loader
        return None

    def load(self, file_name: str, data: bytes, content_type: str | None = None) -> ExtractedContent:
        loader = self.for_upload(file_name, content_type)
        if loader is None:
            raise UnsupportedContentError(
                f"Unsupported file type: {content_type or PurePath(file_name).suffix or 'unknown'}"
            )
        extracted = loader.load(file_name, data)
        extracted.metadata.setdefault("size_bytes", len(data))
        return extracted


def extract_text(file_name: str, data: bytes, content_type: str | None = None) -> ExtractedContent:
    """Convert an uploaded file into text using the default registry."""
    return LoaderRegistry().load(file_name, data, content_type)


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="ignore")


def _split_front_matter(text: str) -> tuple[dict[str, object] | None, str]:
    if text.startswith("---"):
        parts = text.split("---", 2)
        if len(parts) >= 3:
            try:
                front_matter = yaml.safe_load(parts[1]) or {}
            except yaml.YAMLError:
                return None, text
            if isinstance(front_matter, dict):
                return front_matter, parts[2]
    return None, text


def _markdown_to_text(text: str) -> str:
    # Block-level tokens carry no content; inline tokens hold the rendered text of each block.
    parts = [token.content.strip() for token in _MD.parse(text) if token.type in {"inline", "fence", "code_block"}]
    parts = [part for part in parts if part]
    return "\n".join(parts) if parts else text.strip()


__all__ = ["LoaderRegistry", "extract_text"]
