"""Exception hierarchy for the RAG core."""

from __future__ import annotations


class ChatbotRagError(Exception):
    """Base class for errors raised by the RAG core."""


class DocumentNotFoundError(ChatbotRagError, LookupError):
    """Raised when a document id does not resolve to a stored document."""

    def __init__(self, document_id: str) -> None:
        super().__init__(f"Document {document_id} not found")
        self.document_id = document_id


class EmbeddingMismatchError(ChatbotRagError):
    """Raised when new vectors would not be comparable with a tenant's stored vectors."""

    def __init__(self, tenant_id: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Tenant {tenant_id} stores '{expected}' embeddings; refusing to add '{actual}' embeddings"
        )
        self.tenant_id = tenant_id
        self.expected = expected
        self.actual = actual


class RemoteEmbeddingError(ChatbotRagError):
    """Raised by the remote embedding client when the service call fails."""


class UnsupportedContentError(ChatbotRagError, ValueError):
    """Raised when an uploaded file cannot be converted to text."""


__all__ = [
    "ChatbotRagError",
    "DocumentNotFoundError",
    "EmbeddingMismatchError",
    "RemoteEmbeddingError",
    "UnsupportedContentError",
]
