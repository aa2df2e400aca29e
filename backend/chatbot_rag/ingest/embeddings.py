"""Embedding utilities.

Two backends produce vectors:

* ``remote``: a hosted embedding model (Gemini ``text-embedding-004`` by
  default, 768 dimensions) reached over HTTP with an API key.
* ``local``: a deterministic hashed bag-of-words model (384 dimensions) used
  when no key is available or the remote call fails.

Vectors from the two backends are not comparable, so every :class:`Embedding`
carries the backend and model that produced it.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Literal

import httpx

from chatbot_rag.core.config import Settings
from chatbot_rag.core.errors import RemoteEmbeddingError
from chatbot_rag.core.metrics import EMBED_FALLBACKS, EMBED_REQUESTS

logger = logging.getLogger(__name__)

Backend = Literal["remote", "local"]

LOCAL_BACKEND: Backend = "local"
REMOTE_BACKEND: Backend = "remote"


@dataclass(slots=True)
class Embedding:
    values: list[float]
    backend: str
    model: str

    @property
    def dim(self) -> int:
        return len(self.values)


class LocalEmbeddingModel:
    """Lightweight hashed embedding model with deterministic output."""

    def __init__(self, dim: int = 384) -> None:
        self._dim = dim

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def model_name(self) -> str:
        return f"local-hash-{self._dim}"

    def encode(self, text: str) -> Embedding:
        vector = [0.0] * self._dim
        for token in _tokenize(text):
            vector[_hash_token(token) % self._dim] += 1.0
        _normalize(vector)
        return Embedding(values=vector, backend=LOCAL_BACKEND, model=self.model_name)


class RemoteEmbeddingClient:
    """Async client for the Gemini ``embedContent`` REST endpoint."""

    def __init__(
        self,
        api_base: str,
        model: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/models/{self.model}:embedContent"

    async def embed(self, text: str, api_key: str) -> list[float]:
        client = self._get_client()
        payload = {
            "model": f"models/{self.model}",
            "content": {"parts": [{"text": text}]},
        }
        try:
            response = await client.post(
                self.endpoint,
                json=payload,
                headers={"x-goog-api-key": api_key},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise RemoteEmbeddingError(f"Embedding request to {self.endpoint} failed: {exc}") from exc
        return _extract_values(response.json())

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client


class EmbeddingGenerator:
    """Turns text into vectors, degrading to the local model instead of failing.

    The remote client and the default credential are injected at construction;
    a per-call ``api_key`` takes precedence over the default so each tenant can
    use its own key.
    """

    def __init__(
        self,
        local_model: LocalEmbeddingModel | None = None,
        remote_client: RemoteEmbeddingClient | None = None,
        default_api_key: str | None = None,
    ) -> None:
        self.local_model = local_model or LocalEmbeddingModel()
        self.remote_client = remote_client
        self.default_api_key = default_api_key

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "EmbeddingGenerator":
        remote = RemoteEmbeddingClient(
            api_base=settings.embedding_api_base,
            model=settings.embedding_model,
            timeout=settings.embedding_timeout,
            transport=transport,
        )
        return cls(
            local_model=LocalEmbeddingModel(dim=settings.local_dim),
            remote_client=remote,
            default_api_key=settings.embedding_api_key,
        )

    @property
    def remote_model_name(self) -> str | None:
        return self.remote_client.model if self.remote_client is not None else None

    def backend_for_model(self, model: str) -> Backend | None:
        if model == self.local_model.model_name:
            return LOCAL_BACKEND
        if model == self.remote_model_name:
            return REMOTE_BACKEND
        return None

    async def embed(
        self,
        text: str,
        api_key: str | None = None,
        backend: Backend | None = None,
    ) -> Embedding:
        """Embed ``text``; never raises.

        ``backend="local"`` skips the remote service entirely. Otherwise the
        remote model is used when a key is available, and any failure falls
        back to the local model.
        """
        key = api_key or self.default_api_key
        if backend == LOCAL_BACKEND or self.remote_client is None or not key:
            EMBED_REQUESTS.labels(backend=LOCAL_BACKEND, outcome="ok").inc()
            return self.local_model.encode(text)

        try:
            values = await self.remote_client.embed(text, key)
        except Exception as exc:
            logger.warning("Remote embedding failed, using local fallback: %s", exc)
            EMBED_REQUESTS.labels(backend=REMOTE_BACKEND, outcome="error").inc()
            EMBED_FALLBACKS.inc()
            return self.local_model.encode(text)

        EMBED_REQUESTS.labels(backend=REMOTE_BACKEND, outcome="ok").inc()
        return Embedding(values=values, backend=REMOTE_BACKEND, model=self.remote_client.model)

    async def close(self) -> None:
        if self.remote_client is not None:
            await self.remote_client.close()


def _extract_values(payload: Any) -> list[float]:
    embedding = payload.get("embedding") if isinstance(payload, dict) else None
    values = embedding.get("values") if isinstance(embedding, dict) else None
    if not values:
        raise RemoteEmbeddingError("Embedding response did not contain any values")
    return [float(value) for value in values]


def _tokenize(text: str) -> list[str]:
    return text.lower().split()


def _hash_token(token: str) -> int:
    """Polynomial string hash (31 multiplier) folded to signed 32 bits after each step."""
    value = 0
    for char in token:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
        if value >= 0x80000000:
            value -= 0x100000000
    return abs(value)


def _normalize(vector: list[float]) -> None:
    norm = math.sqrt(sum(value * value for value in vector))
    if norm == 0:
        return
    inv = 1.0 / norm
    for idx, value in enumerate(vector):
        vector[idx] = value * inv


__all__ = [
    "Backend",
    "Embedding",
    "EmbeddingGenerator",
    "LocalEmbeddingModel",
    "RemoteEmbeddingClient",
    "LOCAL_BACKEND",
    "REMOTE_BACKEND",
]
