"""Application configuration handling."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

ENV_PREFIX = "CBRAG_"
DEFAULT_CONFIG_PATH = Path("~/.config/chatbot-rag/config.yaml")

# Vendor variables accepted for the process-wide embedding credential.
_API_KEY_ENV_FALLBACKS = ("GOOGLE_AI_API_KEY", "GEMINI_API_KEY")

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("storage", "db_path"): "db_path",
    ("embeddings", "api_key"): "embedding_api_key",
    ("embeddings", "model"): "embedding_model",
    ("embeddings", "api_base"): "embedding_api_base",
    ("embeddings", "timeout"): "embedding_timeout",
    ("embeddings", "local_dim"): "local_dim",
    ("embeddings", "concurrency"): "embed_concurrency",
    ("chunking", "size"): "chunk_size",
    ("chunking", "overlap"): "chunk_overlap",
    ("chunking", "min_chars"): "min_chunk_chars",
    ("chunking", "boundary_ratio"): "boundary_ratio",
    ("retrieval", "limit"): "search_limit",
    ("retrieval", "threshold"): "search_threshold",
    ("retrieval", "context_limit"): "context_limit",
    ("retrieval", "context_threshold"): "context_threshold",
    ("retrieval", "context_max_chars"): "context_max_chars",
    ("uploads", "max_bytes"): "max_upload_bytes",
    ("uploads", "max_files"): "max_upload_files",
}


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    db_path: Path = Field(default=Path.home() / ".chatbot-rag" / "rag.db")
    embedding_api_key: str | None = None
    embedding_model: str = "text-embedding-004"
    embedding_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    embedding_timeout: float = 30.0
    local_dim: int = Field(default=384, ge=1)
    embed_concurrency: int = Field(default=8, ge=1)
    chunk_size: int = Field(default=1000, ge=1)
    chunk_overlap: int = Field(default=200, ge=0)
    min_chunk_chars: int = Field(default=50, ge=0)
    boundary_ratio: float = Field(default=0.7, ge=0.0, le=1.0)
    search_limit: int = Field(default=5, ge=1)
    search_threshold: float = 0.5
    context_limit: int = Field(default=5, ge=1)
    context_threshold: float = 0.3
    context_max_chars: int = Field(default=3000, ge=0)
    max_upload_bytes: int = Field(default=50 * 1024 * 1024, ge=1)
    max_upload_files: int = Field(default=10, ge=1)

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("db_path", mode="before")
    @classmethod
    def _expand_db_path(cls, value: Any) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value).expanduser()
        raise TypeError("db_path must be a path or string")

    @field_validator("embedding_api_key", mode="before")
    @classmethod
    def _blank_key_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("search_threshold", "context_threshold")
    @classmethod
    def _check_threshold(cls, value: float) -> float:
        if not -1.0 <= value <= 1.0:
            raise ValueError("similarity thresholds must lie within [-1, 1]")
        return value

    @model_validator(mode="after")
    def _check_overlap(self) -> "Settings":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        return self

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        if not data.get("embedding_api_key"):
            vendor_key = _vendor_api_key()
            if vendor_key:
                data["embedding_api_key"] = vendor_key
        return cls(**data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML configuration to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        if isinstance(value, Mapping):
            flat.update(_flatten_yaml(value, prefix=next_prefix))
        else:
            mapped_key = _YAML_KEY_MAP.get(next_prefix)
            if mapped_key:
                flat[mapped_key] = value
            elif key in Settings.model_fields:
                flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map environment variables with CBRAG_ prefix into Settings fields."""
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            overrides[field_name] = value
    return overrides


def _vendor_api_key() -> str | None:
    for name in _API_KEY_ENV_FALLBACKS:
        value = os.environ.get(name)
        if value:
            return value
    return None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings"]
