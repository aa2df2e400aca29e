"""ID helpers."""

from __future__ import annotations

import uuid


def new_id(prefix: str | None = None) -> str:
    """Return a random identifier such as ``doc_<hex>`` or ``chk_<hex>``."""
    token = uuid.uuid4().hex
    return f"{prefix}_{token}" if prefix else token


__all__ = ["new_id"]
