"""Configuration objects for embedding generation and storage."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class EmbeddingConfig:
    """Embedding endpoint connection details."""

    endpoint: str = "https://api.openai.com/v1/embeddings"
    model: str = "text-embedding-3-small"
    api_key: Optional[str] = None
    request_timeout: int = 60
    model_kwargs: Dict[str, Any] = field(default_factory=dict)


@dataclass
class StoreConfig:
    """Where embedding rows are persisted.

    ``backend`` is one of ``memory``, ``local`` or ``supabase``.
    """

    backend: str = "memory"
    store_dir: Optional[str] = None
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    table: str = "messages"
    request_timeout: int = 30
