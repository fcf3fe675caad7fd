"""Embedding generation and append-only embedding storage."""

from .config import EmbeddingConfig, StoreConfig
from .embedding_client import EmbeddingClient, EmbeddingResult
from .store import (
    EmbeddingStore,
    InMemoryEmbeddingStore,
    LocalEmbeddingStore,
    StoredEmbedding,
    SupabaseEmbeddingStore,
    build_store,
)

__all__ = [
    "EmbeddingClient",
    "EmbeddingConfig",
    "EmbeddingResult",
    "EmbeddingStore",
    "InMemoryEmbeddingStore",
    "LocalEmbeddingStore",
    "StoreConfig",
    "StoredEmbedding",
    "SupabaseEmbeddingStore",
    "build_store",
]
