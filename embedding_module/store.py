"""Append-only persistence for chat embeddings.

Three backends share the :class:`EmbeddingStore` contract: an in-memory
store for tests and throwaway runs, a local directory store keeping vectors
in ``embeddings.npy`` next to ``metadata.json``, and a Supabase store that
talks to the PostgREST API of a ``messages`` table.  Every backend returns
rows for a chat in insertion order and never deduplicates.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import Any, Dict, List, Optional, Protocol

import numpy as np
import requests

from .config import StoreConfig

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class StoredEmbedding:
    chat_id: str
    embedding: List[float]
    content: str
    usage: Dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=_now_iso)


class EmbeddingStore(Protocol):
    def append(self, record: StoredEmbedding) -> None: ...

    def list_for_chat(self, chat_id: str) -> List[StoredEmbedding]: ...


class InMemoryEmbeddingStore:
    def __init__(self) -> None:
        self._rows: List[StoredEmbedding] = []
        self._lock = RLock()

    def append(self, record: StoredEmbedding) -> None:
        with self._lock:
            self._rows.append(record)

    def list_for_chat(self, chat_id: str) -> List[StoredEmbedding]:
        with self._lock:
            return [row for row in self._rows if row.chat_id == chat_id]


class LocalEmbeddingStore:
    """Persist rows under ``store_dir`` as ``metadata.json`` + ``embeddings.npy``."""

    def __init__(self, store_dir: str) -> None:
        self.store_dir = Path(store_dir)
        self.metadata_path = self.store_dir / "metadata.json"
        self.vectors_path = self.store_dir / "embeddings.npy"
        self._metadata: List[Dict[str, Any]] = []
        self._vectors: Optional[np.ndarray] = None
        self._lock = RLock()
        self.store_dir.mkdir(parents=True, exist_ok=True)
        self._load()

    def _load(self) -> None:
        if not self.metadata_path.exists():
            logger.info("Starting empty embedding store at %s", self.store_dir)
            return

        with self.metadata_path.open("r", encoding="utf-8") as f:
            metadata = json.load(f)
        if not isinstance(metadata, list):
            raise ValueError("metadata.json must contain a list of metadata entries")
        self._metadata = metadata
        if self.vectors_path.exists():
            self._vectors = np.load(self.vectors_path)

        vector_count = 0 if self._vectors is None else self._vectors.shape[0]
        if vector_count != len(self._metadata):
            logger.warning(
                "Embedding store mismatch: %d vectors, metadata contains %d entries",
                vector_count,
                len(self._metadata),
            )
        logger.info("Loaded %d embedding row(s) from %s", len(self._metadata), self.store_dir)

    def append(self, record: StoredEmbedding) -> None:
        vector = np.asarray(record.embedding, dtype="float32").reshape(1, -1)
        with self._lock:
            if self._vectors is None or self._vectors.shape[0] == 0:
                vectors = vector
            elif self._vectors.shape[1] != vector.shape[1]:
                raise ValueError(
                    f"Embedding dimension {vector.shape[1]} does not match store dimension {self._vectors.shape[1]}"
                )
            else:
                vectors = np.vstack([self._vectors, vector])

            metadata = self._metadata + [
                {
                    "chat_id": record.chat_id,
                    "content": record.content,
                    "usage": record.usage,
                    "created_at": record.created_at,
                }
            ]
            np.save(self.vectors_path, vectors)
            with self.metadata_path.open("w", encoding="utf-8") as f:
                json.dump(metadata, f, ensure_ascii=False)
            self._vectors = vectors
            self._metadata = metadata
        logger.debug("Appended embedding row for chat %s (%d total)", record.chat_id, len(self._metadata))

    def list_for_chat(self, chat_id: str) -> List[StoredEmbedding]:
        with self._lock:
            rows: List[StoredEmbedding] = []
            for idx, entry in enumerate(self._metadata):
                if entry.get("chat_id") != chat_id:
                    continue
                if self._vectors is not None and idx < self._vectors.shape[0]:
                    vector = self._vectors[idx].tolist()
                else:
                    vector = []
                rows.append(
                    StoredEmbedding(
                        chat_id=chat_id,
                        embedding=vector,
                        content=entry.get("content", ""),
                        usage=entry.get("usage") or {},
                        created_at=entry.get("created_at", ""),
                    )
                )
            return rows


class SupabaseEmbeddingStore:
    """Store rows in a Supabase table through its PostgREST endpoint."""

    def __init__(self, url: str, key: str, *, table: str = "messages", request_timeout: int = 30) -> None:
        if not url or not key:
            raise ValueError("Supabase URL and key are required")
        self.base_url = f"{url.rstrip('/')}/rest/v1/{table}"
        self.key = key
        self.request_timeout = request_timeout

    def _headers(self, **extra: str) -> Dict[str, str]:
        headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Content-Type": "application/json",
        }
        headers.update(extra)
        return headers

    def append(self, record: StoredEmbedding) -> None:
        start = time.perf_counter()
        response = requests.post(
            self.base_url,
            json=[
                {
                    "chat_id": record.chat_id,
                    "embedding": record.embedding,
                    "usage": record.usage,
                    "content": record.content,
                }
            ],
            headers=self._headers(Prefer="return=minimal"),
            timeout=self.request_timeout,
        )
        response.raise_for_status()
        logger.info("Saved embedding for chat %s in %.2f seconds", record.chat_id, time.perf_counter() - start)

    def list_for_chat(self, chat_id: str) -> List[StoredEmbedding]:
        response = requests.get(
            self.base_url,
            params={
                "select": "chat_id,embedding,usage,content,created_at",
                "chat_id": f"eq.{chat_id}",
                "order": "created_at.asc",
            },
            headers=self._headers(),
            timeout=self.request_timeout,
        )
        response.raise_for_status()
        rows = response.json() or []
        logger.debug("Fetched %d embedding row(s) for chat %s", len(rows), chat_id)
        return [
            StoredEmbedding(
                chat_id=row.get("chat_id", chat_id),
                embedding=self._decode_vector(row.get("embedding")),
                content=row.get("content") or "",
                usage=row.get("usage") or {},
                created_at=row.get("created_at") or "",
            )
            for row in rows
        ]

    @staticmethod
    def _decode_vector(value: Any) -> List[float]:
        # pgvector columns come back as "[0.1,0.2,...]" strings.
        if value is None:
            return []
        if isinstance(value, str):
            value = json.loads(value)
        return [float(v) for v in value]


def build_store(config: StoreConfig) -> EmbeddingStore:
    """Instantiate the backend named by ``config.backend``."""
    backend = (config.backend or "memory").lower()
    logger.info("Using %s embedding store", backend)
    if backend == "memory":
        return InMemoryEmbeddingStore()
    if backend == "local":
        if not config.store_dir:
            raise ValueError("store_dir is required for the local embedding store")
        return LocalEmbeddingStore(config.store_dir)
    if backend == "supabase":
        return SupabaseEmbeddingStore(
            config.supabase_url or "",
            config.supabase_key or "",
            table=config.table,
            request_timeout=config.request_timeout,
        )
    raise ValueError(f"Unknown embedding store backend {config.backend!r}")
