"""Client wrapper for an OpenAI compatible embeddings endpoint."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List

import requests

from .config import EmbeddingConfig

logger = logging.getLogger(__name__)


@dataclass
class EmbeddingResult:
    vector: List[float]
    usage: Dict[str, Any] = field(default_factory=dict)


class EmbeddingClient:
    """Thin wrapper around an embeddings endpoint."""

    def __init__(self, config: EmbeddingConfig) -> None:
        self.config = config

    def embed_text(self, text: str) -> EmbeddingResult:
        """Embed ``text`` with a single request, empty input included."""
        payload: Dict[str, Any] = {
            "model": self.config.model,
            "input": text,
            "encoding_format": "float",
        }
        if self.config.model_kwargs:
            payload.update(self.config.model_kwargs)

        logger.info("Requesting embedding from %s using model %s (%d chars)", self.config.endpoint, self.config.model, len(text))
        start = time.perf_counter()
        response = requests.post(
            self.config.endpoint,
            json=payload,
            headers=self._headers(),
            timeout=self.config.request_timeout,
        )
        response.raise_for_status()
        data = response.json()
        logger.debug("Embedding completed in %.2f seconds", time.perf_counter() - start)

        items = data.get("data") or []
        if not items or not items[0].get("embedding"):
            raise RuntimeError("Embedding service returned no vectors")
        vector = [float(value) for value in items[0]["embedding"]]
        return EmbeddingResult(vector=vector, usage=data.get("usage") or {})

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers
