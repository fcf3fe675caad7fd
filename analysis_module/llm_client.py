"""Client wrapper for chat-completions requests."""

from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional

import requests

from .config import AnalysisLLMConfig

logger = logging.getLogger(__name__)


class ChatLLMClient:
    """Thin wrapper around an OpenAI compatible chat-completions endpoint."""

    def __init__(self, config: AnalysisLLMConfig) -> None:
        self.config = config

    def complete(
        self,
        messages: List[Dict[str, str]],
        *,
        model_kwargs: Optional[Dict[str, object]] = None,
    ) -> str:
        """Return the full completion text without interpreting it."""
        payload: Dict[str, object] = {
            "model": self.config.model,
            "messages": messages,
            "stream": False,
        }
        if model_kwargs:
            payload.update(model_kwargs)

        logger.info("Requesting completion from %s using model %s", self.config.endpoint, self.config.model)
        start = time.perf_counter()
        response = requests.post(
            self.config.endpoint,
            json=payload,
            headers=self._headers(),
            timeout=self.config.request_timeout,
        )
        response.raise_for_status()
        data = response.json()
        logger.debug("Completion received in %.2f seconds", time.perf_counter() - start)
        choice = (data.get("choices") or [{}])[0]
        message = choice.get("message") or {}
        return message.get("content", "") or ""

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers
