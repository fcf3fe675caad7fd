"""Embed recent chat history and analyse stored embeddings with an LLM."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from embedding_module.embedding_client import EmbeddingClient
from embedding_module.store import EmbeddingStore, StoredEmbedding
from session_module.controller import SessionController
from session_module.errors import NotFound, UpstreamFailure
from session_module.queries import fetch_chat_messages

from .config import AnalysisConfig
from .llm_client import ChatLLMClient
from .prompts import build_analysis_messages, join_content

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    chat_id: str
    analysis: str


class ConversationAnalysisService:
    """Pipeline from chat messages to stored embeddings to LLM analysis.

    Neither operation retries; failures from the messaging client, the model
    endpoints or the datastore are logged and raised as
    :class:`~session_module.errors.UpstreamFailure`.
    """

    def __init__(
        self,
        controller: SessionController,
        embedding_client: EmbeddingClient,
        store: EmbeddingStore,
        llm_client: Optional[ChatLLMClient] = None,
        config: Optional[AnalysisConfig] = None,
    ) -> None:
        self.config = config or AnalysisConfig()
        self.controller = controller
        self.embedding_client = embedding_client
        self.store = store
        self.llm_client = llm_client or ChatLLMClient(self.config.llm)

    async def embed_chat(self, chat_id: str) -> StoredEmbedding:
        """Embed the recent message window of ``chat_id`` and store it."""
        self.controller.require_authenticated()
        start = time.perf_counter()

        messages = await fetch_chat_messages(self.controller, chat_id, self.config.message_window)
        content = join_content([message.body or "" for message in messages])
        logger.info("Embedding %d message(s) for chat %s", len(messages), chat_id)

        try:
            result = await run_in_threadpool(self.embedding_client.embed_text, content)
        except Exception as exc:
            logger.exception("Embedding request failed for chat %s", chat_id)
            raise UpstreamFailure(str(exc) or "Embedding request failed") from exc

        record = StoredEmbedding(chat_id=chat_id, embedding=result.vector, content=content, usage=result.usage)
        try:
            await run_in_threadpool(self.store.append, record)
        except Exception as exc:
            logger.exception("Failed to save embedding for chat %s", chat_id)
            if self.config.strict_persistence:
                raise UpstreamFailure(str(exc) or "Failed to save embedding") from exc

        logger.info("Embedding for chat %s completed in %.2f seconds", chat_id, time.perf_counter() - start)
        return record

    async def analyze_chat(self, chat_id: str) -> AnalysisResult:
        """Ask the completion endpoint to analyse every stored row of ``chat_id``."""
        try:
            rows = await run_in_threadpool(self.store.list_for_chat, chat_id)
        except Exception as exc:
            logger.exception("Failed to load embeddings for chat %s", chat_id)
            raise UpstreamFailure(str(exc) or "Failed to load embeddings") from exc

        if not rows:
            raise NotFound(f"No embeddings found for chat {chat_id}.")

        content = join_content([row.content for row in rows])
        prompt = build_analysis_messages(
            [row.embedding for row in rows],
            content,
            system_prompt=self.config.system_prompt,
            template=self.config.analysis_prompt,
        )
        logger.info("Analysing chat %s from %d stored row(s)", chat_id, len(rows))

        try:
            analysis = await run_in_threadpool(
                self.llm_client.complete, prompt, model_kwargs=self.config.model_kwargs
            )
        except Exception as exc:
            logger.exception("Analysis request failed for chat %s", chat_id)
            raise UpstreamFailure(str(exc) or "Analysis request failed") from exc

        return AnalysisResult(chat_id=chat_id, analysis=analysis)
