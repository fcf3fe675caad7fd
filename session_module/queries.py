"""Authenticated read access to chats and messages."""

from __future__ import annotations

import logging
from typing import List

from .client import ChatMessage, ChatSummary
from .controller import SessionController
from .errors import NotFound

logger = logging.getLogger(__name__)


class ChatQueries:
    """Chat listing and recent message retrieval gated on authentication."""

    def __init__(self, controller: SessionController, *, recent_messages_limit: int = 10) -> None:
        self.controller = controller
        self.recent_messages_limit = recent_messages_limit

    async def list_conversations(self) -> List[ChatSummary]:
        self.controller.require_authenticated()
        chats = await self.controller.call_client(self.controller.client.list_chats, "list chats")
        logger.info("Listed %d conversation(s)", len(chats))
        return chats

    async def recent_messages(self, chat_id: str, limit: int = 0) -> List[ChatMessage]:
        self.controller.require_authenticated()
        return await fetch_chat_messages(self.controller, chat_id, limit or self.recent_messages_limit)


async def fetch_chat_messages(controller: SessionController, chat_id: str, limit: int) -> List[ChatMessage]:
    """Fetch up to ``limit`` messages for ``chat_id`` in client order."""

    async def fetch() -> List[ChatMessage]:
        try:
            return await controller.client.fetch_messages(chat_id, limit)
        except LookupError as exc:
            raise NotFound(f"Chat {chat_id} not found") from exc

    messages = await controller.call_client(fetch, "fetch messages")
    logger.debug("Fetched %d message(s) for chat %s", len(messages), chat_id)
    return messages
