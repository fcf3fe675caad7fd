"""Contract for the external messaging client.

The messaging platform client owns the wire protocol, pairing and message
retrieval.  This module only describes what the bridge needs from it and
how a concrete implementation is located at startup.
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol

from .state import LifecycleEventKind

logger = logging.getLogger(__name__)

ClientEventHandler = Callable[[LifecycleEventKind, Optional[str]], None]


@dataclass
class ChatSummary:
    id: str
    name: str = "Unknown"

    def to_payload(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name or "Unknown"}


@dataclass
class ChatMessage:
    sender: str
    body: str
    timestamp: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        return {"from": self.sender, "body": self.body, "timestamp": self.timestamp}


class ChatClient(Protocol):
    """Asynchronous messaging client emitting lifecycle events.

    Implementations call the registered handler with ``PAIRING_ARTIFACT``
    (payload is the raw pairing string), ``AUTHENTICATED`` or
    ``AUTH_FAILED``.  ``fetch_messages`` raises :class:`LookupError` for
    an unknown chat and returns messages oldest first.
    """

    def set_event_handler(self, handler: ClientEventHandler) -> None: ...

    async def initialize(self) -> None: ...

    async def logout(self) -> None: ...

    async def list_chats(self) -> List[ChatSummary]: ...

    async def fetch_messages(self, chat_id: str, limit: int) -> List[ChatMessage]: ...


def load_client_factory(path: str) -> Callable[[], ChatClient]:
    """Resolve a ``package.module:callable`` path to a client factory."""
    if not path or ":" not in path:
        raise ValueError(f"Client factory must look like 'module:callable', got {path!r}")

    module_name, _, attr = path.partition(":")
    logger.info("Loading messaging client factory %s from %s", attr, module_name)
    module = importlib.import_module(module_name)
    try:
        factory = getattr(module, attr)
    except AttributeError as exc:
        raise ValueError(f"Module {module_name} has no attribute {attr!r}") from exc
    if not callable(factory):
        raise ValueError(f"{path} is not callable")
    return factory
