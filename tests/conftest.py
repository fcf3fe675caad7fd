import asyncio
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from embedding_module.embedding_client import EmbeddingResult  # noqa: E402
from session_module.client import ChatMessage, ChatSummary  # noqa: E402
from session_module.state import LifecycleEventKind  # noqa: E402


def fake_render(raw: str) -> str:
    return f"data:{raw}"


class FakeChatClient:
    """In-process stand-in for the messaging client."""

    def __init__(
        self,
        *,
        chats: Optional[List[ChatSummary]] = None,
        messages: Optional[Dict[str, List[ChatMessage]]] = None,
        init_events: Optional[List[Tuple[LifecycleEventKind, Optional[str]]]] = None,
    ) -> None:
        self.handler = None
        self.chats = chats or []
        self.messages = messages or {}
        self.init_events = list(init_events or [])
        self.calls: List[object] = []
        self.fail_logout = False
        self.fail_list = False
        self.logout_delay = 0.0

    def set_event_handler(self, handler) -> None:
        self.handler = handler

    def emit(self, kind: LifecycleEventKind, payload: Optional[str] = None) -> None:
        if self.handler is not None:
            self.handler(kind, payload)

    async def initialize(self) -> None:
        self.calls.append("initialize")
        for kind, payload in self.init_events:
            self.emit(kind, payload)

    async def logout(self) -> None:
        self.calls.append("logout")
        if self.logout_delay:
            await asyncio.sleep(self.logout_delay)
        if self.fail_logout:
            raise RuntimeError("logout failed")

    async def list_chats(self) -> List[ChatSummary]:
        self.calls.append("list_chats")
        if self.fail_list:
            raise RuntimeError("client unavailable")
        return list(self.chats)

    async def fetch_messages(self, chat_id: str, limit: int) -> List[ChatMessage]:
        self.calls.append(("fetch_messages", chat_id, limit))
        if chat_id not in self.messages:
            raise KeyError(chat_id)
        return self.messages[chat_id][-limit:]


class FakeEmbeddingClient:
    def __init__(self, vector: Optional[List[float]] = None, fail: bool = False) -> None:
        self.vector = vector or [0.5, 0.25, 0.125]
        self.fail = fail
        self.inputs: List[str] = []

    def embed_text(self, text: str) -> EmbeddingResult:
        self.inputs.append(text)
        if self.fail:
            raise RuntimeError("embedding service unavailable")
        return EmbeddingResult(vector=list(self.vector), usage={"prompt_tokens": 3, "total_tokens": 3})


class FakeLLMClient:
    def __init__(self, reply: str = '[{"title": "Topic", "description": "Greetings"}]', fail: bool = False) -> None:
        self.reply = reply
        self.fail = fail
        self.requests: List[List[Dict[str, str]]] = []

    def complete(self, messages, *, model_kwargs=None) -> str:
        self.requests.append(messages)
        if self.fail:
            raise RuntimeError("completion service unavailable")
        return self.reply


class FailingStore:
    def append(self, record) -> None:
        raise RuntimeError("datastore write failed")

    def list_for_chat(self, chat_id: str):
        raise RuntimeError("datastore read failed")


@pytest.fixture
def chat_client() -> FakeChatClient:
    return FakeChatClient(
        chats=[ChatSummary(id="123@c.us", name="Alice"), ChatSummary(id="456@g.us", name="")],
        messages={
            "123@c.us": [ChatMessage(sender="123@c.us", body=f"message {i}", timestamp=1700000000 + i) for i in range(15)],
            "empty@c.us": [],
        },
    )


@pytest.fixture
def embedding_client() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()


@pytest.fixture
def llm_client() -> FakeLLMClient:
    return FakeLLMClient()
