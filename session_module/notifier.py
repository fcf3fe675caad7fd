"""Push session transitions to connected WebSocket subscribers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List

import anyio
from fastapi import WebSocket

from .state import LifecycleEvent, LifecycleEventKind, SessionState

logger = logging.getLogger(__name__)

SUBSCRIBER_QUEUE_SIZE = 32


def _bounded_queue() -> "asyncio.Queue[Dict[str, Any]]":
    return asyncio.Queue(maxsize=SUBSCRIBER_QUEUE_SIZE)


@dataclass(eq=False)
class Subscriber:
    websocket: Any
    queue: "asyncio.Queue[Dict[str, Any]]" = field(default_factory=_bounded_queue)


class NotificationHub:
    """Fan out session transitions to every connected subscriber.

    Delivery is best effort: messages are queued per subscriber, a
    subscriber that disconnects mid-send simply misses them, and a
    subscriber whose queue is full has new messages dropped.
    """

    def __init__(self, state: SessionState, *, welcome_message: str = "Connected") -> None:
        self.state = state
        self.welcome_message = welcome_message
        self._subscribers: List[Subscriber] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def connect(self, subscriber: Subscriber) -> None:
        """Register ``subscriber`` and queue its welcome and state snapshot."""
        self._subscribers.append(subscriber)
        subscriber.queue.put_nowait({"type": "welcome", "data": {"message": self.welcome_message}})
        subscriber.queue.put_nowait({"type": "state", "data": self.state.to_payload()})
        logger.info("Push subscriber connected (%d active)", self.subscriber_count)

    def disconnect(self, subscriber: Subscriber) -> None:
        try:
            self._subscribers.remove(subscriber)
        except ValueError:
            return
        logger.info("Push subscriber disconnected (%d active)", self.subscriber_count)

    def broadcast(self, message: Dict[str, Any]) -> None:
        for subscriber in list(self._subscribers):
            try:
                subscriber.queue.put_nowait(message)
            except Exception:
                logger.warning("Dropping %s message for subscriber", message.get("type"), exc_info=True)

    def publish_transition(self, event: LifecycleEvent, state: SessionState) -> None:
        """Controller listener translating a transition into a push message."""
        if event.kind is LifecycleEventKind.PAIRING_ARTIFACT:
            message = {"type": "qr", "data": {"pairingArtifact": state.pairing_artifact}}
        else:
            message = {"type": "authenticated", "data": {"authenticated": state.authenticated}}
        logger.debug("Broadcasting %s to %d subscriber(s)", message["type"], self.subscriber_count)
        self.broadcast(message)

    async def serve(self, websocket: WebSocket) -> None:
        """Accept ``websocket`` and pump queued messages until it goes away."""
        await websocket.accept()
        subscriber = Subscriber(websocket=websocket)
        self.connect(subscriber)

        try:
            async with anyio.create_task_group() as tg:

                async def until_done(func: Callable[[Any], Awaitable[None]], arg: Any) -> None:
                    await func(arg)
                    tg.cancel_scope.cancel()

                tg.start_soon(until_done, self._pump, subscriber)
                tg.start_soon(until_done, self._drain, websocket)
        finally:
            self.disconnect(subscriber)

    @staticmethod
    async def _pump(subscriber: Subscriber) -> None:
        while True:
            message = await subscriber.queue.get()
            try:
                await subscriber.websocket.send_json(message)
            except Exception:
                logger.debug("Send failed; dropping subscriber", exc_info=True)
                return

    @staticmethod
    async def _drain(websocket: WebSocket) -> None:
        # Inbound messages are ignored; this only detects the disconnect.
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return
