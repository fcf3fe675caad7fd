"""Lifecycle state machine for the messaging client session."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, TypeVar

from .client import ChatClient
from .errors import BridgeError, InvalidStateError, Unauthenticated, UpstreamFailure
from .pairing import render_pairing_artifact
from .state import LifecycleEvent, LifecycleEventKind, SessionPhase, SessionState

logger = logging.getLogger(__name__)

T = TypeVar("T")
TransitionListener = Callable[[LifecycleEvent, SessionState], None]


class SessionController:
    """Owns the :class:`SessionState` and applies lifecycle transitions.

    All mutations go through :meth:`dispatch`, which runs to completion on
    the event loop thread.  Listeners receive a snapshot after every applied
    transition.
    """

    def __init__(
        self,
        client: ChatClient,
        state: Optional[SessionState] = None,
        *,
        renderer: Callable[[str], str] = render_pairing_artifact,
        client_timeout: Optional[float] = None,
    ) -> None:
        self.client = client
        self.state = state or SessionState()
        self.renderer = renderer
        self.client_timeout = client_timeout
        self._listeners: List[TransitionListener] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._logout_in_flight = False

    @property
    def authenticated(self) -> bool:
        return self.state.authenticated

    def add_listener(self, listener: TransitionListener) -> None:
        self._listeners.append(listener)

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    async def start(self) -> None:
        """Register for client events and initialise the client session."""
        self.bind_loop(asyncio.get_running_loop())
        self.client.set_event_handler(self.handle_client_event)
        logger.info("Initialising messaging client session")
        await self.call_client(self.client.initialize, "initialise client")

    def handle_client_event(self, kind: LifecycleEventKind, payload: Optional[str] = None) -> None:
        """Entry point for client callbacks, safe to call from any thread."""
        event = LifecycleEvent(LifecycleEventKind(kind), payload)
        loop = self._loop
        if loop is None or loop.is_closed():
            self.dispatch(event)
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self.dispatch(event)
        else:
            loop.call_soon_threadsafe(self.dispatch, event)

    def dispatch(self, event: LifecycleEvent) -> SessionState:
        """Apply ``event`` to the session state and notify listeners."""
        state = self.state
        kind = event.kind

        if kind is LifecycleEventKind.PAIRING_ARTIFACT:
            try:
                artifact = self.renderer(event.payload or "")
            except Exception:
                logger.exception("Failed to render pairing artifact")
                return state.snapshot()
            if state.phase is SessionPhase.AUTHENTICATED:
                logger.warning("Pairing artifact received while authenticated; returning to pairing")
            state.pairing_artifact = artifact
            state.authenticated = False
            state.phase = SessionPhase.PAIRING
        elif kind is LifecycleEventKind.AUTHENTICATED:
            logger.info("Client session authenticated")
            state.pairing_artifact = None
            state.authenticated = True
            state.phase = SessionPhase.AUTHENTICATED
        elif kind is LifecycleEventKind.AUTH_FAILED:
            logger.warning("Client session authentication failed")
            state.authenticated = False
            state.phase = SessionPhase.UNPAIRED
        elif kind is LifecycleEventKind.LOGGED_OUT:
            logger.info("Client session logged out")
            state.pairing_artifact = None
            state.authenticated = False
            state.phase = SessionPhase.UNPAIRED
        else:
            raise ValueError(f"Unhandled lifecycle event {kind!r}")

        snapshot = state.snapshot()
        for listener in list(self._listeners):
            try:
                listener(event, snapshot)
            except Exception:
                logger.exception("Transition listener failed for event %s", kind.value)
        return snapshot

    def require_authenticated(self) -> None:
        if not self.state.authenticated:
            raise Unauthenticated("Not authenticated")

    async def logout(self) -> None:
        """Log the client out and start a fresh pairing cycle."""
        if self._logout_in_flight:
            raise InvalidStateError("A logout is already in progress.")
        if self.state.phase is not SessionPhase.AUTHENTICATED:
            raise InvalidStateError("No active session.")

        self._logout_in_flight = True
        try:
            await self.call_client(self.client.logout, "log out")
            self.dispatch(LifecycleEvent(LifecycleEventKind.LOGGED_OUT))
            await self.call_client(self.client.initialize, "re-initialise client")
        finally:
            self._logout_in_flight = False

    async def call_client(self, func: Callable[..., Awaitable[T]], action: str, *args: object) -> T:
        """Await a client call, bounded by ``client_timeout``.

        Bridge errors pass through; anything else is logged and re-raised as
        :class:`UpstreamFailure`.
        """
        try:
            if self.client_timeout:
                return await asyncio.wait_for(func(*args), timeout=self.client_timeout)
            return await func(*args)
        except asyncio.TimeoutError as exc:
            logger.error("Messaging client timed out trying to %s", action)
            raise UpstreamFailure(f"Messaging client timed out trying to {action}") from exc
        except BridgeError:
            raise
        except Exception as exc:
            logger.exception("Messaging client failed to %s", action)
            raise UpstreamFailure(str(exc) or f"Messaging client failed to {action}") from exc
