"""Messaging client session lifecycle and push notifications.

``session_module.controller.SessionController`` turns client lifecycle events
into a small state machine and ``session_module.notifier.NotificationHub``
pushes each transition to connected WebSocket subscribers.
"""

from .config import SessionConfig
from .controller import SessionController
from .notifier import NotificationHub
from .state import LifecycleEvent, LifecycleEventKind, SessionPhase, SessionState

__all__ = [
    "LifecycleEvent",
    "LifecycleEventKind",
    "NotificationHub",
    "SessionConfig",
    "SessionController",
    "SessionPhase",
    "SessionState",
]
