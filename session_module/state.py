"""Session state record and lifecycle event types."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional


class SessionPhase(str, Enum):
    UNPAIRED = "unpaired"
    PAIRING = "pairing"
    AUTHENTICATED = "authenticated"


class LifecycleEventKind(str, Enum):
    """Lifecycle events consumed by :class:`~session_module.controller.SessionController`."""

    PAIRING_ARTIFACT = "qr"
    AUTHENTICATED = "authenticated"
    AUTH_FAILED = "auth_failure"
    LOGGED_OUT = "logged_out"


@dataclass(frozen=True)
class LifecycleEvent:
    kind: LifecycleEventKind
    payload: Optional[str] = None


@dataclass
class SessionState:
    """Pairing artifact and authentication flag for one client session.

    ``pairing_artifact`` is only ever set while ``authenticated`` is false.
    """

    pairing_artifact: Optional[str] = None
    authenticated: bool = False
    phase: SessionPhase = SessionPhase.UNPAIRED

    def snapshot(self) -> "SessionState":
        return replace(self)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "pairingArtifact": self.pairing_artifact,
            "authenticated": self.authenticated,
        }
