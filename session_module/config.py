"""Configuration objects for the session layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class SessionConfig:
    """Runtime controls for the messaging client session."""

    client_factory: Optional[str] = None
    client_timeout: Optional[float] = 60.0
    recent_messages_limit: int = 10
    welcome_message: str = "Connected to the chat session bridge."
