"""Error kinds raised by the session and analysis layers.

Each error carries the HTTP status and a short machine readable code so the
request surface can render every failure the same way.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for errors surfaced to HTTP callers."""

    status_code: int = 500
    code: str = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Unauthenticated(BridgeError):
    status_code = 401
    code = "unauthenticated"


class InvalidStateError(BridgeError):
    status_code = 400
    code = "invalid_state"


class NotFound(BridgeError):
    status_code = 404
    code = "not_found"


class UpstreamFailure(BridgeError):
    """A collaborator, model service or datastore call failed."""

    status_code = 500
    code = "upstream_failure"
