"""Domain error taxonomy.

Every error carries the HTTP status and machine-readable code used by the
global exception handler. None of them are retried server-side.
"""

from __future__ import annotations


class ChatError(Exception):
    """Base class for all domain errors."""

    status_code: int = 400
    code: str = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Unauthorized(ChatError):
    """Role or ownership check failed."""

    status_code = 403
    code = "unauthorized"


class Forbidden(ChatError):
    """Caller is not a participant of the thread."""

    status_code = 403
    code = "forbidden"


class NotFound(ChatError):
    status_code = 404
    code = "not_found"


class InvalidArgument(ChatError):
    status_code = 400
    code = "invalid_argument"


class Blocked(ChatError):
    """Messaging disabled by a block relation."""

    status_code = 403
    code = "blocked"


class InvalidState(ChatError):
    status_code = 409
    code = "invalid_state"


class AlreadyExists(ChatError):
    status_code = 409
    code = "already_exists"
