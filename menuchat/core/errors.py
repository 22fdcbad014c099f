"""
Application errors and typed request failures.

Governance checks (rate limit, spam guard, busy guard) return a RequestFailure
instead of raising, so every caller has to handle the failure path explicitly.
ServiceUnavailableError is raised when a dependency (corpus, embeddings, LLM)
is misconfigured or unreachable.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    NO_MESSAGE = "NO_MESSAGE"
    RATE_LIMIT = "RATE_LIMIT"
    COOLDOWN = "COOLDOWN"
    TOO_FAST = "TOO_FAST"
    SPAM_WINDOW = "SPAM_WINDOW"
    BUSY = "BUSY"
    SERVER_ERROR = "SERVER_ERROR"


_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.NO_MESSAGE: 400,
    ErrorKind.BUSY: 409,
    ErrorKind.RATE_LIMIT: 429,
    ErrorKind.COOLDOWN: 429,
    ErrorKind.TOO_FAST: 429,
    ErrorKind.SPAM_WINDOW: 429,
    ErrorKind.SERVER_ERROR: 500,
}


@dataclass(frozen=True)
class RequestFailure:
    """Typed failure returned to the transport instead of an exception."""

    kind: ErrorKind
    retry_after_seconds: int | None = None

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self.kind]


class ServiceUnavailableError(Exception):
    """Raised when a required service (e.g. corpus source, embeddings API) is unavailable or misconfigured."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)
