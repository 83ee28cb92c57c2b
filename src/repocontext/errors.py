"""Error taxonomy shared by every retrieval component.

``RetrievalError`` and ``NotFoundError`` cross component boundaries and are
handled by the assembler step that triggered them. ``PersistenceError`` never
leaves the cache store: it is raised by backends and recovered inside
``TieredCacheStore``.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    NOT_FOUND = "NOT_FOUND"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"


class RepoContextError(Exception):
    """Base error carrying a stable code and a recoverability hint."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str = "",
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable


class RetrievalError(RepoContextError):
    """Upstream returned a non-success status, or the transport failed.

    ``status_code`` is ``None`` for transport failures (DNS, timeouts, resets).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: ErrorCode | None = None,
    ) -> None:
        if code is None:
            code = ErrorCode.NETWORK_ERROR if status_code is None else ErrorCode.UPSTREAM_ERROR
        recoverable = status_code is None or status_code == 429 or status_code >= 500
        super().__init__(
            code,
            message,
            suggestion="Retry later." if recoverable else "",
            recoverable=recoverable,
        )
        self.status_code = status_code


class NotFoundError(RepoContextError):
    """Upstream answered 404. A legitimate empty result, not a failure."""

    def __init__(self, url: str) -> None:
        super().__init__(ErrorCode.NOT_FOUND, f"Not found: {url}")
        self.url = url
        self.status_code = 404


class PersistenceError(RepoContextError):
    """The persistent cache tier could not be read or written."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.PERSISTENCE_FAILED, message, recoverable=True)
