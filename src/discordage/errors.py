from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    INVALID_INPUT = "INVALID_INPUT"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    VERIFICATION_FAILED = "VERIFICATION_FAILED"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    RATE_LIMITED = "RATE_LIMITED"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"


_STATUS_CODES: dict[ErrorCode, int] = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.METHOD_NOT_ALLOWED: 405,
    ErrorCode.VERIFICATION_FAILED: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.FORBIDDEN: 500,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.UPSTREAM_ERROR: 500,
}


class DiscordAgeError(Exception):
    """Raised by handlers and Discord access code for all expected failures.

    Caught by server.py and serialised into the JSON error body. Business
    logic lets it propagate; only the guild preview fetcher inspects the
    code to decide between retrying and degrading.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Any = None,
        *,
        upstream_status: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details
        self.upstream_status = upstream_status
        self.retry_after = retry_after  # seconds, only set for RATE_LIMITED

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self.code]

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body
