"""
Application-level exception types.

Every error a handler can surface maps to one HTTP status and a JSON body
with an `error` field. Services raise these; routers let them propagate to
the handlers registered in upview.core.exception_handlers.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        message:     Human-readable message returned as `error`.
        extra:       Additional top-level JSON fields for the response body.
        headers:     Additional response headers.
    """

    status_code: int = 400

    def __init__(
        self,
        message: str,
        *,
        extra: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra or {}
        self.headers = headers or {}


class UnauthorizedError(AppError):
    """Missing, malformed, invalid or unknown credential/session."""

    status_code = 401


class InvalidInputError(AppError):
    """Malformed request parameters or body."""

    status_code = 400


class NotFoundError(AppError):
    """Linked data is missing (username, player, avatar URL, …)."""

    status_code = 404


class UpstreamError(AppError):
    """An external API answered with a non-success status or bad payload."""

    status_code = 502


class RateLimitedError(AppError):
    """The API key exhausted its quota for the current window."""

    status_code = 429


class InternalError(AppError):
    """The store rejected a write that the caller asked for."""

    status_code = 500
