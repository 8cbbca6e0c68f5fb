"""Application error taxonomy.

Every error raised by the import pipeline and the post services derives from
``AppError`` and carries the HTTP status the API layer should answer with.
``register_error_handlers`` renders them as ``{success, message, error}``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, detail: str | None = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class InvalidInput(AppError):
    """Malformed or unsupported URL shape (user correctable)."""

    status_code = 400
    default_message = "Invalid input"


class UpstreamUnavailable(AppError):
    """The target platform blocked, failed, or timed out the request."""

    status_code = 502
    default_message = "Upstream platform unavailable"

    def __init__(
        self,
        message: str | None = None,
        *,
        url: str | None = None,
        status: int | None = None,
        detail: str | None = None,
    ) -> None:
        super().__init__(message, detail=detail)
        self.url = url
        self.status = status


class NoContentFound(AppError):
    """Every extraction strategy was exhausted without a usable image."""

    status_code = 404
    default_message = "No content found"


class UpstreamAPIError(AppError):
    """A keyed metadata API is misconfigured or rejected the request."""

    status_code = 500
    default_message = "Upstream API error"


class RehostFailure(AppError):
    """The upload capability could not store the asset. Never fatal."""

    status_code = 502
    default_message = "Asset rehosting failed"


class DuplicatePost(AppError):
    """The owner already imported this canonical URL."""

    status_code = 409
    default_message = "Post already exists"


class Unauthorized(AppError):
    """Missing or rejected bearer token."""

    status_code = 401
    default_message = "Not authorized"


class PostNotFound(AppError):
    status_code = 404
    default_message = "Post not found"


class ProfileNotFound(AppError):
    status_code = 404
    default_message = "User not found"


def register_error_handlers(application: FastAPI) -> None:
    """Install the ``AppError`` handler and the catch-all 500 handler on *application*."""

    @application.exception_handler(AppError)
    async def _handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        logger.warning(
            "request_failed",
            extra={
                "path": request.url.path,
                "error_type": type(exc).__name__,
                "status_code": exc.status_code,
                "error_message": exc.message,
            },
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "message": exc.message,
                "error": exc.detail or type(exc).__name__,
            },
        )

    @application.exception_handler(Exception)
    async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "request_unhandled_error",
            extra={"path": request.url.path, "error_type": type(exc).__name__},
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": "Internal server error",
                "error": type(exc).__name__,
            },
        )
