"""
Global Exception Handling

Every endpoint reports failures the same way: a JSON body with a single
``error`` message. Details (type, traceback) only go to the server log.
"""

import traceback
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from src.core.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Custom Exceptions
# =============================================================================

class WardrobeBaseException(Exception):
    """Base exception for the wardrobe backend."""

    def __init__(self, message: str, code: int = 500):
        self.message = message
        self.code = code
        super().__init__(self.message)


class MissingParameterError(WardrobeBaseException):
    """Raised when a required request parameter is absent."""

    def __init__(self, message: str = "Falta usuario_id"):
        super().__init__(message, code=400)


class MissingImageError(WardrobeBaseException):
    """Raised when an upload carries neither a file nor an image URL."""

    def __init__(self, message: str = "No se recibió imagen ni imagen_url."):
        super().__init__(message, code=400)


class ProviderError(WardrobeBaseException):
    """Raised when a third-party provider call fails."""

    def __init__(self, message: str, service: str):
        super().__init__(message, code=500)
        self.service = service


class StorageError(ProviderError):
    """Raised when object storage operations fail."""

    def __init__(self, message: str):
        super().__init__(message, service="storage")


class BackgroundRemovalError(ProviderError):
    """Raised when the background-removal API fails or cannot be reached.

    ``http_status`` is None when no response was received at all.
    """

    def __init__(self, http_status: Optional[int], body: str):
        if http_status is None:
            message = f"Remove.bg request failed: {body}"
        else:
            message = f"Remove.bg error {http_status}: {body}"
        super().__init__(message, service="removebg")
        self.http_status = http_status
        self.body = body


class CompletionError(ProviderError):
    """Raised when the chat/vision completion call fails."""

    def __init__(self, message: str):
        super().__init__(message, service="openai")


# =============================================================================
# Handlers
# =============================================================================

def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Solicitud inválida"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


def register_exception_handlers(app: FastAPI):
    """Register custom exception handlers with FastAPI app."""

    @app.exception_handler(WardrobeBaseException)
    async def wardrobe_exception_handler(request: Request, exc: WardrobeBaseException):
        log = logger.warning if exc.code < 500 else logger.error
        log(
            "request_failed",
            error=exc.message,
            code=exc.code,
            error_type=type(exc).__name__,
            service=getattr(exc, "service", None),
            path=str(request.url.path)
        )

        return JSONResponse(
            status_code=exc.code,
            content={"error": exc.message}
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        message = _validation_message(exc)
        logger.warning("request_validation_failed", error=message, path=str(request.url.path))

        return JSONResponse(
            status_code=400,
            content={"error": message}
        )


class GlobalExceptionMiddleware(BaseHTTPMiddleware):
    """
    Global exception handler middleware.

    Catches anything the registered handlers did not convert and
    reports it as a 500 carrying the exception's message.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(
                "unhandled_exception",
                error=str(exc),
                error_type=type(exc).__name__,
                path=str(request.url.path),
                traceback=traceback.format_exc()
            )
            return JSONResponse(
                status_code=500,
                content={"error": str(exc)}
            )
