"""Exception → HTTP response translation.

This is the only place that knows about status codes.  Unexpected errors
are logged with their traceback and answered with a generic message so
internals never reach the client.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ragchat.errors import (
    EmptyDocumentError,
    GenerationError,
    RagChatError,
    UnreadableDocumentError,
    UploadTooLargeError,
    ValidationError,
    VectorStoreError,
)
from ragchat.messages import get_message, resolve_locale

logger = logging.getLogger(__name__)

STATUS_CODES: dict[type[RagChatError], int] = {
    ValidationError: 400,
    UploadTooLargeError: 413,
    UnreadableDocumentError: 422,
    EmptyDocumentError: 422,
    GenerationError: 502,
    VectorStoreError: 503,
}


def status_for(exc: RagChatError) -> int:
    for exc_type in type(exc).__mro__:
        if exc_type in STATUS_CODES:
            return STATUS_CODES[exc_type]
    return 500


def request_locale(request: Request) -> str:
    default = getattr(request.app.state, "default_locale", "en")
    return resolve_locale(request.headers.get("accept-language"), default)


def client_message(exc: RagChatError, locale: str) -> str:
    """The text a client may see for *exc*."""
    if isinstance(exc, UploadTooLargeError):
        return get_message("error.file.too.large", locale, limit=exc.details.get("limit", "?"))
    if isinstance(exc, EmptyDocumentError):
        return get_message("ingest.content.empty", locale, source=exc.details.get("file_name", ""))
    if isinstance(exc, VectorStoreError):
        return get_message("error.vector.store", locale)
    if isinstance(exc, GenerationError):
        return get_message("error.llm", locale)
    if isinstance(exc, (ValidationError, UnreadableDocumentError)):
        return exc.message
    return get_message("error.unexpected", locale)


async def handle_app_error(request: Request, exc: RagChatError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    else:
        logger.info("%s %s rejected (%d): %s", request.method, request.url.path, status, exc)
    return JSONResponse(status_code=status, content={"error": client_message(exc, request_locale(request))})


def describe_request_errors(exc: RequestValidationError) -> str:
    """One line per failed field, e.g. ``query.page: Input should be a valid integer``."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts) or "Invalid request"


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed parameters or bodies are client errors like any other :class:`ValidationError`."""
    message = describe_request_errors(exc)
    logger.info("%s %s rejected (400): %s", request.method, request.url.path, message)
    return JSONResponse(status_code=STATUS_CODES[ValidationError], content={"error": message})


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": get_message("error.unexpected", request_locale(request))},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RagChatError, handle_app_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected_error)
