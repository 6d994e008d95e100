"""Exception handlers rendering every failure as one JSON envelope.

The envelope carries ``statusCode``, ``error``, ``message``, ``timestamp`` and
``path``, plus ``field`` when a single input field is at fault.
"""

from __future__ import annotations

from datetime import datetime, timezone
from http import HTTPStatus
import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..domain.errors import ErrorKind, UserServiceError

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.UNEXPECTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

UNEXPECTED_MESSAGE = "Unexpected error"


def _request_path(request: Request) -> str:
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


def error_envelope(
    request: Request,
    *,
    status_code: int,
    error: str,
    message: Any,
    field: str | None = None,
) -> dict[str, Any]:
    """Build the normalised error body for ``request``."""
    payload: dict[str, Any] = {
        "statusCode": status_code,
        "error": error,
        "message": message,
    }
    if field is not None:
        payload["field"] = field
    payload["timestamp"] = datetime.now(timezone.utc).isoformat()
    payload["path"] = _request_path(request)
    return payload


def _format_validation_error(error: dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg', 'invalid value')}" if location else error.get("msg", "")


async def handle_service_error(request: Request, exc: UserServiceError) -> JSONResponse:
    status_code = STATUS_BY_KIND[exc.kind]
    if exc.kind is ErrorKind.UNEXPECTED:
        logger.error("unexpected service failure on %s: %s", request.url.path, exc.message)
        message = UNEXPECTED_MESSAGE
    else:
        message = exc.message
    body = error_envelope(
        request,
        status_code=status_code,
        error=exc.code,
        message=message,
        field=exc.field,
    )
    return JSONResponse(status_code=status_code, content=body)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report every violated constraint of a rejected request as a 400."""
    messages = [_format_validation_error(error) for error in exc.errors()]
    body = error_envelope(
        request,
        status_code=status.HTTP_400_BAD_REQUEST,
        error="ValidationError",
        message=messages,
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    try:
        error = HTTPStatus(exc.status_code).phrase.replace(" ", "")
    except ValueError:
        error = "HTTPError"
    body = error_envelope(
        request,
        status_code=exc.status_code,
        error=error,
        message=exc.detail,
    )
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Hide the cause of an unhandled exception behind a generic 500."""
    logger.exception("unhandled error on %s", request.url.path, exc_info=exc)
    body = error_envelope(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        error=type(exc).__name__,
        message=UNEXPECTED_MESSAGE,
    )
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the envelope handlers to ``app``."""
    app.add_exception_handler(UserServiceError, handle_service_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected_error)
