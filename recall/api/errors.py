"""
Error responses and exception handlers.

Every error leaves the API in one envelope:

    {"error": {"code": "...", "message": "..."[, "fields": [...]][, "id": "..."]}}

- Pipeline failures     → failure_response()
- RecallError raised    → recall_error_handler
- Request shape errors  → 400 validation_error
- Starlette HTTP errors → envelope with the same status
- Anything else         → 500 internal_server_error
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from recall.core.errors import (
    ERROR_STATUS,
    PUBLIC_MESSAGES,
    ErrorKind,
    PipelineFailure,
    RecallError,
    ValidationError,
)
from recall.core.logging import get_logger

logger = get_logger(__name__)

AUTH_HEADERS = {"WWW-Authenticate": "Bearer"}

HTTP_STATUS_CODES = {
    404: "not_found",
    405: "method_not_allowed",
    413: ErrorKind.PAYLOAD_TOO_LARGE.value,
    429: ErrorKind.RATE_LIMITED.value,
}


def error_response(
    status_code: int,
    code: str,
    message: str,
    fields: Optional[list[str]] = None,
    item_id: Optional[str] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    body: dict = {"code": code, "message": message}
    if fields:
        body["fields"] = fields
    if item_id:
        body["id"] = item_id
    return JSONResponse(status_code=status_code, content={"error": body}, headers=headers)


def failure_response(failure: PipelineFailure) -> JSONResponse:
    """Render a pipeline failure."""
    return error_response(
        failure.status_code,
        failure.kind.value,
        failure.message,
        fields=failure.fields,
        item_id=failure.item_id,
        headers=AUTH_HEADERS if failure.kind == ErrorKind.AUTH else None,
    )


# ========================================
# Exception Handlers
# ========================================

async def recall_error_handler(request: Request, exc: RecallError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "request_failed",
        code=exc.kind.value,
        detail=exc.message,
        path=request.url.path,
        method=request.method,
    )
    return failure_response(PipelineFailure.from_error(exc))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError.from_pydantic(exc)
    return error_response(
        ERROR_STATUS[ErrorKind.VALIDATION],
        ErrorKind.VALIDATION.value,
        error.message,
        fields=error.fields,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = HTTP_STATUS_CODES.get(exc.status_code, "http_error")
    return error_response(
        exc.status_code,
        code,
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled errors.
    """
    logger.error(
        "unhandled_exception",
        error=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=exc,
    )
    return error_response(
        500,
        ErrorKind.INTERNAL.value,
        PUBLIC_MESSAGES[ErrorKind.INTERNAL],
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RecallError, recall_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
